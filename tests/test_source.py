import httpx
import pytest
import respx

from conftest import build_feed, offer_xml
from feedsync.errors import FeedSourceError
from feedsync.ingest.feed import parse_offers
from feedsync.ingest.source import is_url, open_feed

FEED_URL = "https://supplier.example.com/export/yml.xml"


def test_open_local_file(tmp_path):
    data = build_feed(offer_xml("A1"))
    path = tmp_path / "feed.xml"
    path.write_bytes(data)
    with open_feed(str(path)) as feed:
        assert feed.total_size == len(data)
        offers = list(parse_offers(feed.chunks))
    assert [offer.external_id for offer in offers] == ["A1"]


def test_missing_file_raises(tmp_path):
    with pytest.raises(FeedSourceError):
        with open_feed(str(tmp_path / "nope.xml")):
            pass


def test_is_url():
    assert is_url(FEED_URL)
    assert not is_url("/var/feeds/feed.xml")


def test_streams_feed_over_http():
    data = build_feed(offer_xml("A1") + offer_xml("A2"))
    with respx.mock(assert_all_called=True) as router:
        router.get(FEED_URL).mock(return_value=httpx.Response(200, content=data))
        with httpx.Client() as client:
            with open_feed(FEED_URL, client=client) as feed:
                assert feed.total_size == len(data)
                offers = list(parse_offers(feed.chunks))
    assert [offer.external_id for offer in offers] == ["A1", "A2"]


def test_http_error_raises_source_error():
    with respx.mock() as router:
        router.get(FEED_URL).mock(return_value=httpx.Response(404))
        with httpx.Client() as client:
            with pytest.raises(FeedSourceError, match="HTTP 404"):
                with open_feed(FEED_URL, client=client):
                    pass


def test_connection_error_raises_source_error():
    with respx.mock() as router:
        router.get(FEED_URL).mock(side_effect=httpx.ConnectError("refused"))
        with httpx.Client() as client:
            with pytest.raises(FeedSourceError):
                with open_feed(FEED_URL, client=client):
                    pass
