"""Opening feeds from disk or over HTTP."""

from __future__ import annotations

import logging
import pathlib
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator

import httpx

from feedsync.errors import FeedSourceError

logger = logging.getLogger(__name__)

READ_SIZE = 64 * 1024
HTTP_TIMEOUT = httpx.Timeout(30.0, read=120.0)


@dataclass(slots=True)
class FeedSource:
    name: str
    chunks: Iterable[bytes]
    total_size: int | None = None


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


@contextmanager
def open_feed(source: str, *, client: httpx.Client | None = None) -> Iterator[FeedSource]:
    """Open ``source`` (a path or an http(s) URL) for a single forward read."""
    if is_url(source):
        with _open_url(source, client) as feed:
            yield feed
        return
    path = pathlib.Path(source)
    try:
        handle = path.open("rb")
        size = path.stat().st_size
    except OSError as exc:
        raise FeedSourceError(f"Cannot open feed {source}: {exc}") from exc
    with handle:
        yield FeedSource(name=str(path), chunks=_read_chunks(handle), total_size=size)


@contextmanager
def _open_url(url: str, client: httpx.Client | None) -> Iterator[FeedSource]:
    owns_client = client is None
    session = client or httpx.Client(timeout=HTTP_TIMEOUT, follow_redirects=True, headers={"User-Agent": "feedsync/1.0"})
    try:
        logger.info("Downloading feed %s", url)
        with session.stream("GET", url) as response:
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise FeedSourceError(f"Cannot download feed {url}: HTTP {exc.response.status_code}") from exc
            length = response.headers.get("Content-Length")
            total = int(length) if length and length.isdigit() else None
            yield FeedSource(name=url, chunks=_stream_chunks(url, response), total_size=total)
    except httpx.TransportError as exc:
        raise FeedSourceError(f"Cannot download feed {url}: {exc}") from exc
    finally:
        if owns_client:
            session.close()


def _read_chunks(handle) -> Iterator[bytes]:
    while True:
        chunk = handle.read(READ_SIZE)
        if not chunk:
            return
        yield chunk


def _stream_chunks(url: str, response: httpx.Response) -> Iterator[bytes]:
    try:
        yield from response.iter_bytes(READ_SIZE)
    except httpx.HTTPError as exc:
        raise FeedSourceError(f"Feed download from {url} interrupted: {exc}") from exc
