"""Streaming parser for YML offer feeds."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Iterable, Iterator

from lxml import etree

from feedsync.errors import MalformedFeedStream, UnknownAvailabilityLiteral
from feedsync.ingest.models import CURRENCIES, Availability, RawOffer

logger = logging.getLogger(__name__)

OFFER_TAG = "offer"

AVAILABILITY_LITERALS = {
    "": Availability.NOT_AVAILABLE,
    "true": Availability.AVAILABLE,
    "1": Availability.AVAILABLE,
    "false": Availability.NOT_AVAILABLE,
    "0": Availability.NOT_AVAILABLE,
}


class OfferField(enum.Enum):
    PRICE = "price"
    OLD_PRICE = "oldprice"
    CURRENCY = "currencyId"
    CATEGORY = "categoryId"
    NAME = "name"
    DESCRIPTION = "description"
    VENDOR = "vendor"
    VENDOR_CODE = "vendorCode"


FIELDS_BY_TAG = {field.value: field for field in OfferField}


@dataclass(slots=True, frozen=True)
class ParserContext:
    """Where the parser is in the document.

    ``depth`` counts open elements of the current offer, the offer itself
    included, and is 0 at document level.
    """

    offer: RawOffer | None = None
    field: OfferField | None = None
    depth: int = 0
    skipping: bool = False

    @property
    def in_offer(self) -> bool:
        return self.depth > 0


DOCUMENT = ParserContext()


class FeedParser:
    """Turns a stream of byte chunks into a lazy sequence of offers.

    The sequence can be consumed once. ``bytes_read`` tracks how much of
    the stream has been fed to the XML parser so far.
    """

    def __init__(self, chunks: Iterable[bytes], *, default_currency: str | None = None) -> None:
        if default_currency is not None and default_currency not in CURRENCIES:
            raise ValueError(f"Unsupported default currency: {default_currency}")
        self._chunks = chunks
        self._default_currency = default_currency
        self._consumed = False
        self.bytes_read = 0

    def __iter__(self) -> Iterator[RawOffer]:
        if self._consumed:
            raise RuntimeError("Feed stream has already been consumed")
        self._consumed = True
        return self._parse()

    def _parse(self) -> Iterator[RawOffer]:
        parser = etree.XMLPullParser(
            events=("start", "end"),
            resolve_entities=False,
            no_network=True,
            huge_tree=True,
        )
        context = DOCUMENT
        for chunk in self._chunks:
            self.bytes_read += len(chunk)
            try:
                parser.feed(chunk)
                events = list(parser.read_events())
            except etree.XMLSyntaxError as exc:
                raise _malformed(exc) from exc
            for event, element in events:
                context, offer = self._handle(context, event, element)
                if offer is not None:
                    yield offer
        try:
            parser.close()
            events = list(parser.read_events())
        except etree.XMLSyntaxError as exc:
            raise _malformed(exc) from exc
        for event, element in events:
            context, offer = self._handle(context, event, element)
            if offer is not None:
                yield offer
        if context.in_offer:
            raise MalformedFeedStream("Unexpected end of feed inside an offer")

    def _handle(self, context: ParserContext, event: str, element) -> tuple[ParserContext, RawOffer | None]:
        tag = _local_name(element.tag)
        if event == "start":
            if not context.in_offer:
                if tag == OFFER_TAG:
                    return _open_offer(element), None
                return context, None
            offer = context.offer
            if offer is not None and context.field is not None:
                # A field's value is the text before its first nested element.
                offer = self._assign(offer, context.field, element.getparent().text)
            field = FIELDS_BY_TAG.get(tag)
            return replace(context, offer=offer, depth=context.depth + 1, field=field), None

        if not context.in_offer:
            _release(element)
            return context, None
        depth = context.depth - 1
        if depth == 0:
            _release(element)
            if context.skipping:
                return DOCUMENT, None
            return DOCUMENT, context.offer
        offer = context.offer
        if offer is not None and context.field is not None and tag == context.field.value:
            offer = self._assign(offer, context.field, element.text)
        return replace(context, offer=offer, field=None, depth=depth), None

    def _assign(self, offer: RawOffer, field: OfferField, text: str | None) -> RawOffer:
        value = (text or "").strip()
        if field is OfferField.PRICE:
            price = _parse_decimal(value)
            if price is None:
                logger.warning("%s: Cannot parse price: %r", offer.external_id, value)
                return offer
            return replace(offer, price=price)
        if field is OfferField.OLD_PRICE:
            old_price = _parse_decimal(value)
            if old_price is None and value:
                logger.warning("%s: Cannot parse oldprice: %r", offer.external_id, value)
            return replace(offer, old_price=old_price)
        if field is OfferField.CATEGORY:
            try:
                return replace(offer, category_id=int(value))
            except ValueError:
                logger.warning("%s: Cannot parse categoryId: %r", offer.external_id, value)
                return offer
        if field is OfferField.CURRENCY:
            if not value:
                return replace(offer, currency=self._default_currency)
            if value not in CURRENCIES:
                logger.warning("%s: Unknown currencyId: %r", offer.external_id, value)
                return replace(offer, currency=None)
            return replace(offer, currency=value)
        if not value:
            return offer
        if field is OfferField.NAME:
            return replace(offer, name=value)
        if field is OfferField.DESCRIPTION:
            return replace(offer, description=value)
        if field is OfferField.VENDOR:
            return replace(offer, vendor=value)
        return replace(offer, vendor_code=value)


def parse_offers(chunks: Iterable[bytes], *, default_currency: str | None = None) -> Iterator[RawOffer]:
    return iter(FeedParser(chunks, default_currency=default_currency))


def parse_availability(value: str | None, *, offer_id: str | None = None, line: int | None = None) -> Availability:
    if value is None:
        return Availability.UNSPECIFIED
    try:
        return AVAILABILITY_LITERALS[value]
    except KeyError:
        raise UnknownAvailabilityLiteral(value, offer_id=offer_id, line=line) from None


def _open_offer(element) -> ParserContext:
    offer_id = (element.get("id") or "").strip()
    availability = parse_availability(element.get("available"), offer_id=offer_id or None, line=element.sourceline)
    if not offer_id:
        logger.warning("An offer without id was found at line %s", element.sourceline)
        return ParserContext(depth=1, skipping=True)
    return ParserContext(offer=RawOffer(external_id=offer_id, availability=availability), depth=1)


def _parse_decimal(value: str) -> Decimal | None:
    try:
        number = Decimal(value)
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def _local_name(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _release(element) -> None:
    # Drop finished subtrees so a large feed is never held in memory.
    element.clear()
    parent = element.getparent()
    if parent is None:
        return
    while element.getprevious() is not None:
        del parent[0]


def _malformed(exc: etree.XMLSyntaxError) -> MalformedFeedStream:
    line, column = getattr(exc, "position", (None, None)) or (None, None)
    logger.error("Error at position: line %s, column %s", line, column)
    return MalformedFeedStream(f"Malformed feed: {exc.msg}", line=line, column=column)
