"""Offer validation."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from feedsync.ingest.models import Availability, CatalogCandidate, RawOffer

logger = logging.getLogger(__name__)

# Matches the scale of the catalog price columns.
PRICE_QUANTUM = Decimal("0.01")


def to_candidate(offer: RawOffer) -> CatalogCandidate | None:
    """Return the catalog candidate for ``offer`` or ``None`` if it lacks a required field.

    Only name, category id and price are required. An availability that the
    feed did not specify is stored as not available.
    """
    for field in ("name", "category_id", "price"):
        if getattr(offer, field) is None:
            logger.debug("%s: no %s, offer ignored", offer.external_id, field)
            return None
    availability = offer.availability
    if availability is Availability.UNSPECIFIED:
        availability = Availability.NOT_AVAILABLE
    return CatalogCandidate(
        external_id=offer.external_id,
        availability=availability,
        category_id=offer.category_id,
        name=offer.name,
        price=_quantize(offer.price),
        old_price=_quantize(offer.old_price),
        currency=offer.currency,
        description=offer.description,
    )


def _quantize(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
