"""Feed and catalog data models."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

CURRENCIES = frozenset({"UAH", "USD", "EUR", "RUB", "BYR", "KZT"})


class Availability(enum.Enum):
    AVAILABLE = 1
    NOT_AVAILABLE = 0
    UNSPECIFIED = None

    @classmethod
    def from_stored(cls, value: int | None) -> Availability:
        if value is None:
            return cls.UNSPECIFIED
        return cls.AVAILABLE if int(value) else cls.NOT_AVAILABLE


@dataclass(slots=True)
class RawOffer:
    external_id: str
    availability: Availability = Availability.UNSPECIFIED
    price: Decimal | None = None
    old_price: Decimal | None = None
    currency: str | None = None
    category_id: int | None = None
    name: str | None = None
    description: str | None = None
    vendor: str | None = None
    vendor_code: str | None = None


@dataclass(slots=True, frozen=True)
class CatalogCandidate:
    external_id: str
    availability: Availability
    category_id: int
    name: str
    price: Decimal
    old_price: Decimal | None = None
    currency: str | None = None
    description: str | None = None


@dataclass(slots=True)
class CatalogRecord:
    id: int
    external_id: str
    category_id: int
    name: str
    price: Decimal
    old_price: Decimal | None
    currency: str | None
    availability: Availability
    description: str | None = None
    renewed_at: datetime | None = None
    needs_renew: bool = False
