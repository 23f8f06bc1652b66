"""Per-record change sets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union


class Unchanged:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNCHANGED"


class ClearToNull:
    __slots__ = ()

    def __repr__(self) -> str:
        return "CLEAR"


@dataclass(slots=True, frozen=True)
class SetTo:
    value: Any


UNCHANGED = Unchanged()
CLEAR = ClearToNull()

FieldChange = Union[Unchanged, SetTo, ClearToNull]


def change_to(value: Any) -> FieldChange:
    """``SetTo(value)``, or ``CLEAR`` when ``value`` is None."""
    if value is None:
        return CLEAR
    return SetTo(value)


@dataclass(slots=True, frozen=True)
class RecordPatch:
    record_id: int
    availability: FieldChange = UNCHANGED
    price: FieldChange = UNCHANGED
    old_price: FieldChange = UNCHANGED
    currency: FieldChange = UNCHANGED
    renewed_at: datetime | None = None
    needs_renew: bool = False

    def columns(self) -> dict[str, Any]:
        """Column values to write; unchanged fields are left out."""
        values: dict[str, Any] = {}
        for name in ("availability", "price", "old_price", "currency"):
            change = getattr(self, name)
            if isinstance(change, SetTo):
                values[name] = change.value
            elif isinstance(change, ClearToNull):
                values[name] = None
        if values and self.renewed_at is not None:
            values["renewed_at"] = self.renewed_at
        if values and self.needs_renew:
            values["needs_renew"] = True
        return values

    @property
    def is_empty(self) -> bool:
        return not self.columns()
