"""
Caller-side property lists: the saved-for-comparison list and the wishlist.

Both are in-memory and insertion-ordered. Records hold the attributes and
the price they were saved with; the engine never sees or mutates them.
"""

import itertools
import logging
import threading
import uuid
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from ..engine import PropertyAttributes, ValuationEngine

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class PropertyNotFound(KeyError):
    pass


@dataclass(frozen=True)
class SavedProperty:
    id: str
    seq: int
    attributes: PropertyAttributes
    price: Decimal

    def as_dict(self) -> dict:
        return {"id": self.id, "seq": self.seq, "price": float(self.price), **self.attributes.as_dict()}


class PropertyStore:
    def __init__(self, name: str):
        self.name = name
        self._items: dict[str, SavedProperty] = {}
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, attributes: PropertyAttributes, price: Decimal) -> SavedProperty:
        with self._lock:
            record = SavedProperty(id=uuid.uuid4().hex, seq=next(self._seq), attributes=attributes, price=price)
            self._items[record.id] = record
        logger.info("property saved", extra={"store": self.name, "property_id": record.id})
        return record

    def get(self, property_id: str) -> SavedProperty:
        with self._lock:
            try:
                return self._items[property_id]
            except KeyError:
                raise PropertyNotFound(property_id) from None

    def remove(self, property_id: str) -> SavedProperty:
        with self._lock:
            try:
                record = self._items.pop(property_id)
            except KeyError:
                raise PropertyNotFound(property_id) from None
        logger.info("property removed", extra={"store": self.name, "property_id": property_id})
        return record

    def list(self) -> List[SavedProperty]:
        # dicts keep insertion order
        with self._lock:
            return list(self._items.values())

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compare(records: Iterable[SavedProperty]) -> dict:
    """Side-by-side summary of saved properties."""
    records = list(records)
    rows = [
        {
            **r.as_dict(),
            "price_per_area": float(_money(r.price / Decimal(str(r.attributes.area)))),
        }
        for r in records
    ]
    if not records:
        return {"count": 0, "min_price": None, "max_price": None, "mean_price": None,
                "cheapest_id": None, "priciest_id": None, "properties": rows}

    cheapest = min(records, key=lambda r: (r.price, r.seq))
    priciest = max(records, key=lambda r: (r.price, -r.seq))
    mean = _money(sum((r.price for r in records), Decimal(0)) / len(records))
    return {
        "count": len(records),
        "min_price": float(cheapest.price),
        "max_price": float(priciest.price),
        "mean_price": float(mean),
        "cheapest_id": cheapest.id,
        "priciest_id": priciest.id,
        "properties": rows,
    }


def revalue(engine: ValuationEngine, record: SavedProperty) -> dict:
    """
    Re-run the engine on a saved record. Drift is zero unless the rate card
    changed since the record was saved.
    """
    current = engine.estimate(record.attributes).price
    return {
        "id": record.id,
        "saved_price": float(record.price),
        "current_price": float(current),
        "drift": float(current - record.price),
    }


# Process-wide lists (session memory only)
saved_properties = PropertyStore("saved")
wishlist = PropertyStore("wishlist")
