from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple

# ----- Data shapes (thin & explicit) -----

class Amenity(str, Enum):
    PARKING = "parking"
    GARDEN = "garden"
    BALCONY = "balcony"


@dataclass(frozen=True)
class PropertyAttributes:
    """
    Attribute record submitted for valuation.
    `amenities` is frozen on construction; missing amenity keys mean False.
    """
    city: str
    area: float
    bedrooms: int
    bathrooms: int
    location_rating: float = 5.0
    school_proximity: float = 2.0
    market_proximity: float = 1.5
    amenities: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "amenities", MappingProxyType(dict(self.amenities)))

    def replace(self, **changes) -> "PropertyAttributes":
        """Copy with some fields changed; the original is untouched."""
        values = self.as_dict()
        values.update(changes)
        return PropertyAttributes(**values)

    def as_dict(self) -> dict:
        return {
            "city": self.city,
            "area": self.area,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "location_rating": self.location_rating,
            "school_proximity": self.school_proximity,
            "market_proximity": self.market_proximity,
            "amenities": dict(self.amenities),
        }


@dataclass(frozen=True)
class Contribution:
    factor: str     # e.g. "size", "bedrooms", "amenity:parking"
    amount: Decimal


@dataclass(frozen=True)
class ValuationResult:
    city: str
    base_rate: Decimal
    price: Decimal
    contributions: Tuple[Contribution, ...]

    def contribution(self, factor: str) -> Decimal:
        for item in self.contributions:
            if item.factor == factor:
                return item.amount
        raise KeyError(factor)

    def breakdown(self) -> dict:
        return {item.factor: item.amount for item in self.contributions}
