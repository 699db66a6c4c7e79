"""
Valuation engine: a pure, deterministic mapping from a property's
attributes to a price and an itemized breakdown.
"""

from .errors import (
    InvalidArea,
    InvalidLocation,
    InvalidRange,
    InvalidRoomCount,
    RateCardError,
    UnknownAmenity,
    ValuationError,
)
from .models import Amenity, Contribution, PropertyAttributes, ValuationResult
from .rates import DEFAULT_RATE_CARD_DATA, RateCard, build_rate_card, load_rate_card
from .engine import ValuationEngine, default_engine, estimate

__all__ = [
    # Models
    "Amenity",
    "Contribution",
    "PropertyAttributes",
    "ValuationResult",
    # Errors
    "ValuationError",
    "InvalidArea",
    "InvalidLocation",
    "InvalidRange",
    "InvalidRoomCount",
    "UnknownAmenity",
    "RateCardError",
    # Rate card
    "DEFAULT_RATE_CARD_DATA",
    "RateCard",
    "build_rate_card",
    "load_rate_card",
    # Engine
    "ValuationEngine",
    "default_engine",
    "estimate",
]
