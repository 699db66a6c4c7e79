"""
Rate card: every constant the valuation engine reads.

The card is plain configuration data. It is validated once, when it is
built, so a gap in the city table or an unpriced amenity fails at start-up
instead of during a valuation call.
"""

import json
import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from .errors import RateCardError
from .models import Amenity

# Ceiling for any configured number, and for the configured room limit.
# Together with the input limits they bound every intermediate amount.
MAX_CONFIG_VALUE = Decimal("1000000000")
MAX_ROOMS_CEILING = 10000

DEFAULT_RATE_CARD_DATA: dict[str, Any] = {
    # Price per unit area (sq ft)
    "base_rates": {
        "Springfield": 150,
        "Riverside": 175,
        "Lakeview": 210,
        "Hillcrest": 240,
        "Maplewood": 135,
        "Oakridge": 195,
        "Brookhaven": 160,
        "Cedar Falls": 120,
        "Harbor City": 280,
        "Summit Heights": 260,
    },
    "bedroom_increment": 10000,
    "bathroom_increment": 7500,
    "rating": {"min": 1, "max": 10, "neutral": 5, "step": "0.04"},
    "school_proximity": {"max_uplift": 20000, "cutoff": 5},
    "market_proximity": {"max_uplift": 10000, "cutoff": 5},
    "amenities": {"parking": 15000, "garden": 20000, "balcony": 8000},
    # Linear by default; set e.g. {"threshold": 5000, "factor": "0.8"}
    "size_curve": None,
    # Largest inputs accepted; keeps every amount well inside Decimal precision
    "limits": {"max_area": 1000000, "max_rooms": 100},
}


@dataclass(frozen=True)
class ProximityRule:
    max_uplift: Decimal
    cutoff: Decimal


@dataclass(frozen=True)
class RatingScale:
    min: Decimal
    max: Decimal
    neutral: Decimal
    step: Decimal


@dataclass(frozen=True)
class SizeCurve:
    threshold: Decimal
    factor: Decimal


@dataclass(frozen=True)
class InputLimits:
    max_area: Decimal = Decimal("1000000")
    max_rooms: int = 100


@dataclass(frozen=True)
class RateCard:
    base_rates: Mapping[str, Decimal]
    bedroom_increment: Decimal
    bathroom_increment: Decimal
    rating: RatingScale
    school_proximity: ProximityRule
    market_proximity: ProximityRule
    amenities: Mapping[Amenity, Decimal]
    size_curve: Optional[SizeCurve] = None
    limits: InputLimits = InputLimits()

    @property
    def cities(self) -> frozenset[str]:
        return frozenset(self.base_rates)


def _decimal(value: Any, where: str, *, positive: bool = False, non_negative: bool = False) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise RateCardError(f"{where}: expected a number, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise RateCardError(f"{where}: expected a finite number, got {value!r}")
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise RateCardError(f"{where}: expected a number, got {value!r}") from exc
    if not d.is_finite():
        raise RateCardError(f"{where}: expected a finite number, got {value!r}")
    if abs(d) > MAX_CONFIG_VALUE:
        raise RateCardError(f"{where}: must be at most {MAX_CONFIG_VALUE} in magnitude, got {d}")
    if positive and d <= 0:
        raise RateCardError(f"{where}: must be > 0, got {d}")
    if non_negative and d < 0:
        raise RateCardError(f"{where}: must be >= 0, got {d}")
    return d


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if not isinstance(value, Mapping):
        raise RateCardError(f"{key}: missing or not an object")
    return value


def _proximity(data: Mapping[str, Any], key: str) -> ProximityRule:
    section = _section(data, key)
    return ProximityRule(
        max_uplift=_decimal(section.get("max_uplift"), f"{key}.max_uplift", non_negative=True),
        cutoff=_decimal(section.get("cutoff"), f"{key}.cutoff", positive=True),
    )


def build_rate_card(data: Mapping[str, Any], known_cities: Optional[Iterable[str]] = None) -> RateCard:
    """
    Validate raw configuration and freeze it into a RateCard.

    If `known_cities` is given (the externally supplied location set), every
    one of them must have a base rate; otherwise the table's own keys are the
    known set.
    """
    raw_rates = _section(data, "base_rates")
    if not raw_rates:
        raise RateCardError("base_rates: at least one city is required")
    base_rates: dict[str, Decimal] = {}
    for city, rate in raw_rates.items():
        if not isinstance(city, str) or not city.strip():
            raise RateCardError(f"base_rates: invalid city name {city!r}")
        base_rates[city] = _decimal(rate, f"base_rates[{city!r}]", positive=True)

    if known_cities is not None:
        if isinstance(known_cities, str):
            raise RateCardError("cities: expected a list of city names")
        missing = sorted(set(known_cities) - set(base_rates))
        if missing:
            raise RateCardError(f"base_rates: no rate for known cities {missing}")

    rating_raw = _section(data, "rating")
    rating = RatingScale(
        min=_decimal(rating_raw.get("min"), "rating.min"),
        max=_decimal(rating_raw.get("max"), "rating.max"),
        neutral=_decimal(rating_raw.get("neutral"), "rating.neutral"),
        step=_decimal(rating_raw.get("step"), "rating.step", non_negative=True),
    )
    if not rating.min <= rating.neutral <= rating.max or rating.min == rating.max:
        raise RateCardError("rating: expected min <= neutral <= max with min < max")
    # Location multiplier must stay >= 0 at the lowest rating
    if rating.step * (rating.neutral - rating.min) > 1:
        raise RateCardError("rating.step: lowest rating would price the subtotal below zero")

    raw_amenities = _section(data, "amenities")
    vocabulary = {a.value for a in Amenity}
    unknown = sorted(set(raw_amenities) - vocabulary)
    if unknown:
        raise RateCardError(f"amenities: unknown amenities {unknown}")
    unpriced = sorted(vocabulary - set(raw_amenities))
    if unpriced:
        raise RateCardError(f"amenities: no increment for {unpriced}")
    amenities = {
        Amenity(name): _decimal(value, f"amenities[{name!r}]", non_negative=True)
        for name, value in raw_amenities.items()
    }

    size_curve = None
    if data.get("size_curve") is not None:
        curve = _section(data, "size_curve")
        size_curve = SizeCurve(
            threshold=_decimal(curve.get("threshold"), "size_curve.threshold", positive=True),
            factor=_decimal(curve.get("factor"), "size_curve.factor", non_negative=True),
        )

    limits = InputLimits()
    if data.get("limits") is not None:
        raw_limits = _section(data, "limits")
        max_rooms = _decimal(raw_limits.get("max_rooms"), "limits.max_rooms", positive=True)
        if max_rooms != max_rooms.to_integral_value():
            raise RateCardError(f"limits.max_rooms: expected a whole number, got {max_rooms}")
        limits = InputLimits(
            max_area=_decimal(raw_limits.get("max_area"), "limits.max_area", positive=True),
            max_rooms=int(max_rooms),
        )
    if limits.max_rooms > MAX_ROOMS_CEILING:
        raise RateCardError(f"limits.max_rooms: at most {MAX_ROOMS_CEILING} is supported")

    return RateCard(
        base_rates=MappingProxyType(base_rates),
        bedroom_increment=_decimal(data.get("bedroom_increment"), "bedroom_increment", non_negative=True),
        bathroom_increment=_decimal(data.get("bathroom_increment"), "bathroom_increment", non_negative=True),
        rating=rating,
        school_proximity=_proximity(data, "school_proximity"),
        market_proximity=_proximity(data, "market_proximity"),
        amenities=MappingProxyType(amenities),
        size_curve=size_curve,
        limits=limits,
    )


def load_rate_card(path: Optional[str] = None) -> RateCard:
    """
    Build the default card, or one read from a JSON file. A file may carry a
    "cities" list naming the known location set the table must cover.
    """
    if not path:
        return build_rate_card(DEFAULT_RATE_CARD_DATA)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise RateCardError(f"cannot read rate card {path!r}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise RateCardError(f"rate card {path!r} must be a JSON object")
    return build_rate_card(data, known_cities=data.get("cities"))
