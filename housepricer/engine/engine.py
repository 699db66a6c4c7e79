import math
from decimal import Decimal, ROUND_HALF_UP, localcontext
from functools import lru_cache
from typing import Any, Mapping

from .errors import (
    InvalidArea,
    InvalidLocation,
    InvalidRange,
    InvalidRoomCount,
    UnknownAmenity,
    ValuationError,
)
from .models import Amenity, Contribution, PropertyAttributes, ValuationResult
from .rates import ProximityRule, RateCard, load_rate_card

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Enough digits for the largest amount a validated card and input can produce
PRICE_PRECISION = 60


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _number(value: Any, field: str, error: type[ValuationError]) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise error(field, f"expected a number, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise error(field, f"expected a finite number, got {value!r}")
    d = Decimal(str(value))
    if not d.is_finite():
        raise error(field, f"expected a finite number, got {value!r}")
    return d


class ValuationEngine:
    """
    Additive price model over a rate card:
      size (+ optional curve) → rooms → location uplift on that subtotal
      → school/market proximity → amenities → floor at zero.

    Stateless apart from the immutable card, so one instance can serve any
    number of threads.
    """

    def __init__(self, rate_card: RateCard):
        self.rate_card = rate_card

    @property
    def cities(self) -> frozenset[str]:
        return self.rate_card.cities

    def estimate(self, attributes: PropertyAttributes) -> ValuationResult:
        card = self.rate_card

        city = self._city(attributes.city)
        area = _number(attributes.area, "area", InvalidArea)
        if area <= 0:
            raise InvalidArea("area", f"must be > 0, got {attributes.area!r}")
        if area > card.limits.max_area:
            raise InvalidArea("area", f"must be at most {card.limits.max_area}, got {attributes.area!r}")
        bedrooms = self._rooms(attributes.bedrooms, "bedrooms", card.limits.max_rooms)
        bathrooms = self._rooms(attributes.bathrooms, "bathrooms", card.limits.max_rooms)
        rating = _number(attributes.location_rating, "location_rating", InvalidRange)
        if not card.rating.min <= rating <= card.rating.max:
            raise InvalidRange(
                "location_rating",
                f"must be between {card.rating.min} and {card.rating.max}, got {attributes.location_rating!r}",
            )
        school = self._distance(attributes.school_proximity, "school_proximity")
        market = self._distance(attributes.market_proximity, "market_proximity")
        enabled = self._amenities(attributes.amenities)

        base_rate = card.base_rates[city]
        with localcontext() as ctx:
            ctx.prec = PRICE_PRECISION
            size = _money(base_rate * area)
            size_curve = _money(self._size_curve(base_rate, area))
            bedroom_total = _money(card.bedroom_increment * bedrooms)
            bathroom_total = _money(card.bathroom_increment * bathrooms)

            subtotal = size + size_curve + bedroom_total + bathroom_total
            location = _money(subtotal * (rating - card.rating.neutral) * card.rating.step)

            contributions = [
                Contribution("size", size),
                Contribution("size_curve", size_curve),
                Contribution("bedrooms", bedroom_total),
                Contribution("bathrooms", bathroom_total),
                Contribution("location", location),
                Contribution("school_proximity", _money(self._proximity(card.school_proximity, school))),
                Contribution("market_proximity", _money(self._proximity(card.market_proximity, market))),
            ]
            for amenity in Amenity:
                amount = card.amenities[amenity] if amenity in enabled else ZERO
                contributions.append(Contribution(f"amenity:{amenity.value}", _money(amount)))

            total = sum((c.amount for c in contributions), ZERO)
            if total < 0:
                contributions.append(Contribution("floor", -total))
                total = ZERO

        return ValuationResult(
            city=city,
            base_rate=base_rate,
            price=total,
            contributions=tuple(contributions),
        )

    # ----- validation helpers -----

    def _city(self, city: Any) -> str:
        if not isinstance(city, str) or not city.strip():
            raise InvalidLocation("city", "a city is required")
        if city not in self.rate_card.base_rates:
            raise InvalidLocation("city", f"unknown city {city!r}")
        return city

    @staticmethod
    def _rooms(value: Any, field: str, limit: int) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRoomCount(field, f"expected a whole number, got {value!r}")
        if value < 0:
            raise InvalidRoomCount(field, f"must be >= 0, got {value}")
        if value > limit:
            raise InvalidRoomCount(field, f"must be at most {limit}, got {value}")
        return value

    @staticmethod
    def _distance(value: Any, field: str) -> Decimal:
        d = _number(value, field, InvalidRange)
        if d < 0:
            raise InvalidRange(field, f"must be >= 0, got {value!r}")
        return d

    @staticmethod
    def _amenities(amenities: Mapping[str, Any]) -> frozenset[Amenity]:
        enabled = set()
        for name, flag in amenities.items():
            try:
                amenity = Amenity(name)
            except ValueError:
                raise UnknownAmenity(f"amenities.{name}", f"unknown amenity {name!r}") from None
            if not isinstance(flag, bool):
                raise InvalidRange(f"amenities.{name}", f"expected true or false, got {flag!r}")
            if flag:
                enabled.add(amenity)
        return frozenset(enabled)

    # ----- pricing terms -----

    def _size_curve(self, base_rate: Decimal, area: Decimal) -> Decimal:
        """Difference from linear pricing for the area above the curve threshold."""
        curve = self.rate_card.size_curve
        if curve is None or area <= curve.threshold:
            return ZERO
        return base_rate * (area - curve.threshold) * (curve.factor - 1)

    @staticmethod
    def _proximity(rule: ProximityRule, distance: Decimal) -> Decimal:
        # Linear falloff to zero at the cutoff; nothing beyond it
        closeness = max(Decimal(0), 1 - distance / rule.cutoff)
        return rule.max_uplift * closeness


@lru_cache(maxsize=1)
def default_engine() -> ValuationEngine:
    return ValuationEngine(load_rate_card())


def estimate(attributes: PropertyAttributes) -> ValuationResult:
    """Price `attributes` with the built-in rate card."""
    return default_engine().estimate(attributes)
