"""
Market views layered on the engine price: a monthly history series per
city and a similar-property search around a target price.

Both are synthetic but fully deterministic: every pseudo-random draw is
seeded from the inputs, and `as_of` is passed in rather than read from the
clock.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from ..core.utils import fnv1a_32, months_back, seeded_rand
from ..engine import (
    Amenity,
    InvalidLocation,
    InvalidRange,
    PropertyAttributes,
    ValuationEngine,
)

CENT = Decimal("0.01")
MIN_AREA = 100.0
MAX_AREA = 20000.0


def reference_property(city: str) -> PropertyAttributes:
    """The typical home a city's history series tracks."""
    return PropertyAttributes(
        city=city,
        area=1000,
        bedrooms=2,
        bathrooms=2,
        location_rating=5,
        school_proximity=2,
        market_proximity=1.5,
    )


def price_history(engine: ValuationEngine, city: str, months: int, as_of: date) -> list[dict]:
    """
    Monthly series, oldest first, ending at `as_of`'s month. The last point
    is exactly the engine price of the reference property; earlier points
    walk back through a seeded index (monthly drift of -0.7%..+1.3%).
    """
    if months < 1 or months > 120:
        raise InvalidRange("months", f"must be between 1 and 120, got {months}")
    current = engine.estimate(reference_property(city)).price

    seed = fnv1a_32(city)
    index = 100.0
    points = []
    for i in range(months):
        points.append((months_back(as_of, i), index))
        drift = (seeded_rand(seed + i, 1)[0] - 0.35) * 2.0
        index /= 1.0 + drift / 100.0

    series = []
    for month, idx in reversed(points):
        idx = round(idx, 4)
        price = (current * Decimal(str(idx)) / 100).quantize(CENT, rounding=ROUND_HALF_UP)
        series.append({"month": month.strftime("%Y-%m"), "index": idx, "price": float(price)})
    return series


def _candidate(engine: ValuationEngine, city: str, target: Decimal, seed: int) -> PropertyAttributes:
    r = seeded_rand(seed, 7)
    amenity_bits = int(r[5] * 8)
    attrs = PropertyAttributes(
        city=city,
        area=1000,
        bedrooms=1 + int(r[0] * 5),          # 1..5
        bathrooms=1 + int(r[1] * 3),         # 1..3
        location_rating=round(3 + r[2] * 5, 1),
        school_proximity=round(r[3] * 6, 1),
        market_proximity=round(r[4] * 6, 1),
        amenities={a.value: bool(amenity_bits & (1 << i)) for i, a in enumerate(Amenity)},
    )
    # Solve for the area that lands near the target, then jitter it
    p_small = engine.estimate(attrs).price
    p_large = engine.estimate(attrs.replace(area=2000)).price
    slope = (p_large - p_small) / 1000
    area = 1000 + float((target - p_small) / slope) if slope > 0 else 1000
    area *= 0.9 + r[6] * 0.2
    area = min(MAX_AREA, max(MIN_AREA, round(area)))
    return attrs.replace(area=area)


def similar_properties(
    engine: ValuationEngine,
    city: str,
    target_price: float,
    limit: int = 4,
    band_pct: float = 0.2,
    pool: int = 24,
) -> list[dict]:
    """
    Synthetic listings in `city` priced within ±band_pct of the target,
    closest first. `similarity` is 1 - |price - target| / target.
    """
    if city not in engine.cities:
        raise InvalidLocation("city", f"unknown city {city!r}")
    if not target_price > 0:
        raise InvalidRange("price", f"must be > 0, got {target_price!r}")
    if limit < 1:
        raise InvalidRange("limit", f"must be >= 1, got {limit}")

    target = Decimal(str(target_price))
    band = target * Decimal(str(band_pct))
    seed = fnv1a_32(f"{city}:{target}")

    matches = []
    for i in range(pool):
        item_seed = (seed + i * 7919) & 0xFFFFFFFF
        attrs = _candidate(engine, city, target, item_seed)
        price = engine.estimate(attrs).price
        diff = abs(price - target)
        if diff <= band:
            matches.append((diff, i, attrs, price))

    matches.sort(key=lambda m: (m[0], m[1]))
    return [
        {
            "id": f"sim-{fnv1a_32(f'{seed}:{i}'):08x}",
            "price": float(price),
            "similarity": round(max(0.0, 1.0 - float(diff / target)), 3),
            **attrs.as_dict(),
        }
        for diff, i, attrs, price in matches[:limit]
    ]
