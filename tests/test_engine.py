"""
Tests for the valuation engine.

Covers:
- Reference scenario and breakdown
- Purity and concurrency
- Monotonicity in area, rating and proximities
- Amenity and room additivity
- Validation failures
- Non-negativity floor
"""

import copy
import dataclasses
import math
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from housepricer.engine import (
    DEFAULT_RATE_CARD_DATA,
    InvalidArea,
    InvalidLocation,
    InvalidRange,
    InvalidRoomCount,
    UnknownAmenity,
    ValuationEngine,
    build_rate_card,
    estimate,
    load_rate_card,
)

P0 = Decimal("204000.00")


# =============================================================================
# Reference scenario
# =============================================================================

class TestReferenceScenario:

    def test_reference_price(self, engine, springfield):
        assert engine.estimate(springfield).price == P0

    def test_module_level_estimate_uses_built_in_card(self, springfield):
        assert estimate(springfield).price == P0

    def test_breakdown_items(self, engine, springfield):
        result = engine.estimate(springfield)
        assert result.breakdown() == {
            "size": Decimal("150000.00"),
            "size_curve": Decimal("0.00"),
            "bedrooms": Decimal("20000.00"),
            "bathrooms": Decimal("15000.00"),
            "location": Decimal("0.00"),
            "school_proximity": Decimal("12000.00"),
            "market_proximity": Decimal("7000.00"),
            "amenity:parking": Decimal("0.00"),
            "amenity:garden": Decimal("0.00"),
            "amenity:balcony": Decimal("0.00"),
        }
        assert result.base_rate == Decimal("150")
        assert result.city == "Springfield"

    def test_breakdown_sums_to_price(self, engine, springfield):
        result = engine.estimate(springfield.replace(location_rating=8.5, area=2345.6))
        assert sum(c.amount for c in result.contributions) == result.price

    def test_parking_adds_exact_increment(self, engine, springfield):
        with_parking = springfield.replace(amenities={"parking": True, "garden": False, "balcony": False})
        assert engine.estimate(with_parking).price == P0 + Decimal("15000")

    def test_extra_bedroom_adds_exact_increment(self, engine, springfield):
        assert engine.estimate(springfield.replace(bedrooms=3)).price == P0 + Decimal("10000")

    def test_extra_bathroom_adds_exact_increment(self, engine, springfield):
        assert engine.estimate(springfield.replace(bathrooms=3)).price == P0 + Decimal("7500")


# =============================================================================
# Purity
# =============================================================================

class TestPurity:

    def test_same_input_same_output(self, engine, springfield):
        assert engine.estimate(springfield) == engine.estimate(springfield)

    def test_input_not_mutated(self, engine, springfield):
        before = springfield.as_dict()
        engine.estimate(springfield)
        assert springfield.as_dict() == before

    def test_record_detached_from_caller_dict(self, springfield):
        amenities = {"parking": True}
        record = springfield.replace(amenities=amenities)
        amenities["garden"] = True
        assert dict(record.amenities) == {"parking": True}

    def test_amenities_read_only(self, springfield):
        with pytest.raises(TypeError):
            springfield.amenities["parking"] = True

    def test_concurrent_calls_agree(self, engine, springfield):
        records = [springfield.replace(area=500 + i * 10) for i in range(40)]
        sequential = [engine.estimate(r) for r in records]
        with ThreadPoolExecutor(max_workers=8) as pool:
            parallel = list(pool.map(engine.estimate, records))
        assert parallel == sequential


# =============================================================================
# Monotonicity
# =============================================================================

class TestMonotonicity:

    def test_area(self, engine, springfield):
        prices = [engine.estimate(springfield.replace(area=a)).price for a in (100, 500, 999.99, 1000, 5000, 20000)]
        assert prices == sorted(prices)

    def test_area_with_low_rating(self, engine, springfield):
        low = springfield.replace(location_rating=1)
        prices = [engine.estimate(low.replace(area=a)).price for a in (100, 100.01, 100.02, 750, 12000)]
        assert prices == sorted(prices)

    def test_location_rating(self, engine, springfield):
        prices = [engine.estimate(springfield.replace(location_rating=r)).price for r in (1, 2.5, 5, 7, 10)]
        assert prices == sorted(prices)
        assert prices[0] < prices[-1]

    def test_rating_five_is_neutral(self, engine, springfield):
        assert engine.estimate(springfield).contribution("location") == 0

    @pytest.mark.parametrize("field", ["school_proximity", "market_proximity"])
    def test_closer_is_never_cheaper(self, engine, springfield, field):
        prices = [engine.estimate(springfield.replace(**{field: d})).price for d in (0, 0.5, 1, 2, 4.9, 5)]
        assert prices == sorted(prices, reverse=True)

    @pytest.mark.parametrize("field", ["school_proximity", "market_proximity"])
    def test_no_effect_beyond_cutoff(self, engine, springfield, field):
        prices = {engine.estimate(springfield.replace(**{field: d})).price for d in (5, 6, 50, 10_000)}
        assert len(prices) == 1
        result = engine.estimate(springfield.replace(**{field: 50}))
        assert result.contribution(field) == 0


# =============================================================================
# Amenities
# =============================================================================

class TestAmenities:

    @pytest.mark.parametrize("name,increment", [("parking", 15000), ("garden", 20000), ("balcony", 8000)])
    def test_each_amenity_adds_its_increment(self, engine, springfield, name, increment):
        base = springfield.replace(amenities={"garden": True} if name != "garden" else {"balcony": True})
        flags = dict(base.amenities)
        flags[name] = True
        gained = engine.estimate(base.replace(amenities=flags)).price - engine.estimate(base).price
        assert gained == Decimal(increment)

    def test_missing_keys_mean_false(self, engine, springfield):
        assert engine.estimate(springfield.replace(amenities={})).price == P0

    def test_all_amenities(self, engine, springfield):
        flags = {"parking": True, "garden": True, "balcony": True}
        assert engine.estimate(springfield.replace(amenities=flags)).price == P0 + Decimal("43000")


# =============================================================================
# Validation
# =============================================================================

class TestValidation:

    @pytest.mark.parametrize("area", [0, -10, math.nan, math.inf, "1000", None])
    def test_bad_area(self, engine, springfield, area):
        with pytest.raises(InvalidArea) as exc:
            engine.estimate(springfield.replace(area=area))
        assert exc.value.field == "area"

    @pytest.mark.parametrize("field,value", [("bedrooms", -1), ("bathrooms", -3), ("bedrooms", 1.5), ("bathrooms", True)])
    def test_bad_room_count(self, engine, springfield, field, value):
        with pytest.raises(InvalidRoomCount) as exc:
            engine.estimate(springfield.replace(**{field: value}))
        assert exc.value.field == field

    @pytest.mark.parametrize("city", ["Nonexistent City", "", "   ", "springfield", None])
    def test_bad_city(self, engine, springfield, city):
        with pytest.raises(InvalidLocation):
            engine.estimate(springfield.replace(city=city))

    def test_unknown_amenity(self, engine, springfield):
        with pytest.raises(UnknownAmenity) as exc:
            engine.estimate(springfield.replace(amenities={"parking": True, "pool": True}))
        assert exc.value.field == "amenities.pool"
        assert exc.value.to_dict()["error"] == "UnknownAmenity"

    def test_non_boolean_amenity_flag(self, engine, springfield):
        with pytest.raises(InvalidRange):
            engine.estimate(springfield.replace(amenities={"parking": "yes"}))

    @pytest.mark.parametrize("field,value", [
        ("location_rating", 0),
        ("location_rating", 10.5),
        ("location_rating", math.nan),
        ("school_proximity", -0.1),
        ("market_proximity", -1),
        ("market_proximity", math.inf),
    ])
    def test_out_of_bounds(self, engine, springfield, field, value):
        with pytest.raises(InvalidRange) as exc:
            engine.estimate(springfield.replace(**{field: value}))
        assert exc.value.field == field

    def test_errors_are_value_errors(self, engine, springfield):
        with pytest.raises(ValueError):
            engine.estimate(springfield.replace(area=0))


class TestInputLimits:

    @pytest.mark.parametrize("area", [1e24, 1_000_000.01, 10**40])
    def test_area_above_limit(self, engine, springfield, area):
        with pytest.raises(InvalidArea) as exc:
            engine.estimate(springfield.replace(area=area))
        assert "at most" in exc.value.reason

    @pytest.mark.parametrize("field", ["bedrooms", "bathrooms"])
    @pytest.mark.parametrize("count", [101, 10**30])
    def test_rooms_above_limit(self, engine, springfield, field, count):
        with pytest.raises(InvalidRoomCount) as exc:
            engine.estimate(springfield.replace(**{field: count}))
        assert exc.value.field == field

    def test_limits_themselves_are_accepted(self, engine, springfield):
        record = springfield.replace(area=1_000_000, bedrooms=100, bathrooms=100, location_rating=10)
        result = engine.estimate(record)
        assert result.contribution("size") == Decimal("150000000.00")
        assert sum(c.amount for c in result.contributions) == result.price

    @pytest.mark.parametrize("distance", [1e308, 5e-324])
    def test_extreme_distances_price_normally(self, engine, springfield, distance):
        result = engine.estimate(springfield.replace(school_proximity=distance, market_proximity=distance))
        assert result.price >= 0

    def test_largest_card_at_its_limits(self, springfield):
        data = copy.deepcopy(DEFAULT_RATE_CARD_DATA)
        data["base_rates"]["Springfield"] = 1_000_000_000
        data["bedroom_increment"] = 1_000_000_000
        data["rating"] = {"min": 1, "max": 1_000_000_000, "neutral": 1, "step": 1}
        data["limits"] = {"max_area": 1_000_000_000, "max_rooms": 10000}
        card = build_rate_card(data)
        record = springfield.replace(area=1_000_000_000, bedrooms=10000, location_rating=1_000_000_000)
        result = ValuationEngine(card).estimate(record)
        assert result.contribution("size") == Decimal("1000000000000000000.00")
        assert sum(c.amount for c in result.contributions) == result.price


# =============================================================================
# Size curve and floor
# =============================================================================

class TestSizeCurve:

    @pytest.fixture
    def curved(self):
        data = dict(DEFAULT_RATE_CARD_DATA, size_curve={"threshold": 5000, "factor": "0.5"})
        return ValuationEngine(build_rate_card(data))

    def test_below_threshold_is_linear(self, curved, engine, springfield):
        assert curved.estimate(springfield).price == engine.estimate(springfield).price

    def test_diminishing_above_threshold(self, curved, springfield):
        result = curved.estimate(springfield.replace(area=6000))
        assert result.contribution("size") == Decimal("900000.00")
        assert result.contribution("size_curve") == Decimal("-75000.00")

    def test_still_monotone(self, curved, springfield):
        prices = [curved.estimate(springfield.replace(area=a)).price for a in (4000, 5000, 5001, 8000, 20000)]
        assert prices == sorted(prices)


class TestFloor:

    def test_negative_total_clamped_to_zero(self, springfield):
        # Bypasses build-time validation on purpose
        card = dataclasses.replace(load_rate_card(), bedroom_increment=Decimal("-100000"))
        result = ValuationEngine(card).estimate(springfield)
        assert result.price == Decimal("0.00")
        assert result.contribution("floor") == Decimal("16000.00")
        assert sum(c.amount for c in result.contributions) == result.price

    def test_no_floor_item_when_positive(self, engine, springfield):
        with pytest.raises(KeyError):
            engine.estimate(springfield).contribution("floor")

    @pytest.mark.parametrize("area,rating,school,market", [
        (0.01, 1, 100, 100),
        (100, 1, 5, 5),
        (20000, 10, 0, 0),
    ])
    def test_price_never_negative(self, engine, springfield, area, rating, school, market):
        record = springfield.replace(
            area=area, bedrooms=0, bathrooms=0, location_rating=rating,
            school_proximity=school, market_proximity=market, amenities={},
        )
        assert engine.estimate(record).price >= 0
