import pytest
from fastapi.testclient import TestClient

from housepricer.core.cache import cache
from housepricer.core.config import settings
from housepricer.engine import PropertyAttributes, ValuationEngine, load_rate_card
from housepricer.services.portfolio import saved_properties, wishlist


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Each test starts with empty lists, an empty cache, and no rate limiting."""
    monkeypatch.setattr(settings, "RATE_LIMIT_RPM", 100_000)
    monkeypatch.setattr(settings, "API_KEY", None)
    cache.clear()
    saved_properties.clear()
    wishlist.clear()
    yield
    cache.clear()
    saved_properties.clear()
    wishlist.clear()


@pytest.fixture
def engine():
    """Engine over the built-in rate card."""
    return ValuationEngine(load_rate_card())


@pytest.fixture
def springfield():
    """Reference record: 204,000.00 with the built-in card."""
    return PropertyAttributes(
        city="Springfield",
        area=1000,
        bedrooms=2,
        bathrooms=2,
        location_rating=5,
        school_proximity=2,
        market_proximity=1.5,
        amenities={"parking": False, "garden": False, "balcony": False},
    )


@pytest.fixture
def springfield_body(springfield):
    return springfield.as_dict()


@pytest.fixture
def client():
    from housepricer.main import create_app
    with TestClient(create_app()) as c:
        yield c
