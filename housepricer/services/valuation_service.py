import json
import logging
from functools import lru_cache
from typing import Iterable

from ..core.cache import cache
from ..core.config import settings
from ..core.metrics import record_valuation
from ..core.utils import canonical_json, fingerprint, weak_etag
from ..engine import (
    PropertyAttributes,
    ValuationEngine,
    ValuationError,
    ValuationResult,
    load_rate_card,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_engine() -> ValuationEngine:
    """
    Build the engine once per process. A defective rate card raises
    RateCardError here, at start-up.
    """
    card = load_rate_card(settings.RATE_CARD_PATH)
    logger.info(
        "rate card loaded",
        extra={"source": settings.RATE_CARD_PATH or "built-in", "cities": len(card.base_rates)},
    )
    return ValuationEngine(card)


def result_payload(result: ValuationResult, currency: str | None = None) -> dict:
    return {
        "city": result.city,
        "currency": currency or settings.DEFAULT_CURRENCY,
        "price": float(result.price),
        "base_rate": float(result.base_rate),
        "breakdown": [
            {"factor": c.factor, "amount": float(c.amount)} for c in result.contributions
        ],
    }


class ValuationService:
    """
    Orchestrates:
      attribute record → engine.estimate → payload
    Engine output is deterministic, so payloads are cached by a fingerprint
    of the record (and the rate card) and carry a weak ETag.
    """
    def __init__(self, engine: ValuationEngine | None = None):
        self.engine = engine or get_engine()
        self._card_key = fingerprint(repr(self.engine.rate_card))[:16]

    def _city_label(self, city: object) -> str:
        # Bounded label set for metrics
        return city if isinstance(city, str) and city in self.engine.cities else "unknown"

    def estimate(self, attributes: PropertyAttributes) -> ValuationResult:
        try:
            result = self.engine.estimate(attributes)
        except ValuationError as exc:
            record_valuation(self._city_label(attributes.city), exc.code)
            logger.info("valuation rejected", extra={"error": exc.code, "field": exc.field})
            raise
        record_valuation(result.city, "ok")
        logger.info("valuation computed", extra={"city": result.city, "price": str(result.price)})
        return result

    def value(self, attributes: PropertyAttributes) -> tuple[dict, bool, str]:
        """Returns (payload, served_from_cache, etag)."""
        cache_key = f"valuation:{self._card_key}:{fingerprint(attributes.as_dict())}"
        cached = cache.get(cache_key)
        if cached:
            payload = json.loads(cached)
            record_valuation(payload["city"], "cached")
            logger.info("valuation served from cache", extra={"city": payload["city"], "price": payload["price"]})
            return payload, True, weak_etag(cached.encode("utf-8"))

        payload = result_payload(self.estimate(attributes))
        body = canonical_json(payload)
        cache.set(cache_key, body)
        return payload, False, weak_etag(body.encode("utf-8"))

    def value_many(self, records: Iterable[PropertyAttributes]) -> list[dict]:
        """
        Price each record independently. Results keep input order; a bad
        record yields an error entry without affecting the others.
        """
        out = []
        for index, attributes in enumerate(records):
            try:
                payload, _, _ = self.value(attributes)
            except ValuationError as exc:
                out.append({"index": index, "ok": False, "error": exc.to_dict()})
            else:
                out.append({"index": index, "ok": True, "valuation": payload})
        return out
