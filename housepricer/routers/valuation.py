from fastapi import APIRouter, Depends, Header, Response
from ..schemas import (
    AmenityOut,
    BatchItem,
    BatchValuationRequest,
    CityOut,
    PropertyAttributesIn,
    ValuationResponse,
)
from ..services.valuation_service import ValuationService, get_engine
from ..core.security import require_api_key, rate_limit

router = APIRouter()

def service_dep() -> ValuationService:
    # Cheap: the engine itself is built once per process
    return ValuationService(get_engine())

@router.get("/cities", response_model=list[CityOut])
def list_cities(svc: ValuationService = Depends(service_dep)):
    rates = svc.engine.rate_card.base_rates
    return [{"name": name, "base_rate": float(rate)} for name, rate in sorted(rates.items())]

@router.get("/amenities", response_model=list[AmenityOut])
def list_amenities(svc: ValuationService = Depends(service_dep)):
    return [
        {"name": amenity.value, "increment": float(inc)}
        for amenity, inc in svc.engine.rate_card.amenities.items()
    ]

@router.post("/valuation", response_model=ValuationResponse)
def post_valuation(
    body: PropertyAttributesIn,
    response: Response,
    if_none_match: str | None = Header(default=None, alias="If-None-Match"),
    _auth = Depends(require_api_key),     # API key guard
    _lim  = Depends(rate_limit),          # Rate limiting
    svc: ValuationService = Depends(service_dep),
):
    payload, from_cache, etag = svc.value(body.to_attributes())
    if if_none_match and if_none_match == etag:
        return Response(status_code=304, headers={"ETag": etag})
    payload["cached"] = from_cache
    payload["etag"] = etag
    response.headers["ETag"] = etag
    return payload

@router.post("/valuation/batch", response_model=list[BatchItem])
def post_valuation_batch(
    body: BatchValuationRequest,
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: ValuationService = Depends(service_dep),
):
    return svc.value_many(p.to_attributes() for p in body.properties)
