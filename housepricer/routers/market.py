from datetime import date

from fastapi import APIRouter, Depends, Query

from ..schemas import HistoryPoint, SimilarProperty
from ..services.market import price_history, similar_properties
from ..services.valuation_service import ValuationService
from ..core.config import settings
from .valuation import service_dep

router = APIRouter()

@router.get("/history", response_model=list[HistoryPoint])
def get_history(
    city: str = Query(..., min_length=1),
    months: int = Query(default=settings.HISTORY_MONTHS, ge=1, le=120),
    svc: ValuationService = Depends(service_dep),
):
    return price_history(svc.engine, city, months=months, as_of=date.today())

@router.get("/similar", response_model=list[SimilarProperty])
def get_similar(
    city: str = Query(..., min_length=1),
    price: float = Query(..., gt=0),
    limit: int = Query(default=settings.SIMILAR_LIMIT, ge=1, le=20),
    svc: ValuationService = Depends(service_dep),
):
    return similar_properties(
        svc.engine, city, price, limit=limit, band_pct=settings.SIMILAR_BAND_PCT
    )
