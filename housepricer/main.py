import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Routers
from .routers.valuation import router as valuation_router
from .routers.properties import properties_router, wishlist_router
from .routers.market import router as market_router

# Core modules
from .core.config import settings
from .core.logging import configure_logging, CorrelationIdMiddleware
from .core.metrics import PromMiddleware, metrics_endpoint
from .engine import ValuationError
from .services.valuation_service import get_engine

logger = logging.getLogger(__name__)

async def valuation_error_handler(request: Request, exc: ValuationError):
    """Engine input errors are the caller's to fix: name the field and why."""
    return JSONResponse(status_code=422, content={"detail": exc.to_dict()})

def create_app() -> FastAPI:
    """
    App factory so tests and ASGI servers can instantiate cleanly.
    """
    configure_logging()  # Set up JSON logs + correlation-id filter

    # Load and validate the rate card now; a defective card stops start-up
    engine = get_engine()
    logger.info("engine ready", extra={"cities": sorted(engine.cities)})

    app = FastAPI(
        title="House Price Predictor API",
        version="1.0.0",
        description="Deterministic property valuation with breakdowns, saved lists, and market views.",
    )

    # CORS: allow the static form to call the API.
    allow_origins = [o.strip() for o in settings.ALLOW_ORIGINS.split(",")] if settings.ALLOW_ORIGINS else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag","X-Request-Id"],
    )

    # Observability middlewares
    if settings.PROMETHEUS_ENABLED:
        app.add_middleware(PromMiddleware)       # Records req/latency metrics
    app.add_middleware(CorrelationIdMiddleware)  # Outermost: request id is set for everything below

    app.add_exception_handler(ValuationError, valuation_error_handler)

    # Meta routes
    @app.get("/v1/health", tags=["meta"])
    def health():
        return {"status": "ok"}

    @app.get("/v1/ping", tags=["meta"])
    def ping():
        return {"pong": True}

    if settings.PROMETHEUS_ENABLED:
        # Standard Prometheus scrape endpoint
        app.add_route("/v1/metrics", metrics_endpoint, methods=["GET"])

    # Business routes
    app.include_router(valuation_router, prefix="/v1", tags=["valuation"])
    app.include_router(properties_router, prefix="/v1/properties", tags=["properties"])
    app.include_router(wishlist_router, prefix="/v1/wishlist", tags=["wishlist"])
    app.include_router(market_router, prefix="/v1/market", tags=["market"])

    return app

app = create_app()
