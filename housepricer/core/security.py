from fastapi import Header, HTTPException, Request
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_429_TOO_MANY_REQUESTS
from datetime import datetime, timezone
from .config import settings
from .cache import cache

def require_api_key(x_api_key: str | None = Header(default=None, alias="x-api-key")):
    """
    Header-based API key check. Open when no key is configured.
    """
    if not settings.API_KEY:
        return
    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid API key")

def rate_key(request: Request, now: datetime | None = None) -> str:
    """Fixed one-minute window per (API key, client IP)."""
    client_ip = request.client.host if request.client else "unknown"
    api_key = request.headers.get("x-api-key") or "anon"
    minute_bucket = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M")
    return f"rate:{api_key}:{client_ip}:{minute_bucket}"

def rate_limit(request: Request):
    """
    Requests-per-minute limiter. Each hit is one atomic counter increment
    (Redis INCR, or a locked in-process counter), so concurrent requests
    are never undercounted.
    """
    rpm = max(1, settings.RATE_LIMIT_RPM)
    if cache.incr(rate_key(request)) > rpm:
        raise HTTPException(status_code=HTTP_429_TOO_MANY_REQUESTS, detail="Rate limit exceeded")
