"""
api/main.py -- FastAPI application entry point for Thingful.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter
  4. log_requests          -- one access-log line per request

Lifespan owns the two stores (credential store and catalog store): created on
startup, parked on app.state for api/deps.py, disposed on shutdown.

Every failure response has the same shape: {"error": "<message>"}.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.deps import get_thing_store, get_user_store
from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.reviews import router as reviews_router
from api.routes.things import router as things_router
from auth.store import UserStore
from catalog.store import ThingStore
from core.config import get_settings
from core.errors import InvalidRating, ThingfulError

API_VERSION = "1.0.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("thingful.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the stores on startup and dispose their engines on shutdown.

    Both stores read DATABASE_URL from settings, so by default users, things
    and reviews share one database.
    """
    logger.info("Thingful API starting up")
    app.state.user_store = UserStore()
    app.state.thing_store = ThingStore()
    if not app.state.user_store.has_users():
        logger.warning("No users registered -- protected routes will reject every request")
    logger.info("Stores initialized")

    yield

    app.state.thing_store.close()
    app.state.user_store.close()
    logger.info("Thingful API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Thingful API",
    description="A directory of things with user reviews, protected by HTTP Basic authentication.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Location"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(things_router, prefix="/api", tags=["Things"])
app.include_router(reviews_router, prefix="/api", tags=["Reviews"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(ThingfulError)
async def thingful_error_handler(request: Request, exc: ThingfulError) -> JSONResponse:
    """Render the core error taxonomy (MissingToken, Unauthorized, RequestError, NotFound, ...)."""
    if isinstance(exc, InvalidRating):
        logger.error("Data integrity fault on %s %s: %s", request.method, request.url.path, exc.detail)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, f"Too many requests: {exc.detail}")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON, mistyped fields, or non-integer path ids -> 400 naming the first problem."""
    errors = exc.errors()
    if not errors:
        return _error(400, "Invalid request")
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return _error(400, f"Invalid '{location}': {message}" if location else f"Invalid request: {message}")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods, and any HTTPException raised by the framework."""
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors, persistence faults included.

    The traceback goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly here (not in a router) so it is always reachable. Not
# rate-limited: load balancers and monitors must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(
    thing_store: ThingStore = Depends(get_thing_store),
    user_store: UserStore = Depends(get_user_store),
) -> HealthResponse:
    """Return API liveness, version, and a database check for each store."""
    components = {
        "app": "ok",
        "users_db": "ok" if user_store.ping() else "error",
        "catalog_db": "ok" if thing_store.ping() else "error",
    }
    status = "healthy" if all(v == "ok" for v in components.values()) else "degraded"
    return HealthResponse(status=status, version=API_VERSION, components=components)
