"""
POS Backend: FastAPI application entry point.

Main application module with lifespan management, middleware configuration,
error handlers and router registration. Startup owns the catalog cache and
the reconciliation scheduler.
"""
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from pos_backend.middleware.request_logging import RequestLoggingMiddleware
from pos_backend.routers import auth, coupons, customers, health, orders, products, reports, sync
from pos_backend.scheduler.cron_tasks import configure_scheduler, shutdown_scheduler, start_scheduler
from pos_backend.services.baserow_service import BaserowConfigError
from pos_backend.services.cache_service import CacheService
from pos_backend.utils.config import settings
from pos_backend.utils.errors import error_body
from pos_backend.utils.http_retry import upstream_message
from pos_backend.utils.structured_logging import configure_logging

logger = logging.getLogger(__name__)

# -------------------------------------------------
# Rate Limiting
# -------------------------------------------------

def get_rate_limit_key(request: Request) -> str:
    """Rate limit key based on client IP."""
    return get_remote_address(request)

limiter = Limiter(key_func=get_rate_limit_key, default_limits=[settings.RATE_LIMIT])


# -------------------------------------------------
# Lifespan
# -------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: logging, catalog cache, scheduler."""
    configure_logging()
    app.state.is_ready = False
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")

    app.state.catalog_cache = CacheService(
        default_ttl=settings.VARIATION_CACHE_TTL,
        sweep_interval=settings.CACHE_SWEEP_INTERVAL,
    )
    app.state.catalog_cache.start_sweeper()

    if settings.SYNC_ENABLED:
        try:
            configure_scheduler()
            start_scheduler()
        except Exception as e:
            logger.warning(f"Scheduler failed: {e}")
    else:
        logger.info("Background sync disabled (SYNC_ENABLED=false)")

    app.state.is_ready = True
    logger.info("Application is READY to accept traffic")

    yield

    logger.info("Shutting down application")
    try:
        shutdown_scheduler()
    except Exception as e:
        logger.warning(f"Scheduler shutdown error: {e}")
    await app.state.catalog_cache.stop_sweeper()
    logger.info(f"Shut down {settings.APP_NAME}")


# -------------------------------------------------
# FastAPI App
# -------------------------------------------------

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# -------------------------------------------------
# Middleware
# -------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.add_middleware(RequestLoggingMiddleware)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# -------------------------------------------------
# Error handlers
# -------------------------------------------------

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Structured bodies pass through as-is; plain details are wrapped."""
    content = exc.detail if isinstance(exc.detail, dict) else error_body(str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(httpx.HTTPStatusError)
async def upstream_status_handler(request: Request, exc: httpx.HTTPStatusError):
    """Upstream 4xx keeps its status; upstream 5xx becomes 502."""
    upstream_status = exc.response.status_code
    status_code = upstream_status if 400 <= upstream_status < 500 else 502
    logger.error(f"Upstream {upstream_status} on {request.method} {request.url.path}: {exc.request.url}")
    return JSONResponse(
        status_code=status_code,
        content=error_body(upstream_message(exc, "Upstream request failed"), exc),
    )


@app.exception_handler(httpx.TransportError)
async def upstream_unreachable_handler(request: Request, exc: httpx.TransportError):
    logger.error(f"Upstream unreachable on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content=error_body("Upstream service unavailable", exc))


@app.exception_handler(BaserowConfigError)
async def baserow_config_handler(request: Request, exc: BaserowConfigError):
    logger.error(f"Baserow misconfigured: {exc}")
    return JSONResponse(status_code=500, content=error_body("Mirror store is not configured", exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content=error_body("Internal server error", exc))


# -------------------------------------------------
# Routers
# -------------------------------------------------

app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(products.router, prefix="/api", tags=["Products"])
app.include_router(orders.router, prefix="/api", tags=["Orders"])
app.include_router(customers.router, prefix="/api", tags=["Customers"])
app.include_router(coupons.router, prefix="/api", tags=["Coupons"])
app.include_router(reports.router, prefix="/api", tags=["Reports"])
app.include_router(sync.router, prefix="/api", tags=["Sync"])


# -------------------------------------------------
# Root
# -------------------------------------------------

@app.get("/", tags=["Root"])
async def root():
    return {"message": f"{settings.APP_NAME} v{settings.APP_VERSION} is running", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("pos_backend.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
