import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.concurrency import run_in_threadpool

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .core import errors
from .routers import currency
from .services.rates.base import UnknownCurrencyError
from .services.rates.cache_service import RateCacheService, build_rate_cache_service
from .services.rates.scheduler import RefreshScheduler

logger = logging.getLogger("app")


def build_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc: RateCacheService = app.state.rate_cache
        if settings.fetch_on_startup:
            await run_in_threadpool(svc.prime)
        scheduler = None
        if settings.scheduler_enabled:
            scheduler = RefreshScheduler(
                svc,
                rates_interval=settings.rates_refresh_interval_seconds,
                symbols_at=settings.symbols_refresh_at(),
            )
            scheduler.start()
        app.state.scheduler = scheduler
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()

    return lifespan


def create_app(
    settings_override: Settings | None = None,
    rate_cache: RateCacheService | None = None,
) -> FastAPI:
    """Application factory.

    settings_override: an already constructed Settings instance for tests.
    rate_cache: a prebuilt cache (e.g. over a fake fetcher); when omitted one
    is built from settings. The startup fetch and scheduler run in the lifespan,
    so constructing the app performs no network I/O.
    """
    settings = settings_override or get_settings()
    init_logging(debug=settings.debug)

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=build_lifespan(settings),
    )
    app.state.settings = settings
    app.state.rate_cache = rate_cache or build_rate_cache_service(settings)
    app.state.scheduler = None

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(UnknownCurrencyError, errors.unknown_currency_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(currency.router)

    @app.get("/")
    async def root():
        return {"message": f"{settings.app_name} API", "version": settings.version}

    @app.get("/health")
    async def health():
        state = app.state.rate_cache.state
        return {"status": "ok", "rates_loaded": state.has_rates}

    logger.debug(
        "app created", extra={"base": settings.default_base_currency}
    )
    return app


app = create_app()
