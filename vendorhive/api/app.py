"""
FastAPI application entry point with health check and metrics routes.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from tenacity import before_sleep_log, retry, stop_after_attempt, wait_exponential

from vendorhive import __version__
from vendorhive.api.routes import auth, bookings, reviews, services, uploads, users, vendors
from vendorhive.api.middleware.error_handler import register_exception_handlers
from vendorhive.lib.logging import configure_logging, correlation_scope, get_logger
from vendorhive.lib.metrics import get_metrics_collector
from vendorhive.lib.passwords import PasswordHasher
from vendorhive.lib.settings import Settings, settings as default_settings
from vendorhive.services.media_service import MediaService
from vendorhive.storage import Storage, create_storage

logger = get_logger(__name__)


# Correlation ID middleware
class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation_id to all requests for distributed tracing.
    Accepts X-Correlation-ID from incoming requests or generates a new one.
    """

    async def dispatch(self, request: Request, call_next):
        # Get correlation ID from header or generate new one
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())

        # Store in request state for handlers and in the context for log records
        request.state.correlation_id = correlation_id

        with correlation_scope(correlation_id):
            logger.info(
                "Incoming request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "client": request.client.host if request.client else None,
                }
            )

            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id

            logger.info(
                "Response sent",
                extra={"status_code": response.status_code}
            )
            return response


def open_storage(storage: Storage, attempts: int) -> None:
    """Open the storage backend, retrying with exponential backoff."""
    opener = retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.5, max=5),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )(storage.open)
    opener()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager: opens the storage before serving and
    closes it at shutdown. Startup fails if the storage cannot be opened.
    """
    settings: Settings = app.state.settings
    storage: Storage = app.state.storage

    logger.info(
        "VendorHive starting up",
        extra={"storage_backend": storage.name},
    )
    open_storage(storage, settings.storage_connect_attempts)
    try:
        yield
    finally:
        logger.info("VendorHive shutting down")
        storage.close()


def create_app(settings: Optional[Settings] = None, storage: Optional[Storage] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; defaults to the environment-loaded settings
        storage: Backend to use; defaults to the one named in settings
    """
    settings = settings or default_settings
    configure_logging(settings)
    storage = storage or create_storage(settings)

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Marketplace APIs connecting service vendors with customers",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.password_hasher = PasswordHasher(rounds=settings.password_hash_rounds)
    app.state.media_service = MediaService(settings)

    # CORS middleware - configure allowed origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],  # Allow all HTTP methods
        allow_headers=["*"],  # Allow all headers
    )

    # Correlation ID middleware
    app.add_middleware(CorrelationIdMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(vendors.router)
    app.include_router(services.router)
    app.include_router(bookings.router)
    app.include_router(reviews.router)
    app.include_router(uploads.router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok", "storage": app.state.storage.name}

    @app.get("/metrics", include_in_schema=False)
    def metrics_endpoint():
        """
        Prometheus-compatible metrics endpoint.

        Metrics exposed:
        - users_registered_total: Registrations by role
        - bookings_created_total: New bookings
        - booking_status_updates_total: Status changes by new status
        - reviews_created_total: Reviews by star rating
        - services_deleted_total: Removed listings

        Returns:
            Prometheus text format metrics
        """
        metrics = get_metrics_collector()
        return PlainTextResponse(
            content=metrics.export_prometheus(),
            media_type="text/plain; version=0.0.4; charset=utf-8"
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("vendorhive.api.app:app", host="0.0.0.0", port=5000, reload=default_settings.debug)
