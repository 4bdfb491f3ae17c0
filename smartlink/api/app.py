"""
FastAPI application for the SmartLink extraction API.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smartlink.api.rate_limit import RATE_LIMIT_MESSAGE, RateLimiter, RateLimitExceededError
from smartlink.api.routes import library
from smartlink.api.schemas import ErrorResponse, HealthResponse
from smartlink.config import Config, config as default_config
from smartlink.services.container import ExtractionServices
from smartlink.services.errors import ExtractionServiceError, RateLimitedError

logger = logging.getLogger(__name__)


def _get_allowed_origins(app_config: Config) -> list[str]:
    """Build list of allowed CORS origins."""
    origins = [o.strip() for o in app_config.cors_origin.split(",") if o.strip()]

    # Allow localhost for development only if DEBUG is enabled
    if app_config.debug:
        for origin in ("http://localhost:3000", "http://127.0.0.1:3000"):
            if origin not in origins:
                origins.append(origin)

    return origins


def _error_body(message: str, error: Optional[str] = None, retryable: bool = False) -> dict:
    return ErrorResponse(message=message, error=error or message, retryable=retryable).model_dump()


def create_app(
    app_config: Optional[Config] = None,
    services: Optional[ExtractionServices] = None,
    rate_limiter: Optional[RateLimiter] = None
) -> FastAPI:
    """Build the app. Injected services/limiter are used as-is (tests)."""
    app_config = app_config or default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = ExtractionServices.from_config(app_config)
        if getattr(app.state, "rate_limiter", None) is None:
            app.state.rate_limiter = RateLimiter.from_config(app_config)

        await app.state.services.init()
        logger.info(f"SmartLink API started on port {app_config.port}")
        yield
        logger.info("Shutting down SmartLink API...")
        await app.state.services.shutdown()
        await app.state.rate_limiter.close()

    app = FastAPI(
        title="SmartLink API",
        description="Metadata extraction for library links",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.services = services
    app.state.rate_limiter = rate_limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_allowed_origins(app_config),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(library.router)

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={"success": False, "error": RATE_LIMIT_MESSAGE, "retryable": True},
            headers=exc.result.headers(),
        )

    @app.exception_handler(ExtractionServiceError)
    async def extraction_error_handler(request: Request, exc: ExtractionServiceError) -> JSONResponse:
        headers = None
        if isinstance(exc, RateLimitedError) and exc.retry_after:
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, retryable=exc.retryable),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        url_invalid = any("url" in err.get("loc", ()) for err in errors)
        message = "Invalid URL" if url_invalid else "Validation failed"
        detail = errors[0].get("msg") if errors else message
        return JSONResponse(status_code=400, content=_error_body(message, error=detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", retryable=True),
        )

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        services = request.app.state.services
        return HealthResponse(
            status="ok",
            llm_configured=bool(services and services.llm_configured),
            cache_backend=services.cache.backend if services else "none",
        )

    return app
