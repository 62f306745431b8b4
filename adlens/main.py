"""
AdLens - FastAPI Application Entry Point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adlens.api.v1 import api_router
from adlens.core.config import settings
from adlens.core.deps import get_meta_services
from adlens.core.exceptions import CredentialExpired, MetaAPIError, NoDataFound, RateLimitExceeded
from adlens.core.logger_setup import setup_logging
from adlens.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}, Graph API {settings.FACEBOOK_API_VERSION}")

    yield

    # Shutdown
    await get_meta_services().client.close()
    logger.info(f"Shutting down {settings.APP_NAME}")


def error_status(exc: MetaAPIError) -> int:
    if isinstance(exc, CredentialExpired):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, RateLimitExceeded):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(exc, NoDataFound):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_502_BAD_GATEWAY


async def meta_error_handler(request: Request, exc: MetaAPIError) -> JSONResponse:
    """Render taxonomy errors that escape a route"""
    logger.warning(f"{request.method} {request.url.path} failed ({exc.error_code}): {exc.message}")
    body = ErrorResponse(error=exc.error_code, detail=exc.message)
    return JSONResponse(status_code=error_status(exc), content=body.model_dump())


def create_app() -> FastAPI:
    """Create FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Meta Ads performance dashboard API",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MetaAPIError, meta_error_handler)

    # Include API routers
    app.include_router(api_router)

    return app


# Create app instance
app = create_app()
