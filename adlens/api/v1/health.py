"""
Health check endpoints
"""
from fastapi import APIRouter

from adlens.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "graph_api_version": settings.FACEBOOK_API_VERSION,
    }
