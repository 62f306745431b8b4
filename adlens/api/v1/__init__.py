"""
API v1 routes
"""
from fastapi import APIRouter

from adlens.api.v1 import auth, health, meta, platforms

api_router = APIRouter(prefix="/api/v1")

# Include routers
api_router.include_router(auth.router)
api_router.include_router(health.router)
api_router.include_router(meta.router)
api_router.include_router(platforms.router)
