"""
Ad platform listing
"""
from fastapi import APIRouter, Request

from adlens.core.session import is_meta_connected
from adlens.schemas.common import ListResponse
from adlens.schemas.meta import PlatformInfo
from adlens.services.platforms import list_platforms

router = APIRouter(prefix="/platforms", tags=["Platforms"])


@router.get("", response_model=ListResponse[PlatformInfo])
def get_platforms(request: Request):
    """Platforms the dashboard can show, with their connection state"""
    platforms = list_platforms(meta_connected=is_meta_connected(request))
    return ListResponse(data=platforms, total=len(platforms))
