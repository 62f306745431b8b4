"""
Meta authentication endpoints

Login redirect, OAuth callback and disconnect. The callback never renders an
error page; it always redirects back to the dashboard with a status.
"""
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from adlens.core.config import settings
from adlens.core.deps import MetaServices, get_meta_services
from adlens.core.exceptions import MetaAPIError, NoAccountsFound, RateLimitExceeded
from adlens.core.session import (
    OAUTH_STATE_COOKIE,
    clear_meta_session,
    get_access_token_cookie,
    set_meta_session,
    set_oauth_state,
)
from adlens.schemas.common import DataResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/meta", tags=["Authentication"])

ERROR_MESSAGES = {
    "rate_limited": "Meta is temporarily limiting requests. Please try again in a few minutes.",
    "no_accounts": "No Meta ad accounts were found for this user.",
    "auth_failed": "Failed to connect to Meta. Please reconnect your account.",
}


def dashboard_redirect(**params: str) -> RedirectResponse:
    query = urlencode({"platform": "meta", **params})
    return RedirectResponse(url=f"{settings.DASHBOARD_URL}?{query}", status_code=status.HTTP_302_FOUND)


def error_redirect(error: str) -> RedirectResponse:
    response = dashboard_redirect(status="error", error=error, message=ERROR_MESSAGES[error])
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/")
    return response


@router.get("/login")
def meta_login(services: MetaServices = Depends(get_meta_services)):
    """Redirect to the Meta login dialog"""
    if not services.oauth.app_id:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Meta login is not configured",
        )

    state = services.oauth.generate_state()
    response = RedirectResponse(
        url=services.oauth.get_authorization_url(state),
        status_code=status.HTTP_302_FOUND,
    )
    set_oauth_state(response, state)
    return response


@router.get("/callback")
async def meta_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    services: MetaServices = Depends(get_meta_services),
):
    """
    OAuth callback from Meta.

    Exchanges the code, loads the business hierarchy and stores both in
    cookies before redirecting to the dashboard.
    """
    if error:
        logger.warning(f"Meta login denied: {error} ({error_description})")
        return error_redirect("auth_failed")

    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not expected_state or state != expected_state:
        logger.warning("Meta callback state does not match the login request")
        return error_redirect("auth_failed")

    try:
        token = await services.oauth.exchange_code_for_token(code or "")
        managers, partial_error = await services.hierarchy.resolve_business_hierarchy(token.access_token)
    except RateLimitExceeded as e:
        logger.warning(f"Meta callback rate limited: {e}")
        return error_redirect("rate_limited")
    except NoAccountsFound as e:
        logger.info(f"Meta callback found no ad accounts: {e}")
        return error_redirect("no_accounts")
    except MetaAPIError as e:
        logger.error(f"Meta callback failed ({e.error_code}): {e}")
        return error_redirect("auth_failed")

    if partial_error is None:
        response = dashboard_redirect(status="connected")
    else:
        logger.warning(f"Meta connected with an incomplete hierarchy ({partial_error.error_code})")
        response = dashboard_redirect(status="connected", warning=partial_error.error_code)
    set_meta_session(response, token, managers)
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/")
    logger.info(f"Meta connected with {len(managers)} business managers")
    return response


@router.post("/disconnect", response_model=DataResponse[dict])
def meta_disconnect(
    request: Request,
    response: Response,
    services: MetaServices = Depends(get_meta_services),
):
    """Forget the Meta connection and its cached data"""
    token = get_access_token_cookie(request)
    removed = services.cache.clear(token) if token else 0
    clear_meta_session(response)
    return DataResponse(data={"cleared_cache_entries": removed}, message="Meta account disconnected")
