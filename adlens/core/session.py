"""
Cookie session

All Meta connection state lives in browser cookies. The access token cookie
is httpOnly; the connection flag, expiry and business manager list are
readable by the dashboard.
"""
import json
import time
from typing import List, Optional
from urllib.parse import quote, unquote

from fastapi import Request, Response

from adlens.core.config import settings
from adlens.schemas.meta import AccountSelection, BusinessManager, TokenData

ACCESS_TOKEN_COOKIE = "meta_access_token"
TOKEN_EXPIRES_AT_COOKIE = "meta_token_expires_at"
BUSINESS_MANAGERS_COOKIE = "meta_business_managers"
CONNECTED_COOKIE = "meta_connected"
OAUTH_STATE_COOKIE = "meta_oauth_state"
SELECTED_ACCOUNT_COOKIE = "meta_selected_account"

META_COOKIES = (
    ACCESS_TOKEN_COOKIE,
    TOKEN_EXPIRES_AT_COOKIE,
    BUSINESS_MANAGERS_COOKIE,
    CONNECTED_COOKIE,
    OAUTH_STATE_COOKIE,
    SELECTED_ACCOUNT_COOKIE,
)

OAUTH_STATE_MAX_AGE_SECONDS = 10 * 60


def _set_cookie(response: Response, key: str, value: str, max_age: int, httponly: bool = False):
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        httponly=httponly,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        path="/",
    )


def serialize_business_managers(managers: List[BusinessManager]) -> str:
    """URL-encoded compact JSON for the UI cookie; only what the account picker needs."""
    return quote(json.dumps(
        [
            {
                "id": m.id,
                "name": m.name,
                "ad_accounts": [
                    {"id": a.id, "name": a.name, "currency": a.currency}
                    for a in m.ad_accounts
                ],
            }
            for m in managers
        ],
        separators=(",", ":"),
    ))


def set_meta_session(
    response: Response,
    token: TokenData,
    managers: List[BusinessManager],
    now: Optional[float] = None,
) -> None:
    max_age = token.expires_in or settings.META_TOKEN_DEFAULT_MAX_AGE_SECONDS
    expires_at = int((now if now is not None else time.time()) + max_age)

    _set_cookie(response, ACCESS_TOKEN_COOKIE, token.access_token, max_age, httponly=True)
    _set_cookie(response, TOKEN_EXPIRES_AT_COOKIE, str(expires_at), max_age)
    _set_cookie(response, BUSINESS_MANAGERS_COOKIE, serialize_business_managers(managers), max_age)
    _set_cookie(response, CONNECTED_COOKIE, "true", max_age)


def set_oauth_state(response: Response, state: str) -> None:
    _set_cookie(response, OAUTH_STATE_COOKIE, state, OAUTH_STATE_MAX_AGE_SECONDS, httponly=True)


def set_selected_account(response: Response, selection: AccountSelection) -> None:
    _set_cookie(
        response,
        SELECTED_ACCOUNT_COOKIE,
        quote(selection.model_dump_json()),
        settings.META_TOKEN_DEFAULT_MAX_AGE_SECONDS,
    )


def clear_meta_session(response: Response) -> None:
    for key in META_COOKIES:
        response.delete_cookie(key, path="/")


def get_access_token_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(ACCESS_TOKEN_COOKIE) or None


def is_meta_connected(request: Request) -> bool:
    return bool(get_access_token_cookie(request)) and request.cookies.get(CONNECTED_COOKIE) == "true"


def get_token_expires_at(request: Request) -> Optional[int]:
    value = request.cookies.get(TOKEN_EXPIRES_AT_COOKIE)
    return int(value) if value and value.isdigit() else None


def get_selected_account(request: Request) -> Optional[AccountSelection]:
    value = request.cookies.get(SELECTED_ACCOUNT_COOKIE)
    if not value:
        return None
    try:
        return AccountSelection.model_validate_json(unquote(value))
    except ValueError:
        return None
