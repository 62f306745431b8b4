"""
Meta OAuth2 Integration Service
Authorization Code Flow
"""
import logging
import secrets
from typing import List, Optional
from urllib.parse import urlencode

from adlens.core.config import settings
from adlens.core.exceptions import (
    AuthExchangeFailed,
    GraphAPIError,
    MalformedResponse,
    RateLimitExceeded,
    TransportFailure,
)
from adlens.schemas.meta import TokenData
from adlens.services.meta.graph_client import MetaGraphClient

logger = logging.getLogger(__name__)


class MetaOAuthService:
    """Service for Meta (Facebook Login) OAuth2 integration"""

    def __init__(
        self,
        client: MetaGraphClient,
        app_id: Optional[str] = None,
        app_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        dialog_url: Optional[str] = None,
    ):
        self.client = client
        self.app_id = app_id or settings.META_APP_ID
        self.app_secret = app_secret or settings.META_APP_SECRET
        self.redirect_uri = redirect_uri or settings.META_REDIRECT_URI
        self.scopes = scopes or settings.meta_scopes
        self.dialog_url = (
            dialog_url
            or f"{settings.FACEBOOK_OAUTH_DIALOG_URL.rstrip('/')}/{settings.FACEBOOK_API_VERSION}/dialog/oauth"
        )

    def generate_state(self) -> str:
        """Generate random state for CSRF protection"""
        return secrets.token_urlsafe(32)

    def get_authorization_url(self, state: str) -> str:
        """Build Meta login dialog URL"""
        params = {
            "client_id": self.app_id,
            "redirect_uri": self.redirect_uri,
            "scope": ",".join(self.scopes),
            "response_type": "code",
            "state": state,
        }
        return f"{self.dialog_url}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> TokenData:
        """
        Exchange authorization code for a user access token.

        Raises:
            RateLimitExceeded: Meta kept throttling the exchange
            AuthExchangeFailed: Code rejected, or Meta could not be reached
        """
        if not code:
            raise AuthExchangeFailed("Missing authorization code")

        try:
            payload = await self.client.get(
                "oauth/access_token",
                params={
                    "client_id": self.app_id,
                    "client_secret": self.app_secret,
                    "redirect_uri": self.redirect_uri,
                    "code": code,
                },
            )
        except RateLimitExceeded:
            raise
        except GraphAPIError as e:
            logger.warning(f"Meta token exchange rejected: {e.message}")
            raise AuthExchangeFailed(
                "Meta rejected the authorization code",
                details={"code": e.code, "subcode": e.subcode},
            ) from e
        except (TransportFailure, MalformedResponse) as e:
            logger.error(f"Meta token exchange failed: {e.message}")
            raise AuthExchangeFailed("Could not complete the Meta token exchange") from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise AuthExchangeFailed("Meta token response has no access_token")

        expires_in = payload.get("expires_in")
        return TokenData(
            access_token=payload["access_token"],
            token_type=payload.get("token_type") or "bearer",
            expires_in=int(expires_in) if isinstance(expires_in, (int, float, str)) and str(expires_in).isdigit() else None,
        )
