"""
Meta Graph API HTTP client

Thin async transport over httpx. Every request passes the shared rate limiter,
and rate-limited requests are retried when a RetryController is attached.
Vendor error objects are raised as GraphAPIError; classification into the
dashboard taxonomy happens in the aggregators.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from adlens.core.config import settings
from adlens.core.exceptions import GraphAPIError, MalformedResponse, TransportFailure
from adlens.services.meta.rate_limiter import RateLimiter
from adlens.services.meta.retry import RetryController

logger = logging.getLogger(__name__)


def normalize_ad_account_id(account_id: str) -> str:
    """Return the act_<id> form used in Graph API paths."""
    account_id = str(account_id).strip()
    if not account_id:
        raise ValueError("account_id is required")
    if account_id.startswith("act_"):
        return account_id
    return f"act_{account_id}"


class MetaGraphClient:
    """
    Meta Graph API client shared by the aggregators and the OAuth service.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        retry: Optional[RetryController] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rate_limiter = rate_limiter
        self.retry = retry
        self.base_url = (base_url or settings.facebook_api_url).rstrip("/")
        self.timeout = timeout or settings.META_REQUEST_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    def build_url(self, path: str) -> str:
        path = path.strip("/")
        return f"{self.base_url}/{path}" if path else self.base_url

    # ========================================
    # Requests
    # ========================================

    async def get(
        self,
        path: str,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        params = dict(params or {})
        if access_token:
            params["access_token"] = access_token
        return await self._send("GET", self.build_url(path), params=params)

    async def post(
        self,
        path: str,
        access_token: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        data = dict(data or {})
        if access_token:
            data["access_token"] = access_token
        return await self._send("POST", self.build_url(path), data=data)

    async def get_paginated(
        self,
        path: str,
        access_token: str,
        params: Optional[Dict[str, Any]] = None,
        max_items: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Follow paging.next until exhausted or max_items rows are collected.

        Args:
            path: Edge path relative to the versioned Graph root
            access_token: User access token
            params: Query parameters for the first page
            max_items: Stop once this many rows are collected

        Returns:
            Rows from `data` across all fetched pages
        """
        rows: List[Dict[str, Any]] = []
        payload = await self.get(path, access_token, params)

        while True:
            if not isinstance(payload, dict) or not isinstance(payload.get("data", []), list):
                raise MalformedResponse(
                    f"Expected a paged list from {path}",
                    details={"path": path},
                )
            rows.extend(payload.get("data", []))

            if max_items is not None and len(rows) >= max_items:
                return rows[:max_items]

            next_url = (payload.get("paging") or {}).get("next")
            if not next_url:
                return rows

            logger.debug(f"Fetching next page of {path} ({len(rows)} rows so far)")
            # Next URL already carries every query parameter, token included
            payload = await self._send("GET", next_url)

    # ========================================
    # Transport
    # ========================================

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        async def attempt():
            await self.rate_limiter.acquire()
            return await self._request(method, url, params=params, data=data)

        if self.retry is None:
            return await attempt()
        return await self.retry.execute(attempt, name=f"{method} {_describe(url)}")

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self.client.request(method, url, params=params, data=data)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling {method} {_describe(url)}: {type(e).__name__}")
            raise TransportFailure(
                f"Could not reach the Meta Graph API: {type(e).__name__}",
                details={"method": method, "path": _describe(url)},
            ) from e

        try:
            payload = response.json()
        except ValueError:
            if response.status_code >= 400:
                raise GraphAPIError(
                    f"HTTP {response.status_code} from Meta Graph API",
                    status_code=response.status_code,
                )
            raise MalformedResponse(
                "Meta Graph API returned a non-JSON body",
                details={"status_code": response.status_code, "path": _describe(url)},
            )

        if isinstance(payload, dict) and "error" in payload:
            error = GraphAPIError.from_payload(payload["error"], status_code=response.status_code)
            logger.warning(f"Graph API error on {_describe(url)}: {error}")
            raise error

        if response.status_code >= 400:
            raise GraphAPIError(
                f"HTTP {response.status_code} from Meta Graph API",
                status_code=response.status_code,
            )

        return payload


def _describe(url: str) -> str:
    """URL without the query string, safe to log"""
    return url.split("?", 1)[0]
