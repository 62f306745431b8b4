"""
Graph API batch executor

Packs several GET calls into a single POST to the Graph root. Per-item
failures are reported on the matching BatchResult and never abort siblings.
A failure of the outer call fails the whole batch with BatchRequestFailed.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from adlens.core.exceptions import (
    BatchRequestFailed,
    GraphAPIError,
    MetaAPIError,
    RateLimitExceeded,
    is_rate_limit_payload,
)
from adlens.services.meta.graph_client import MetaGraphClient

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10
DEFAULT_CHUNK_DELAY = 1.0


def build_relative_url(path: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Relative URL for a batch item, e.g. me/adaccounts?fields=id,name&limit=100"""
    path = path.strip("/")
    if not params:
        return path
    return f"{path}?{urlencode(params, safe=',{}()')}"


@dataclass
class BatchRequest:
    """One logical call inside a batch"""
    relative_url: str
    method: str = "GET"

    def to_payload(self) -> Dict[str, str]:
        return {"method": self.method, "relative_url": self.relative_url}


@dataclass
class BatchResult:
    """Outcome of one batch item. `code` is 0 when Meta returned no response for it."""
    code: int
    body: Any = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.code == 200 and self.error is None

    @property
    def is_rate_limited(self) -> bool:
        return self.code == 429 or is_rate_limit_payload(self.error)

    @property
    def rows(self) -> List[Dict[str, Any]]:
        """`data` list of a successful edge response, else empty"""
        if not self.ok or not isinstance(self.body, dict):
            return []
        data = self.body.get("data")
        return data if isinstance(data, list) else []


class BatchExecutor:
    """Runs batches through the shared Graph client."""

    def __init__(
        self,
        client: MetaGraphClient,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_delay: float = DEFAULT_CHUNK_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self._sleep = sleep

    async def execute_batch(
        self,
        access_token: str,
        requests: Sequence[BatchRequest],
    ) -> List[BatchResult]:
        """
        Send one batch and demultiplex the per-item responses.

        Returns:
            One BatchResult per request, in request order

        Raises:
            BatchRequestFailed: The batch call itself failed
            RateLimitExceeded: The batch call stayed rate limited through retries
        """
        if not requests:
            return []

        form = {
            "batch": json.dumps([r.to_payload() for r in requests]),
            "include_headers": "false",
        }
        try:
            payload = await self.client.post("", access_token, data=form)
        except RateLimitExceeded:
            raise
        except GraphAPIError as e:
            raise BatchRequestFailed(
                "Batch request rejected by Meta",
                details={"size": len(requests)},
                vendor_error=e,
            ) from e
        except MetaAPIError as e:
            raise BatchRequestFailed(
                f"Batch request failed: {e.message}",
                details={"size": len(requests)},
            ) from e

        if not isinstance(payload, list) or len(payload) != len(requests):
            raise BatchRequestFailed(
                "Batch response does not match the request list",
                details={
                    "size": len(requests),
                    "received": len(payload) if isinstance(payload, list) else None,
                },
            )

        results = [_parse_item(item) for item in payload]
        for request, result in zip(requests, results):
            if not result.ok:
                message = (result.error or {}).get("message")
                logger.warning(
                    f"Batch item {request.relative_url.split('?', 1)[0]} failed "
                    f"with code {result.code}: {message}"
                )
        return results

    async def execute_chunked(
        self,
        access_token: str,
        requests: Sequence[BatchRequest],
        chunk_size: Optional[int] = None,
        chunk_delay: Optional[float] = None,
    ) -> List[BatchResult]:
        """Run requests as sequential batches of at most chunk_size, pausing between chunks."""
        size = chunk_size or self.chunk_size
        delay = self.chunk_delay if chunk_delay is None else chunk_delay

        results: List[BatchResult] = []
        for start in range(0, len(requests), size):
            if start and delay > 0:
                await self._sleep(delay)
            results.extend(await self.execute_batch(access_token, requests[start:start + size]))
        return results


def _parse_item(item: Any) -> BatchResult:
    if item is None:
        # Meta drops items it could not finish in time
        return BatchResult(code=0, error={"message": "No response for batch item (timed out)"})

    code = item.get("code") or 0
    body = item.get("body")
    if isinstance(body, str):
        try:
            body = json.loads(body) if body else None
        except ValueError:
            return BatchResult(code=code, error={"message": "Batch item body is not JSON"})

    error = None
    if isinstance(body, dict) and "error" in body:
        error = body["error"] if isinstance(body["error"], dict) else {"message": str(body["error"])}
    elif code != 200:
        error = {"message": f"HTTP {code}", "code": code}

    return BatchResult(code=code, body=body, error=error)
