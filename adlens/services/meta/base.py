"""
Base class for the Meta read-model aggregators.

An aggregator invocation goes: cache lookup, ticket from the request tracker,
network collection, error re-classification, and a cache write only when the
invocation was not superseded in the meantime. A collector that could only
load part of its data returns a PartialResult, which is handed back to the
caller as-is and never cached.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from adlens.core.exceptions import MetaAPIError, classify_error
from adlens.schemas.common import DateRange
from adlens.services.meta.batch import BatchExecutor
from adlens.services.meta.cache import ResponseCache
from adlens.services.meta.creative import CREATIVE_FIELDS
from adlens.services.meta.graph_client import MetaGraphClient, normalize_ad_account_id
from adlens.services.meta.insights import INSIGHT_FIELDS
from adlens.services.meta.tracker import FetchState, RequestTracker

logger = logging.getLogger(__name__)

ADS_PAGE_SIZE = 100


@dataclass
class PartialResult:
    """Usable data collected while Meta refused part of the request. Never cached."""
    value: Any
    error: MetaAPIError


class MetaAggregator:
    """Shared fetch pipeline. Subclasses set `kind` and call `run()`."""

    kind: str = "meta"

    def __init__(
        self,
        client: MetaGraphClient,
        cache: ResponseCache,
        tracker: RequestTracker,
        batch: Optional[BatchExecutor] = None,
        ttl: Optional[float] = None,
    ):
        self.client = client
        self.cache = cache
        self.tracker = tracker
        self.batch = batch
        self.ttl = ttl

    async def run(
        self,
        access_token: str,
        collect: Callable[[], Awaitable[Any]],
        account_id: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> Any:
        key = self.cache.make_key(self.kind, access_token, account_id, date_range)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {self.kind} ({account_id or 'all accounts'})")
            return cached

        scope = self.cache.make_key(self.kind, access_token, account_id)
        ticket = self.tracker.begin(scope)
        try:
            result = await collect()
        except Exception as e:
            self.tracker.finish(scope, ticket, FetchState.FAILED)
            classified = classify_error(e)
            if classified is e:
                raise
            raise classified from e

        current = self.tracker.finish(scope, ticket, FetchState.SUCCESS)
        if isinstance(result, PartialResult):
            logger.warning(
                f"Not caching partial {self.kind} result for {account_id or 'all accounts'}: "
                f"{result.error.error_code}"
            )
        elif current:
            self.cache.set(key, result, self.ttl)
        else:
            logger.info(f"Discarding superseded {self.kind} result for {account_id or 'all accounts'}")
        return result

    async def fetch_ads(
        self,
        access_token: str,
        account_id: str,
        date_range: DateRange,
        active_only: bool = False,
        max_items: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Ads of an account with creative and range insights inlined via field expansion."""
        time_range = json.dumps(date_range.as_time_range(), separators=(",", ":"))
        params: Dict[str, Any] = {
            "fields": (
                f"id,name,effective_status,creative{{{CREATIVE_FIELDS}}},"
                f"insights.time_range({time_range}){{{INSIGHT_FIELDS}}}"
            ),
            "limit": ADS_PAGE_SIZE,
        }
        if active_only:
            params["filtering"] = json.dumps(
                [{"field": "effective_status", "operator": "IN", "value": ["ACTIVE"]}]
            )
        ads = await self.client.get_paginated(
            f"{normalize_ad_account_id(account_id)}/ads",
            access_token,
            params,
            max_items=max_items,
        )
        if active_only:
            ads = [ad for ad in ads if ad.get("effective_status") == "ACTIVE"]
        return ads
