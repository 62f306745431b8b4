"""
Dependency injection for FastAPI
"""
import asyncio
import time
from dataclasses import dataclass
from datetime import date, timedelta
from functools import lru_cache
from typing import Awaitable, Callable, Optional

import httpx
from fastapi import HTTPException, Path, Query, Request, status
from pydantic import ValidationError

from adlens.core.config import settings
from adlens.core.session import get_access_token_cookie, get_token_expires_at
from adlens.schemas.common import DateRange
from adlens.services.meta import (
    AccountDetailsService,
    AdCopyExtractor,
    BatchExecutor,
    BusinessHierarchyResolver,
    HeadlineExtractor,
    LandingPageAggregator,
    MetaGraphClient,
    MetaOAuthService,
    PerformanceAggregator,
    RateLimiter,
    RequestTracker,
    ResponseCache,
    RetryController,
    TopAdsRanker,
    normalize_ad_account_id,
)

DEFAULT_RANGE_DAYS = 30


@dataclass
class MetaServices:
    """Process-wide Meta access layer instances"""
    rate_limiter: RateLimiter
    retry: RetryController
    client: MetaGraphClient
    cache: ResponseCache
    tracker: RequestTracker
    batch: BatchExecutor
    oauth: MetaOAuthService
    hierarchy: BusinessHierarchyResolver
    account_details: AccountDetailsService
    performance: PerformanceAggregator
    top_ads: TopAdsRanker
    ad_copy: AdCopyExtractor
    headlines: HeadlineExtractor
    landing_pages: LandingPageAggregator


def build_meta_services(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> MetaServices:
    """Wire the access layer from settings. Tests pass a mock transport and a fake clock."""
    rate_limiter = RateLimiter(
        max_requests=settings.META_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.META_RATE_LIMIT_WINDOW_SECONDS,
        min_interval=settings.META_MIN_REQUEST_INTERVAL_SECONDS,
        clock=clock,
        sleep=sleep,
    )
    retry = RetryController(
        max_attempts=settings.META_RETRY_MAX_ATTEMPTS,
        base_delay=settings.META_RETRY_BASE_DELAY_SECONDS,
        max_delay=settings.META_RETRY_MAX_DELAY_SECONDS,
        success_cooldown=settings.META_RETRY_SUCCESS_COOLDOWN_SECONDS,
        sleep=sleep,
    )
    client = MetaGraphClient(rate_limiter, retry=retry, transport=transport)
    cache = ResponseCache(default_ttl=settings.INSIGHTS_CACHE_TTL_SECONDS, clock=clock)
    tracker = RequestTracker()
    batch = BatchExecutor(
        client,
        chunk_size=settings.META_BATCH_CHUNK_SIZE,
        chunk_delay=settings.META_BATCH_CHUNK_DELAY_SECONDS,
        sleep=sleep,
    )
    accounts_ttl = settings.ACCOUNTS_CACHE_TTL_SECONDS
    return MetaServices(
        rate_limiter=rate_limiter,
        retry=retry,
        client=client,
        cache=cache,
        tracker=tracker,
        batch=batch,
        oauth=MetaOAuthService(client),
        hierarchy=BusinessHierarchyResolver(client, cache, tracker, batch, ttl=accounts_ttl),
        account_details=AccountDetailsService(client, cache, tracker, ttl=accounts_ttl),
        performance=PerformanceAggregator(client, cache, tracker),
        top_ads=TopAdsRanker(client, cache, tracker),
        ad_copy=AdCopyExtractor(client, cache, tracker),
        headlines=HeadlineExtractor(client, cache, tracker),
        landing_pages=LandingPageAggregator(client, cache, tracker),
    )


@lru_cache()
def get_meta_services() -> MetaServices:
    """Get the shared access layer instance"""
    return build_meta_services()


def get_access_token(request: Request) -> str:
    """Meta access token from the session cookie"""
    token = get_access_token_cookie(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Meta account is not connected",
        )

    expires_at = get_token_expires_at(request)
    if expires_at is not None and expires_at <= time.time():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Meta session expired, please reconnect",
        )
    return token


def get_date_range(
    start_date: Optional[date] = Query(None, description="Inclusive start (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Inclusive end (YYYY-MM-DD)"),
) -> DateRange:
    """Reporting range; defaults to the last 30 days ending today"""
    if start_date is None and end_date is None:
        return DateRange.last_days(DEFAULT_RANGE_DAYS)

    end = end_date or date.today()
    start = start_date or end - timedelta(days=DEFAULT_RANGE_DAYS - 1)
    try:
        return DateRange(start_date=start, end_date=end)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="start_date must not be after end_date",
        )


def get_ad_account_id(
    account_id: str = Path(..., description="Ad account id, with or without the act_ prefix"),
) -> str:
    """Ad account path segment in act_<id> form"""
    try:
        return normalize_ad_account_id(account_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="account_id must not be blank",
        )
