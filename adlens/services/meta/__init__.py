"""
Meta Graph API access layer
"""
from adlens.services.meta.ad_copy import AdCopyExtractor
from adlens.services.meta.batch import BatchExecutor, BatchRequest, BatchResult
from adlens.services.meta.cache import ResponseCache
from adlens.services.meta.graph_client import MetaGraphClient, normalize_ad_account_id
from adlens.services.meta.headlines import HeadlineExtractor
from adlens.services.meta.hierarchy import AccountDetailsService, BusinessHierarchyResolver
from adlens.services.meta.landing_pages import LandingPageAggregator
from adlens.services.meta.oauth import MetaOAuthService
from adlens.services.meta.performance import PerformanceAggregator
from adlens.services.meta.rate_limiter import RateLimiter
from adlens.services.meta.retry import RetryController
from adlens.services.meta.top_ads import TopAdsRanker
from adlens.services.meta.tracker import FetchState, RequestTracker

__all__ = [
    "AccountDetailsService",
    "AdCopyExtractor",
    "BatchExecutor",
    "BatchRequest",
    "BatchResult",
    "BusinessHierarchyResolver",
    "FetchState",
    "HeadlineExtractor",
    "LandingPageAggregator",
    "MetaGraphClient",
    "MetaOAuthService",
    "PerformanceAggregator",
    "RateLimiter",
    "RequestTracker",
    "ResponseCache",
    "RetryController",
    "TopAdsRanker",
    "normalize_ad_account_id",
]
