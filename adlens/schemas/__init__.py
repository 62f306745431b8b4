from adlens.schemas.common import DataResponse, DateRange, ErrorResponse, ListResponse
from adlens.schemas.meta import (
    AccountSelection,
    AdAccount,
    AdCopy,
    BusinessManager,
    Headline,
    LandingPageStat,
    PerformanceRecord,
    PlatformInfo,
    TokenData,
    TopAd,
)
