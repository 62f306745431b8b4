"""
Meta read-model schemas
"""
from typing import List, Optional

from pydantic import BaseModel


class TokenData(BaseModel):
    """OAuth access token exchange result"""
    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None


class AdAccount(BaseModel):
    """Meta ad account. `id` is always the act_ form."""
    id: str
    account_id: str
    name: str
    currency: Optional[str] = None
    timezone_name: Optional[str] = None
    account_status: Optional[int] = None
    business_id: Optional[str] = None
    business_name: Optional[str] = None


class BusinessManager(BaseModel):
    """Business manager with the ad accounts it owns or manages"""
    id: str
    name: str
    permitted_tasks: List[str] = []
    ad_accounts: List[AdAccount] = []


class PerformanceRecord(BaseModel):
    """One platform/day of derived performance metrics"""
    platform: str = "facebook"
    date: str
    ad_spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    conversions: int = 0
    conversion_value: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cpm: float = 0.0
    cost_per_conversion: float = 0.0
    roas: float = 0.0


class TopAd(BaseModel):
    """Best performing active ad"""
    id: str
    name: str
    image: Optional[str] = None
    platform: str = "facebook"
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    cpc: float = 0.0
    conversions: int = 0
    cost_per_conversion: float = 0.0
    roas: float = 0.0


class AdCopy(BaseModel):
    """Primary text of an ad with its performance"""
    id: str
    text: str
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    conversions: int = 0
    ctr: float = 0.0
    conversion_rate: float = 0.0
    cost_per_conversion: float = 0.0


class Headline(BaseModel):
    """Headline text aggregated across every ad that uses it"""
    text: str
    ad_count: int = 0
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    conversions: int = 0
    ctr: float = 0.0


class LandingPageStat(BaseModel):
    """Performance of one destination URL across all ads that link to it"""
    url: str
    ad_count: int = 0
    clicks: int = 0
    impressions: int = 0
    spend: float = 0.0
    conversions: int = 0
    ctr: float = 0.0
    conversion_rate: float = 0.0
    cost_per_conversion: float = 0.0


class AccountSelection(BaseModel):
    """Business manager / ad account picked in the dashboard"""
    business_id: Optional[str] = None
    account_id: str


class PlatformInfo(BaseModel):
    """Ad platform and its connection state"""
    id: str
    name: str
    status: str  # connected / disconnected
    supported: bool = True
