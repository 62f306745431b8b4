"""
Meta Ads dashboard data endpoints
"""
import logging
from typing import Awaitable, List, TypeVar

from fastapi import APIRouter, Depends, Request, Response

from adlens.core.deps import (
    MetaServices,
    get_access_token,
    get_ad_account_id,
    get_date_range,
    get_meta_services,
)
from adlens.core.exceptions import CredentialExpired, MetaAPIError
from adlens.core.session import get_selected_account, set_selected_account
from adlens.schemas.common import DataResponse, DateRange, ListResponse
from adlens.schemas.meta import (
    AccountSelection,
    AdAccount,
    AdCopy,
    BusinessManager,
    Headline,
    LandingPageStat,
    PerformanceRecord,
    TopAd,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meta", tags=["Meta Ads"])

T = TypeVar("T")


async def list_response(fetch: Awaitable[List[T]]) -> ListResponse:
    """Aggregator failures become an empty, flagged list; an expired token escapes as 401."""
    try:
        items = await fetch
    except CredentialExpired:
        raise
    except MetaAPIError as e:
        logger.warning(f"Meta data request failed ({e.error_code}): {e.message}")
        return ListResponse(success=False, message=e.message, error=e.error_code, data=[])
    return ListResponse(data=items, total=len(items))


# ============================================
# Accounts
# ============================================

@router.get("/businesses", response_model=ListResponse[BusinessManager])
async def get_businesses(
    access_token: str = Depends(get_access_token),
    services: MetaServices = Depends(get_meta_services),
):
    """Business managers with their ad accounts; `error` is set when some could not be loaded"""
    try:
        managers, partial_error = await services.hierarchy.resolve_business_hierarchy(access_token)
    except CredentialExpired:
        raise
    except MetaAPIError as e:
        logger.warning(f"Meta data request failed ({e.error_code}): {e.message}")
        return ListResponse(success=False, message=e.message, error=e.error_code, data=[])

    if partial_error is None:
        return ListResponse(data=managers, total=len(managers))
    logger.warning(f"Business hierarchy is incomplete ({partial_error.error_code})")
    return ListResponse(
        data=managers,
        total=len(managers),
        message=partial_error.message,
        error=partial_error.error_code,
    )


@router.get("/accounts/{account_id}", response_model=DataResponse[AdAccount])
async def get_account(
    account_id: str = Depends(get_ad_account_id),
    access_token: str = Depends(get_access_token),
    services: MetaServices = Depends(get_meta_services),
):
    account = await services.account_details.fetch_account_details(access_token, account_id)
    return DataResponse(data=account)


@router.get("/selection", response_model=DataResponse[AccountSelection])
def get_selection(request: Request):
    return DataResponse(data=get_selected_account(request))


@router.post("/selection", response_model=DataResponse[AccountSelection])
def select_account(selection: AccountSelection, response: Response):
    """Remember the business manager / ad account picked in the dashboard"""
    set_selected_account(response, selection)
    return DataResponse(data=selection, message="Account selected")


# ============================================
# Reports
# ============================================

@router.get("/accounts/{account_id}/performance", response_model=ListResponse[PerformanceRecord])
async def get_performance(
    account_id: str = Depends(get_ad_account_id),
    date_range: DateRange = Depends(get_date_range),
    access_token: str = Depends(get_access_token),
    services: MetaServices = Depends(get_meta_services),
):
    """Daily spend, clicks, conversions and derived ratios"""
    return await list_response(
        services.performance.fetch_performance(access_token, account_id, date_range)
    )


@router.get("/accounts/{account_id}/top-ads", response_model=ListResponse[TopAd])
async def get_top_ads(
    account_id: str = Depends(get_ad_account_id),
    date_range: DateRange = Depends(get_date_range),
    access_token: str = Depends(get_access_token),
    services: MetaServices = Depends(get_meta_services),
):
    return await list_response(
        services.top_ads.fetch_top_ads(access_token, account_id, date_range)
    )


@router.get("/accounts/{account_id}/ad-copy", response_model=ListResponse[AdCopy])
async def get_ad_copy(
    account_id: str = Depends(get_ad_account_id),
    date_range: DateRange = Depends(get_date_range),
    access_token: str = Depends(get_access_token),
    services: MetaServices = Depends(get_meta_services),
):
    return await list_response(
        services.ad_copy.fetch_ad_copy(access_token, account_id, date_range)
    )


@router.get("/accounts/{account_id}/headlines", response_model=ListResponse[Headline])
async def get_headlines(
    account_id: str = Depends(get_ad_account_id),
    date_range: DateRange = Depends(get_date_range),
    access_token: str = Depends(get_access_token),
    services: MetaServices = Depends(get_meta_services),
):
    return await list_response(
        services.headlines.fetch_headlines(access_token, account_id, date_range)
    )


@router.get("/accounts/{account_id}/landing-pages", response_model=ListResponse[LandingPageStat])
async def get_landing_pages(
    account_id: str = Depends(get_ad_account_id),
    date_range: DateRange = Depends(get_date_range),
    access_token: str = Depends(get_access_token),
    services: MetaServices = Depends(get_meta_services),
):
    return await list_response(
        services.landing_pages.fetch_landing_pages(access_token, account_id, date_range)
    )
