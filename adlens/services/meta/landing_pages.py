"""
Landing page performance

Ads are grouped by the destination URL of their creative and their insight
counters summed, so a page shared by several ads reports one row.
"""
import logging
from typing import Dict, List

from adlens.schemas.common import DateRange
from adlens.schemas.meta import LandingPageStat
from adlens.services.meta.base import MetaAggregator
from adlens.services.meta.creative import extract_landing_url
from adlens.services.meta.graph_client import normalize_ad_account_id
from adlens.services.meta.insights import InsightMetrics, ad_insight_row, parse_insight_row

logger = logging.getLogger(__name__)

MAX_ADS = 100


class LandingPageAggregator(MetaAggregator):
    kind = "landing_pages"

    async def fetch_landing_pages(
        self,
        access_token: str,
        account_id: str,
        date_range: DateRange,
    ) -> List[LandingPageStat]:
        act_id = normalize_ad_account_id(account_id)

        async def collect() -> List[LandingPageStat]:
            ads = await self.fetch_ads(access_token, act_id, date_range, max_items=MAX_ADS)
            groups: Dict[str, InsightMetrics] = {}
            counts: Dict[str, int] = {}
            for ad in ads:
                url = extract_landing_url(ad.get("creative"))
                if not url:
                    continue
                groups.setdefault(url, InsightMetrics()).add(parse_insight_row(ad_insight_row(ad)))
                counts[url] = counts.get(url, 0) + 1

            pages = [
                LandingPageStat(
                    url=url,
                    ad_count=counts[url],
                    clicks=metrics.clicks,
                    impressions=metrics.impressions,
                    spend=metrics.spend,
                    conversions=metrics.conversions,
                    ctr=metrics.ctr,
                    conversion_rate=metrics.conversion_rate,
                    cost_per_conversion=metrics.cost_per_conversion,
                )
                for url, metrics in groups.items()
                if metrics.impressions > 0
            ]
            pages.sort(key=lambda p: p.conversion_rate, reverse=True)
            logger.debug(f"{len(pages)} landing pages from {len(ads)} ads in {act_id}")
            return pages

        return await self.run(access_token, collect, account_id=act_id, date_range=date_range)
