"""
Best performing ad copy (primary text)
"""
import logging
from typing import List

from adlens.schemas.common import DateRange
from adlens.schemas.meta import AdCopy
from adlens.services.meta.base import MetaAggregator
from adlens.services.meta.creative import extract_text
from adlens.services.meta.graph_client import normalize_ad_account_id
from adlens.services.meta.insights import InsightMetrics, ad_insight_row, parse_insight_row

logger = logging.getLogger(__name__)

CTR_WEIGHT = 0.4
CONVERSION_RATE_WEIGHT = 0.6


def copy_score(metrics: InsightMetrics) -> float:
    return metrics.ctr * CTR_WEIGHT + metrics.conversion_rate * CONVERSION_RATE_WEIGHT


class AdCopyExtractor(MetaAggregator):
    kind = "ad_copy"

    async def fetch_ad_copy(
        self,
        access_token: str,
        account_id: str,
        date_range: DateRange,
    ) -> List[AdCopy]:
        """
        Ads with text that actually ran in the range, best first.

        Ads without extractable text, impressions or spend are left out.
        """
        act_id = normalize_ad_account_id(account_id)

        async def collect() -> List[AdCopy]:
            ads = await self.fetch_ads(access_token, act_id, date_range)
            ranked = []
            for ad in ads:
                text = extract_text(ad.get("creative"))
                metrics = parse_insight_row(ad_insight_row(ad))
                if not text or metrics.impressions <= 0 or metrics.spend <= 0:
                    continue
                ranked.append((copy_score(metrics), AdCopy(
                    id=ad.get("id") or "",
                    text=text,
                    impressions=metrics.impressions,
                    clicks=metrics.clicks,
                    spend=metrics.spend,
                    conversions=metrics.conversions,
                    ctr=metrics.ctr,
                    conversion_rate=metrics.conversion_rate,
                    cost_per_conversion=metrics.cost_per_conversion,
                )))
            logger.debug(f"{len(ranked)} of {len(ads)} ads in {act_id} have rankable copy")
            ranked.sort(key=lambda pair: pair[0], reverse=True)
            return [copy for _, copy in ranked]

        return await self.run(access_token, collect, account_id=act_id, date_range=date_range)
