"""
Top active ads ranked by a spend/CTR performance score
"""
import logging
from typing import Any, Dict, List, Tuple

from adlens.schemas.common import DateRange
from adlens.schemas.meta import TopAd
from adlens.services.meta.base import MetaAggregator
from adlens.services.meta.creative import extract_image
from adlens.services.meta.graph_client import normalize_ad_account_id
from adlens.services.meta.insights import InsightMetrics, ad_insight_row, parse_insight_row

logger = logging.getLogger(__name__)

TOP_ADS_LIMIT = 10
SPEND_WEIGHT = 0.6
CTR_WEIGHT = 0.4


def performance_score(metrics: InsightMetrics) -> float:
    return metrics.spend * SPEND_WEIGHT + metrics.ctr * CTR_WEIGHT


def build_top_ad(ad: Dict[str, Any], metrics: InsightMetrics) -> TopAd:
    return TopAd(
        id=ad["id"],
        name=ad.get("name") or ad["id"],
        image=extract_image(ad.get("creative")),
        spend=metrics.spend,
        impressions=metrics.impressions,
        clicks=metrics.clicks,
        ctr=metrics.ctr,
        cpc=metrics.cpc,
        conversions=metrics.conversions,
        cost_per_conversion=metrics.cost_per_conversion,
        roas=metrics.roas,
    )


class TopAdsRanker(MetaAggregator):
    kind = "top_ads"

    async def fetch_top_ads(
        self,
        access_token: str,
        account_id: str,
        date_range: DateRange,
        limit: int = TOP_ADS_LIMIT,
    ) -> List[TopAd]:
        act_id = normalize_ad_account_id(account_id)

        async def collect() -> List[TopAd]:
            ads = await self.fetch_ads(access_token, act_id, date_range, active_only=True)
            scored: List[Tuple[float, TopAd]] = []
            for ad in ads:
                row = ad_insight_row(ad)
                # ads that did not deliver in the range are not ranked
                if not ad.get("id") or row is None:
                    continue
                metrics = parse_insight_row(row)
                scored.append((performance_score(metrics), build_top_ad(ad, metrics)))
            # Stable sort keeps Meta's order for equal scores
            scored.sort(key=lambda pair: pair[0], reverse=True)
            return [top_ad for _, top_ad in scored[:limit]]

        return await self.run(access_token, collect, account_id=act_id, date_range=date_range)
