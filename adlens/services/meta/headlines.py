"""
Headlines grouped across the ads that use them
"""
from typing import Dict, List

from adlens.schemas.common import DateRange
from adlens.schemas.meta import Headline
from adlens.services.meta.base import MetaAggregator
from adlens.services.meta.creative import extract_headline
from adlens.services.meta.graph_client import normalize_ad_account_id
from adlens.services.meta.insights import InsightMetrics, ad_insight_row, parse_insight_row


class HeadlineExtractor(MetaAggregator):
    kind = "headlines"

    async def fetch_headlines(
        self,
        access_token: str,
        account_id: str,
        date_range: DateRange,
    ) -> List[Headline]:
        act_id = normalize_ad_account_id(account_id)

        async def collect() -> List[Headline]:
            ads = await self.fetch_ads(access_token, act_id, date_range)
            groups: Dict[str, InsightMetrics] = {}
            counts: Dict[str, int] = {}
            for ad in ads:
                text = extract_headline(ad.get("creative"))
                if not text:
                    continue
                groups.setdefault(text, InsightMetrics()).add(parse_insight_row(ad_insight_row(ad)))
                counts[text] = counts.get(text, 0) + 1

            headlines = [
                Headline(
                    text=text,
                    ad_count=counts[text],
                    impressions=metrics.impressions,
                    clicks=metrics.clicks,
                    spend=metrics.spend,
                    conversions=metrics.conversions,
                    ctr=metrics.ctr,
                )
                for text, metrics in groups.items()
            ]
            headlines.sort(key=lambda h: h.ctr, reverse=True)
            return headlines

        return await self.run(access_token, collect, account_id=act_id, date_range=date_range)
