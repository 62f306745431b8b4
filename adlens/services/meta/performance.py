"""
Daily account performance time series
"""
import json
import logging
from typing import Any, Dict, List

from adlens.schemas.common import DateRange
from adlens.schemas.meta import PerformanceRecord
from adlens.services.meta.base import MetaAggregator
from adlens.services.meta.graph_client import normalize_ad_account_id
from adlens.services.meta.insights import INSIGHT_FIELDS, parse_insight_row, rows_with_dates

logger = logging.getLogger(__name__)

PERFORMANCE_FIELDS = f"date_start,date_stop,{INSIGHT_FIELDS}"


def build_performance_record(row: Dict[str, Any], platform: str = "facebook") -> PerformanceRecord:
    metrics = parse_insight_row(row)
    return PerformanceRecord(
        platform=platform,
        date=row["date_start"],
        ad_spend=metrics.spend,
        impressions=metrics.impressions,
        clicks=metrics.clicks,
        conversions=metrics.conversions,
        conversion_value=metrics.conversion_value,
        ctr=metrics.ctr,
        cpc=metrics.cpc,
        cpm=metrics.cpm,
        cost_per_conversion=metrics.cost_per_conversion,
        roas=metrics.roas,
    )


class PerformanceAggregator(MetaAggregator):
    kind = "performance"

    async def fetch_performance(
        self,
        access_token: str,
        account_id: str,
        date_range: DateRange,
    ) -> List[PerformanceRecord]:
        """One record per day in the range, sorted by date. Days Meta omits are absent."""
        act_id = normalize_ad_account_id(account_id)

        async def collect() -> List[PerformanceRecord]:
            rows = await self.client.get_paginated(
                f"{act_id}/insights",
                access_token,
                {
                    "fields": PERFORMANCE_FIELDS,
                    "level": "account",
                    "time_increment": 1,
                    "time_range": json.dumps(date_range.as_time_range()),
                },
            )
            dated = rows_with_dates(rows)
            if len(dated) != len(rows):
                logger.warning(f"Skipped {len(rows) - len(dated)} insight rows without a date for {act_id}")
            records = [build_performance_record(row) for row in dated]
            records.sort(key=lambda r: r.date)
            return records

        return await self.run(access_token, collect, account_id=act_id, date_range=date_range)
