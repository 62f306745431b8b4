"""
Insight row parsing and derived marketing metrics.

Graph API insight values arrive as strings. Clicks are link clicks, and
conversions come from the first recognized purchase action so the same
purchase is never counted twice under different action types.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

# Priority order, first match only
CONVERSION_ACTION_TYPES = ("omni_purchase", "purchase", "onsite_conversion.purchase")

LINK_CLICK_ACTION_TYPES = ("link_click", "outbound_click", "landing_page_view")

INSIGHT_FIELDS = "spend,impressions,clicks,inline_link_clicks,cpm,actions,action_values"


def to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def to_int(value: Any) -> int:
    return int(to_float(value))


def safe_divide(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _action_lookup(actions: Any) -> Dict[str, Any]:
    if not isinstance(actions, list):
        return {}
    return {
        a.get("action_type"): a.get("value")
        for a in actions
        if isinstance(a, dict) and a.get("action_type")
    }


def extract_link_clicks(row: Dict[str, Any]) -> int:
    """inline_link_clicks, then link-type actions, then the generic clicks field."""
    if row.get("inline_link_clicks") is not None:
        return to_int(row["inline_link_clicks"])
    actions = _action_lookup(row.get("actions"))
    for action_type in LINK_CLICK_ACTION_TYPES:
        if action_type in actions:
            return to_int(actions[action_type])
    return to_int(row.get("clicks"))


def extract_conversions(row: Dict[str, Any]) -> Tuple[int, float]:
    """(count, value) of the first recognized purchase action."""
    actions = _action_lookup(row.get("actions"))
    values = _action_lookup(row.get("action_values"))
    for action_type in CONVERSION_ACTION_TYPES:
        if action_type in actions:
            return to_int(actions[action_type]), to_float(values.get(action_type))
    return 0, 0.0


@dataclass
class InsightMetrics:
    """Raw counters of one insight row (or a sum of rows) with derived ratios"""
    spend: float = 0.0
    impressions: int = 0
    clicks: int = 0
    conversions: int = 0
    conversion_value: float = 0.0
    vendor_cpm: Optional[float] = None

    @property
    def ctr(self) -> float:
        return safe_divide(self.clicks, self.impressions) * 100

    @property
    def cpc(self) -> float:
        return safe_divide(self.spend, self.clicks)

    @property
    def cpm(self) -> float:
        if self.vendor_cpm is not None:
            return self.vendor_cpm
        return safe_divide(self.spend, self.impressions) * 1000

    @property
    def cost_per_conversion(self) -> float:
        return safe_divide(self.spend, self.conversions)

    @property
    def conversion_rate(self) -> float:
        return safe_divide(self.conversions, self.clicks) * 100

    @property
    def roas(self) -> float:
        return safe_divide(self.conversion_value, self.spend)

    def add(self, other: "InsightMetrics") -> None:
        self.spend += other.spend
        self.impressions += other.impressions
        self.clicks += other.clicks
        self.conversions += other.conversions
        self.conversion_value += other.conversion_value
        # A sum of rows has no vendor CPM of its own
        self.vendor_cpm = None


def parse_insight_row(row: Optional[Dict[str, Any]]) -> InsightMetrics:
    if not row:
        return InsightMetrics()
    conversions, value = extract_conversions(row)
    cpm = row.get("cpm")
    return InsightMetrics(
        spend=to_float(row.get("spend")),
        impressions=to_int(row.get("impressions")),
        clicks=extract_link_clicks(row),
        conversions=conversions,
        conversion_value=value,
        vendor_cpm=to_float(cpm) if cpm not in (None, "") else None,
    )


def ad_insight_row(ad: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """First row of an ad's inline `insights` expansion, if any."""
    insights = ad.get("insights")
    if not isinstance(insights, dict):
        return None
    data = insights.get("data")
    if isinstance(data, list) and data:
        return data[0]
    return None


def rows_with_dates(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop rows that cannot be placed on the time axis."""
    return [row for row in rows if row.get("date_start")]
