"""
Pull a Meta report from the command line with a token from .env

Usage:
    python scripts/meta_report.py businesses
    python scripts/meta_report.py performance --account 1234567890 --days 7
    python scripts/meta_report.py landing-pages --account act_1234567890 --start 2024-06-01 --end 2024-06-30
"""
import argparse
import asyncio
import json
import os
import sys
from datetime import date

from dotenv import load_dotenv

load_dotenv()

from adlens.core.deps import build_meta_services  # noqa: E402
from adlens.core.exceptions import MetaAPIError  # noqa: E402
from adlens.core.logger_setup import setup_logging  # noqa: E402
from adlens.schemas.common import DateRange  # noqa: E402

REPORTS = ("businesses", "account", "performance", "top-ads", "ad-copy", "headlines", "landing-pages")


async def run_report(args, access_token: str):
    services = build_meta_services()
    if args.start or args.end:
        date_range = DateRange(
            start_date=date.fromisoformat(args.start or args.end),
            end_date=date.fromisoformat(args.end or date.today().isoformat()),
        )
    else:
        date_range = DateRange.last_days(args.days)

    try:
        if args.report == "businesses":
            return await services.hierarchy.fetch_business_hierarchy(access_token)
        if args.report == "account":
            return await services.account_details.fetch_account_details(access_token, args.account)
        fetchers = {
            "performance": services.performance.fetch_performance,
            "top-ads": services.top_ads.fetch_top_ads,
            "ad-copy": services.ad_copy.fetch_ad_copy,
            "headlines": services.headlines.fetch_headlines,
            "landing-pages": services.landing_pages.fetch_landing_pages,
        }
        return await fetchers[args.report](access_token, args.account, date_range)
    finally:
        await services.client.close()


def main():
    parser = argparse.ArgumentParser(description="Fetch a Meta Ads report as JSON")
    parser.add_argument("report", choices=REPORTS)
    parser.add_argument("--account", type=str, help="Ad account id (with or without act_)")
    parser.add_argument("--days", type=int, default=30, help="Last N days (default 30)")
    parser.add_argument("--start", type=str, help="Start date YYYY-MM-DD")
    parser.add_argument("--end", type=str, help="End date YYYY-MM-DD")
    parser.add_argument("--log-level", type=str, default="WARNING")
    args = parser.parse_args()

    access_token = os.getenv("META_ACCESS_TOKEN")
    if not access_token:
        parser.error("META_ACCESS_TOKEN is not set")
    if args.report != "businesses" and not args.account:
        parser.error(f"--account is required for {args.report}")

    setup_logging(args.log_level)
    try:
        result = asyncio.run(run_report(args, access_token))
    except MetaAPIError as e:
        print(f"❌ {e.error_code}: {e}", file=sys.stderr)
        sys.exit(1)

    if isinstance(result, list):
        payload = [item.model_dump() for item in result]
    else:
        payload = result.model_dump()
    print(json.dumps(payload, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
