#!/usr/bin/env python3
"""
Print time stats for a period and optionally save a chart workbook.

Usage:
    uv run python src/scripts/time_stats.py --period this_week
    uv run python src/scripts/time_stats.py --from 2025-11-01 --to 2025-11-30 --chart bar
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.inputs import TimeStatsInput
from core.config import DIARY_USER_ID, OUTPUT_DIR
from core.errors import DiaryError
from services.calendar import GraphCalendarStore
from services.diary import DiaryService, ReferenceClock
from services.reports import ExcelChartRenderer, save_chart


async def main(args: argparse.Namespace) -> int:
    service = DiaryService(GraphCalendarStore(DIARY_USER_ID), ExcelChartRenderer())
    clock = ReferenceClock.capture(args.offset)

    period = "custom" if args.from_date or args.to_date else args.period
    stats_input = TimeStatsInput(
        period=period,
        date=args.date,
        from_date=args.from_date,
        to_date=args.to_date,
        include_chart=args.chart is not None,
        chart_type=args.chart,
    )

    try:
        result = await service.get_time_stats(stats_input, clock)
    except DiaryError as e:
        print(f"Error [{e.code}]: {e.message}")
        for detail in e.details:
            print(f"  - {detail}")
        return 1

    print(result.text)

    if result.chart is not None:
        start = result.structured["startDate"][:10]
        end = result.structured["endDate"][:10]
        save_chart(result.chart, OUTPUT_DIR / f"time-stats_{start}_{end}.xlsx")
    elif args.chart:
        print("\nNo tracked time, chart skipped.")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Summarize tracked time per category")
    parser.add_argument(
        "--period",
        choices=["today", "yesterday", "this_week", "last_week", "this_month", "last_month"],
        default="this_week",
    )
    parser.add_argument("--date", help="Single date (YYYY-MM-DD)")
    parser.add_argument("--from", dest="from_date", help="Range start (YYYY-MM-DD)")
    parser.add_argument("--to", dest="to_date", help="Range end (YYYY-MM-DD)")
    parser.add_argument("--chart", choices=["bar", "pie", "doughnut"], help="Save a chart workbook")
    parser.add_argument("--offset", type=int, default=0, help="UTC offset in minutes")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args)))
