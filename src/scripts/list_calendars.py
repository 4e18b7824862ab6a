#!/usr/bin/env python3
"""
List the diary user's calendars from MS365 and check the category calendars.

Usage:
    uv run python src/scripts/list_calendars.py
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import CALENDAR_MAP, CATEGORY_LABELS, DIARY_USER_ID, HIGHLIGHTS_CALENDAR
from services.calendar import GraphCalendarStore, find_calendar, find_category_calendars


async def main():
    """List calendars and report which diary calendars are present."""
    store = GraphCalendarStore(DIARY_USER_ID)

    print(f"Fetching calendars for {DIARY_USER_ID}...\n")
    calendars = await store.list_calendars()

    print(f"Found {len(calendars)} calendars\n")
    print("=" * 80)
    for cal in calendars:
        flags = []
        if cal.is_default:
            flags.append("default")
        if not cal.can_edit:
            flags.append("read-only")
        suffix = f" ({', '.join(flags)})" if flags else ""
        print(f"  - {cal.name}{suffix}")
        print(f"    ID: {cal.id}")
    print("-" * 80)

    found = find_category_calendars(calendars, CALENDAR_MAP)
    print("\nCategory calendars:")
    for category, name in CALENDAR_MAP.items():
        status = "OK" if category in found else "MISSING"
        print(f"  {CATEGORY_LABELS[category]:<15} {name:<40} {status}")

    highlights = find_calendar(calendars, HIGHLIGHTS_CALENDAR)
    print(f"  {'Highlights':<15} {HIGHLIGHTS_CALENDAR:<40} {'OK' if highlights else 'MISSING'}")

    print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
