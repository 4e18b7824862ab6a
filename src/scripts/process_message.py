#!/usr/bin/env python3
"""
Route a free-text message and log it to the diary calendars.

Usage:
    uv run python src/scripts/process_message.py "log coding from 9am to 11am" --offset -420
    uv run python src/scripts/process_message.py "record gym session" --dry-run
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from models.inputs import ProcessMessageInput
from core.config import DIARY_USER_ID
from core.errors import DiaryError
from services.calendar import GraphCalendarStore
from services.diary import DiaryService, ReferenceClock


async def main(message: str, utc_offset: int, dry_run: bool) -> int:
    service = DiaryService(GraphCalendarStore(DIARY_USER_ID))
    clock = ReferenceClock.capture(utc_offset)

    try:
        result = await service.process_message(
            ProcessMessageInput(message=message, auto_execute=not dry_run), clock
        )
    except DiaryError as e:
        print(f"Error [{e.code}]: {e.message}")
        for detail in e.details:
            print(f"  - {detail}")
        return 1

    print(result.text)
    if result.status != "ok" or dry_run:
        print("\n" + json.dumps(result.structured, indent=2, default=str))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Log a free-text activity message")
    parser.add_argument("message", help="e.g. 'log coding from 9am to 11am'")
    parser.add_argument(
        "--offset",
        type=int,
        default=0,
        help="UTC offset in minutes (e.g. -420 for UTC-7)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Extract only, do not create the event",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.message, args.offset, args.dry_run)))
