#!/usr/bin/env python3
"""Watch one day of fleet dispatch data.

Opens the day's schedules and daily-status views and prints the dashboard
counters plus the message text of every schedule. With ``--follow`` the
summary is reprinted whenever a change notification arrives.

Usage
-----
Set environment variables and run::

    export FLEET_BASE_URL="https://docs.example.com"
    export FLEET_PROJECT="acme"
    export FLEET_API_KEY="..."
    python scripts/watch_day.py 2024-05-02

Options::

    --follow             Keep running and reprint on every change
    --json               Output the raw records as JSON
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleetsync import FleetClient, FleetConfig, LiveCollection  # noqa: E402
from fleetsync.messages import compose_schedule_message  # noqa: E402
from fleetsync.stats import operation_stats, vehicle_stats  # noqa: E402
from fleetsync.views import format_locale_number, weight_by_category  # noqa: E402


def _summary(day: str, schedules: LiveCollection, status: LiveCollection) -> str:
    schedule_rows = schedules.records()
    status_rows = status.records()
    vehicles = vehicle_stats(schedule_rows)
    operations = operation_stats(status_rows)

    out = [f"── {day} ──"]
    out.append(
        f"  vehicles  : {vehicles.programmed} programmed, "
        f"{vehicles.in_transit} in transit, {vehicles.completed} completed"
    )
    out.append(f"  operations: {operations.pending} pending, {operations.completed} completed")
    for industry, total in sorted(weight_by_category(status_rows).items()):
        out.append(f"  {industry:<10}: {format_locale_number(total)} kg")
    for schedule in schedule_rows:
        message = compose_schedule_message(schedule, day)
        if message:
            out.append("")
            out.append(message)
    return "\n".join(out)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Print one day of schedules and daily status.")
    parser.add_argument("day", nargs="?", default=date.today().isoformat(), help="Day as YYYY-MM-DD")
    parser.add_argument("--follow", action="store_true", help="Keep running and reprint on change")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output raw records as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = FleetConfig.from_env(mqtt_enabled=args.follow)

    async with FleetClient(config) as client:
        schedules = await client.open_schedules(args.day)
        status = await client.open_daily_status(args.day)
        for live in (schedules, status):
            if live.error is not None:
                print(f"{live.collection}: {live.error}", file=sys.stderr)
                return

        if args.json_mode:
            payload = {"schedules": schedules.records(), "daily-status": status.records()}
            print(json.dumps(payload, indent=2, ensure_ascii=False))
            return

        print(_summary(args.day, schedules, status))
        if not args.follow:
            return

        changed = asyncio.Event()
        schedules.add_listener(changed.set)
        status.add_listener(changed.set)
        while True:
            await changed.wait()
            changed.clear()
            print()
            print(_summary(args.day, schedules, status))


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
