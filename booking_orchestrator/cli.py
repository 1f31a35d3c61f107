"""
Command-line entry point for checking availability outside a voice session.

Usage:
    booking-orchestrator slots   --location loc_1 --service "Swedish Massage" --date tomorrow
    booking-orchestrator package --location loc_1 --package "Deluxe Spa Day"
    booking-orchestrator schedule --location loc_1 --service "Swedish Massage"

The directory comes from ``DIRECTORY_FILE`` (or Supabase when
``DIRECTORY_BACKEND=supabase``); the bearer token from ``CALENDAR_ACCESS_TOKEN``.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Optional

from booking_orchestrator.clients.directory import InMemoryDirectoryStore
from booking_orchestrator.clients.tokens import StaticTokenProvider
from booking_orchestrator.config import settings
from booking_orchestrator.container import Orchestrator, create_directory, create_orchestrator
from booking_orchestrator.errors import BookingError
from booking_orchestrator.logging_context import call_scope
from booking_orchestrator.tools.availability import (
    check_availability,
    check_package_availability,
    get_open_days,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="booking-orchestrator",
        description="Check calendar availability the way the voice agent does.",
    )
    parser.add_argument("--location", required=True, help="Location (sub-account) id")
    parser.add_argument("--directory-file", help="JSON directory fixture (overrides DIRECTORY_FILE)")
    sub = parser.add_subparsers(dest="command", required=True)

    slots = sub.add_parser("slots", help="Find the next openings")
    slots.add_argument("--service")
    slots.add_argument("--date", help='e.g. "tomorrow", "next friday", "2026-10-23"')
    slots.add_argument("--time", help='e.g. "2pm", "14:30"')
    slots.add_argument("--time-preference", choices=["morning", "afternoon", "any"])
    slots.add_argument("--staff")
    slots.add_argument("--gender")

    package = sub.add_parser("package", help="Preview days a package fits")
    package.add_argument("--package", required=True)
    package.add_argument("--date")
    package.add_argument("--time-preference", choices=["morning", "afternoon", "any"])

    schedule = sub.add_parser("schedule", help="Describe usual open days")
    schedule.add_argument("--service")
    return parser


async def _dispatch(orchestrator: Orchestrator, args: argparse.Namespace) -> dict[str, Any]:
    if args.command == "slots":
        return dict(
            await check_availability(
                orchestrator,
                service_name=args.service,
                date=args.date,
                time=args.time,
                time_preference=args.time_preference,
                staff_name=args.staff,
                gender_preference=args.gender,
            )
        )
    if args.command == "package":
        return dict(
            await check_package_availability(
                orchestrator, args.package, date=args.date, time_preference=args.time_preference
            )
        )
    return dict(await get_open_days(orchestrator, service_name=args.service))


async def _run(args: argparse.Namespace) -> dict[str, Any]:
    if args.directory_file:
        directory = InMemoryDirectoryStore.from_file(args.directory_file)
    else:
        directory = create_directory()
    tokens = StaticTokenProvider(settings.api.access_token)
    with call_scope(location_id=args.location):
        async with create_orchestrator(args.location, directory, tokens) as orchestrator:
            return await _dispatch(orchestrator, args)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        result = asyncio.run(_run(args))
    except BookingError as exc:
        logger.error("%s", exc)
        print(exc.voice_message)
        return 1
    print(result.get("message", ""))
    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
