#!/usr/bin/env python3
"""CLI tool for inspecting and seeding subway data.

Usage:
    # Create a station
    python -m subway.cli create-station 사당역

    # List stations
    python -m subway.cli list-stations

    # List lines
    python -m subway.cli list-lines

    # Show a line's stations from up terminus to down terminus
    python -m subway.cli show-line <line-id>
"""

import argparse
import asyncio
import sys
import uuid

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from subway.core.database import get_session_factory
from subway.helpers.section_chain import SectionError
from subway.schemas.stations import CreateStationRequest
from subway.services.line_service import LineService
from subway.services.station_service import StationService


async def cmd_create_station(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    Create a station.

    Args:
        args: Parsed command-line arguments
        session: Database session

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        station = await StationService(session).create_station(CreateStationRequest(name=args.name))
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1

    print("✅ Created station successfully!")
    print(f"   Station ID: {station.id}")
    print(f"   Name:       {station.name}")
    return 0


async def cmd_list_stations(args: argparse.Namespace, session: AsyncSession) -> int:
    """List all stations."""
    stations = await StationService(session).list_stations()

    if not stations:
        print("No stations found")
        return 0

    print(f"Found {len(stations)} station(s):\n")
    print(f"{'Station ID':<38} Name")
    print("-" * 70)
    for station in stations:
        print(f"{station.id!s:<38} {station.name}")
    return 0


async def cmd_list_lines(args: argparse.Namespace, session: AsyncSession) -> int:
    """List all lines with section counts."""
    lines = await LineService(session).list_lines()

    if not lines:
        print("No lines found")
        return 0

    print(f"Found {len(lines)} line(s):\n")
    print(f"{'Line ID':<38} {'Name':<20} {'Color':<15} Sections")
    print("-" * 90)
    for line in lines:
        print(f"{line.id!s:<38} {line.name:<20} {line.color:<15} {len(line.sections)}")
    return 0


async def cmd_show_line(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    Print a line's stations in up → down order with section distances.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        line_id = uuid.UUID(args.line_id)
    except ValueError:
        print(f"❌ Error: Invalid UUID '{args.line_id}'", file=sys.stderr)
        return 1

    try:
        line = await LineService(session).get_line_by_id(line_id)
        chain = line.to_chain()
    except HTTPException as e:
        print(f"❌ Error: {e.detail}", file=sys.stderr)
        return 1
    except SectionError as e:
        print(f"❌ Error: {e.message}", file=sys.stderr)
        return 1

    names = {}
    for row in line.sections:
        names[row.up_station_id] = row.up_station.name
        names[row.down_station_id] = row.down_station.name

    print(f"{line.name} ({line.color}) - {chain.section_count()} section(s), total distance {chain.total_distance()}\n")
    print(names[chain.up_terminus])
    for section in chain.ordered_sections():
        print(f"  | {section.distance}")
        print(names[section.down_station_id])
    return 0


def main() -> int:
    """
    Main entry point for the CLI tool.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="Subway data CLI tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m subway.cli create-station 당고개역
  python -m subway.cli list-stations
  python -m subway.cli list-lines
  python -m subway.cli show-line 550e8400-e29b-41d4-a716-446655440000
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    create_station_parser = subparsers.add_parser(
        "create-station",
        help="Create a new station",
    )
    create_station_parser.add_argument("name", type=str, help="Station name")

    subparsers.add_parser("list-stations", help="List all stations")
    subparsers.add_parser("list-lines", help="List all lines")

    show_line_parser = subparsers.add_parser(
        "show-line",
        help="Show a line's stations in order",
        description="Print stations from the up terminus to the down terminus with section distances.",
    )
    show_line_parser.add_argument("line_id", type=str, help="Line UUID")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    command_handlers = {
        "create-station": cmd_create_station,
        "list-stations": cmd_list_stations,
        "list-lines": cmd_list_lines,
        "show-line": cmd_show_line,
    }

    if handler := command_handlers.get(args.command):

        async def run_with_session() -> int:
            async with get_session_factory()() as session:
                return await handler(args, session)

        return asyncio.run(run_with_session())

    print(f"❌ Unknown command: {args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
