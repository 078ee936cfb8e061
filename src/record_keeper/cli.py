"""Command-line front end for record-keeper.

Usage:
    record-keeper [--backend {sqlite,jsonl}] [--path FILE] [-v] list
    record-keeper [--backend {sqlite,jsonl}] [--path FILE] [-v] add NAME
    record-keeper [--backend {sqlite,jsonl}] [--path FILE] [-v] delete ID

Backend and path default to ``RECORD_KEEPER_BACKEND`` and ``RECORD_KEEPER_PATH``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from collections.abc import Sequence
from pathlib import Path

from record_keeper.config import DEFAULT_PATHS, StoreSettings, create_store
from record_keeper.coordinator import RecordListCoordinator
from record_keeper.errors import RecordStoreError
from record_keeper.models import Record


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the record-keeper CLI."""
    parser = argparse.ArgumentParser(
        prog="record-keeper",
        description="Manage a local list of named records",
    )
    parser.add_argument(
        "--backend",
        choices=sorted(DEFAULT_PATHS),
        help="Storage backend (default: $RECORD_KEEPER_BACKEND or sqlite)",
    )
    parser.add_argument(
        "--path",
        type=Path,
        help="Backend file (default: $RECORD_KEEPER_PATH or records.db / records.jsonl)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("list", help="List stored records")
    add_parser = subparsers.add_parser("add", help="Add a record")
    add_parser.add_argument("name", help="Name of the new record")
    delete_parser = subparsers.add_parser("delete", help="Delete a record by id")
    delete_parser.add_argument("id", type=uuid.UUID, help="Id of the record to delete")
    return parser


def resolve_settings(args: argparse.Namespace) -> StoreSettings:
    """Merge command-line options over environment settings."""
    env = StoreSettings.from_env()
    backend = args.backend or env.backend
    path = args.path
    if path is None and backend == env.backend:
        path = env.path
    return StoreSettings(backend=backend, path=path)


def format_records(records: Sequence[Record]) -> str:
    """Render records as ``index  id  name`` lines."""
    if not records:
        return "No records."
    return "\n".join(
        f"{index:>3}  {record.id}  {record.name}" for index, record in enumerate(records)
    )


async def run(args: argparse.Namespace) -> int:
    """Execute the parsed command against the configured store."""
    settings = resolve_settings(args)
    async with create_store(settings) as store:
        coordinator = RecordListCoordinator(store)
        await coordinator.load()

        if args.command == "add":
            record = await coordinator.add(args.name)
            print(record.id)
        elif args.command == "delete":
            match = next((r for r in coordinator.records if r.id == args.id), None)
            if match is None:
                print(f"No record with id {args.id}; nothing deleted.")
            else:
                await coordinator.delete_record(match)
                print(f"Deleted {match.id} ({match.name})")
        else:
            print(format_records(coordinator.records))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the record-keeper CLI.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        return asyncio.run(run(args))
    except (RecordStoreError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
