"""Replay a CSV file of ledger events and print the final balances as CSV."""

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import structlog

from config import LOG_LEVELS, get_settings
from csv_io import read_events, write_snapshots
from exceptions import DuplicateEventIdError, InvalidRecordError
from ledger import Ledger
from logging_config import configure_logging
from models import AccountSnapshot, Event
from services import create_ledger_service

logger = structlog.get_logger()


@dataclass
class ReplayStats:
    accepted: int = 0
    duplicates: int = 0
    invalid: int = 0


def _log_duplicate(event: Event, error: DuplicateEventIdError, stats: ReplayStats) -> None:
    stats.duplicates += 1
    logger.warning(
        "Duplicate transaction id, event dropped",
        tx=error.event_id,
        client_id=event.client,
        type=event.type.value
    )


def replay(events: Iterable[Event], stats: ReplayStats) -> List[AccountSnapshot]:
    """Apply events inline, one after another."""
    ledger = Ledger()
    for event in events:
        try:
            ledger.submit(event)
        except DuplicateEventIdError as e:
            _log_duplicate(event, e, stats)
            continue
        stats.accepted += 1
    return ledger.snapshot_all()


async def replay_concurrently(events: Iterable[Event], stats: ReplayStats) -> List[AccountSnapshot]:
    """Apply events through per-account worker tasks."""
    service = create_ledger_service()
    try:
        for event in events:
            try:
                await service.submit(event)
            except DuplicateEventIdError as e:
                _log_duplicate(event, e, stats)
                continue
            stats.accepted += 1
        return await service.snapshot_all()
    finally:
        await service.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-engine",
        description="Replay deposits, withdrawals and disputes into per-client balances",
    )
    parser.add_argument(
        "transactions_file",
        metavar="TRANSACTIONS_FILE",
        help="CSV file with columns type,client,tx,amount",
    )
    parser.add_argument(
        "--transport",
        choices=["sync", "channel"],
        default=None,
        help="How events reach accounts (default: TRANSPORT setting, sync)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Log level for messages on stderr (default: LOG_LEVEL setting)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the replay; returns the process exit code."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level})
    configure_logging(settings)

    transport = args.transport or settings.transport
    stats = ReplayStats()

    def skip_invalid(error: InvalidRecordError) -> None:
        stats.invalid += 1
        logger.warning("Skipping malformed record", line=error.line_num, reason=error.reason)

    try:
        with open(args.transactions_file, newline="", encoding="utf-8") as f:
            events = read_events(f, on_error=skip_invalid)
            if transport == "channel":
                snapshots = asyncio.run(replay_concurrently(events, stats))
            else:
                snapshots = replay(events, stats)
    except OSError as e:
        logger.error("Failed to read transactions", path=args.transactions_file, error=str(e))
        return 2
    except InvalidRecordError as e:
        logger.error("Unreadable transactions file", path=args.transactions_file, error=str(e))
        return 2

    write_snapshots(snapshots, sys.stdout)
    sys.stdout.flush()

    logger.info(
        "Replay complete",
        transport=transport,
        accepted=stats.accepted,
        duplicates=stats.duplicates,
        invalid=stats.invalid,
        accounts=len(snapshots)
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
