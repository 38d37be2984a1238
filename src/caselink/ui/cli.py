from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from signal import SIGINT, getsignal, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from caselink.app import (
    build_backup_source,
    build_client_feed,
    cleanup_recording_transcripts,
    reconcile_from_backup,
    reconcile_live_orphans,
    restore_missing_sessions,
)
from caselink.config import configure_logging
from caselink.domain.model import RecordKind

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from types import FrameType

    from caselink.domain.feed import FeedResult
    from caselink.domain.reconciliation import ReconciliationReport

log = logging.getLogger(__name__)

_KIND_CHOICES = [str(kind) for kind in RecordKind]


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Repair caselink record associations")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser(
        "reconcile",
        help="Link orphaned sessions, notes and recordings to clients and sessions",
    )
    reconcile.add_argument(
        "--source",
        choices=("live", "backup"),
        default="live",
        help="Read orphans from the live store or from a backup snapshot",
    )
    reconcile.add_argument(
        "--kind",
        choices=_KIND_CHOICES,
        action="append",
        help="Record kind to reconcile (repeatable, defaults to all kinds)",
    )
    reconcile.add_argument(
        "--force",
        action="store_true",
        help="Replace client ids that disagree with the resolved name",
    )
    reconcile.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute the report without writing to the store",
    )
    reconcile.add_argument(
        "--backup-dir",
        type=str,
        help="Directory holding the JSON snapshots (defaults to config)",
    )
    reconcile.add_argument(
        "--outcomes",
        action="store_true",
        help="Include per-record outcomes in the printed report",
    )

    restore = subparsers.add_parser(
        "restore-sessions",
        help="Insert backup sessions that are missing from the live store",
    )
    restore.add_argument("--dry-run", action="store_true", help="Do not insert anything")
    restore.add_argument(
        "--backup-dir",
        type=str,
        help="Directory holding the JSON snapshots (defaults to config)",
    )

    cleanup = subparsers.add_parser(
        "cleanup-transcripts",
        help="Remove generated note sections from recording transcripts",
    )
    cleanup.add_argument(
        "--title",
        action="append",
        help="Section title to remove (repeatable, defaults to config)",
    )
    cleanup.add_argument("--dry-run", action="store_true", help="Do not rewrite transcripts")

    feed = subparsers.add_parser("feed", help="Print the unified feed for an owner")
    feed.add_argument("--owner-id", type=str, required=True, help="Owner scope of the feed")
    feed.add_argument("--client-id", type=str, help="Restrict the feed to one client")

    return parser.parse_args(list(argv))


def _parse_kinds(values: Sequence[str] | None) -> list[RecordKind] | None:
    if not values:
        return None
    try:
        return [RecordKind(value) for value in values]
    except ValueError as exc:
        raise ValueError(f"Invalid record kind in {list(values)}") from exc


def _parse_backup_dir(value: str | None) -> Path | None:
    if value is None:
        return None
    path = Path(value).expanduser()
    if not path.is_dir():
        raise ValueError(f"Backup directory does not exist: {value}")
    return path


def _print_report(report: ReconciliationReport, *, include_outcomes: bool = False) -> None:
    print(json.dumps(report.to_dict(include_outcomes=include_outcomes), indent=2))  # noqa: T201


def _print_feed(result: FeedResult) -> None:
    payload = [
        {
            "id": entry.id,
            "client_id": entry.client_id,
            "client_name": entry.client_name,
            "occurred_at": entry.occurred_at.isoformat() if entry.occurred_at else None,
            "source_kind": str(entry.source_kind),
            "source_id": entry.source_id,
            "session_id": entry.session_id,
            "content": entry.content,
        }
        for entry in result.entries
    ]
    print(json.dumps(payload, indent=2))  # noqa: T201


@contextmanager
def _stop_on_interrupt(stop: threading.Event) -> Iterator[None]:
    """Turn the first Ctrl+C into a cooperative stop; a second one exits."""

    def handler(signal_received: int, frame: FrameType | None) -> None:
        if stop.is_set():
            sigint_handler(signal_received, frame)
        log.warning("Stopping after the current record (Ctrl+C again to quit)")
        stop.set()

    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = getsignal(SIGINT)
    signal(SIGINT, handler)
    try:
        yield
    finally:
        signal(SIGINT, previous)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        kinds = _parse_kinds(getattr(parsed_args, "kind", None))
        backup_dir = _parse_backup_dir(getattr(parsed_args, "backup_dir", None))
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    stop = threading.Event()
    try:
        with _stop_on_interrupt(stop):
            if parsed_args.command == "reconcile":
                if parsed_args.source == "backup":
                    report = reconcile_from_backup(
                        backup=build_backup_source(backup_dir),
                        kinds=kinds,
                        force=parsed_args.force,
                        dry_run=parsed_args.dry_run,
                        should_stop=stop.is_set,
                    )
                else:
                    report = reconcile_live_orphans(
                        kinds=kinds,
                        force=parsed_args.force,
                        dry_run=parsed_args.dry_run,
                        should_stop=stop.is_set,
                    )
                _print_report(report, include_outcomes=parsed_args.outcomes)
            elif parsed_args.command == "restore-sessions":
                report = restore_missing_sessions(
                    backup=build_backup_source(backup_dir),
                    dry_run=parsed_args.dry_run,
                    should_stop=stop.is_set,
                )
                _print_report(report)
            elif parsed_args.command == "cleanup-transcripts":
                report = cleanup_recording_transcripts(
                    titles=parsed_args.title,
                    dry_run=parsed_args.dry_run,
                    should_stop=stop.is_set,
                )
                _print_report(report)
            elif parsed_args.command == "feed":
                _print_feed(build_client_feed(parsed_args.owner_id, parsed_args.client_id))
            else:
                raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
