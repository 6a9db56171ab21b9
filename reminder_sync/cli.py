"""Command line entry point for a single sync run."""
import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from reminder_sync.core.config import EMAIL_PROVIDERS, STATUS_POLICIES, SyncConfig
from reminder_sync.core.errors import ReminderSyncError
from reminder_sync.core.logging import configure_logging
from reminder_sync.pipeline import run_sync

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser; unset flags fall back to the environment."""

    parser = argparse.ArgumentParser(description="Sync the customer Master sheet and send service reminders")
    parser.add_argument("--spreadsheet-id", help="Google Sheets spreadsheet ID holding the Master sheet")
    parser.add_argument(
        "--service-account",
        type=Path,
        help="Path to a Google service account JSON key used for Sheets access",
    )
    parser.add_argument(
        "--excel",
        type=Path,
        help="Use a local .xlsx workbook instead of Google Sheets",
    )
    parser.add_argument("--master-sheet", help="Worksheet holding the customer registry")
    parser.add_argument("--reminders-sheet", help="Worksheet regenerated with the sorted reminder view")
    parser.add_argument(
        "--master-sorted-sheet",
        help="Worksheet regenerated with the full Master rows sorted by name (empty to skip)",
    )
    parser.add_argument(
        "--provider",
        choices=EMAIL_PROVIDERS,
        help="Email provider used for reminders",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log reminders instead of sending them (same as --provider dry-run)",
    )
    parser.add_argument(
        "--offset-days",
        type=int,
        help="Start advance notices this many extra days before the due date",
    )
    parser.add_argument(
        "--status-policy",
        choices=STATUS_POLICIES,
        help="How a manual Status column combines with date-based tiers",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        help="Evaluate reminders as of this ISO date instead of the current day",
    )
    parser.add_argument("--log-level", help="Logging level (defaults to LOG_LEVEL or INFO)")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for running one sync from the command line."""

    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = SyncConfig.from_env(
            spreadsheet_id=args.spreadsheet_id,
            service_account_path=args.service_account,
            excel_path=args.excel,
            master_sheet=args.master_sheet,
            reminders_sheet=args.reminders_sheet,
            master_sorted_sheet=args.master_sorted_sheet,
            email_provider="dry-run" if args.dry_run else args.provider,
            offset_days=args.offset_days,
            status_policy=args.status_policy,
        )
        summary = run_sync(config, today=args.today)
    except ReminderSyncError as exc:
        logger.error("Sync failed: %s", exc)
        return 1

    print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
