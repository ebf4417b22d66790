"""Utility script to inspect and retry permanently failed notification deliveries."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from hris.application.use_cases.notifications import (
    list_failed_deliveries,
    retry_failed_deliveries,
)
from hris.infrastructure.database import SessionLocal, initialize_database


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments for the retry tool."""

    parser = argparse.ArgumentParser(
        description=(
            "List FAILED notification deliveries or reset them to PENDING so the "
            "notification service sends them again on its next start or sweep."
        ),
    )
    parser.add_argument(
        "ids",
        nargs="*",
        type=int,
        help="Identifiers of the deliveries to reset",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        dest="list_only",
        help="Only print the failed deliveries",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        dest="reset_all",
        help="Reset every listed failed delivery",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Maximum number of failed deliveries to list or reset (default: 100)",
    )
    args = parser.parse_args(argv)
    if not (args.list_only or args.reset_all or args.ids):
        parser.error("provide delivery ids, --all or --list")
    if args.reset_all and args.ids:
        parser.error("--all cannot be combined with explicit ids")
    return args


def main(argv: list[str] | None = None) -> None:
    """Run the tool with the provided command line arguments."""

    args = parse_args(argv)

    initialize_database()

    session = SessionLocal()
    try:
        if args.list_only:
            records = list_failed_deliveries(session, limit=args.limit)
            if not records:
                print("No failed deliveries.")
            for record in records:
                print(
                    f"{record.id}\tnotification={record.notification_id}\t"
                    f"channel={record.channel.value}\tattempts={record.attempt_count}\t"
                    f"error={record.error_message or '-'}"
                )
            return

        reset = retry_failed_deliveries(
            session,
            None if args.reset_all else args.ids,
            limit=args.limit,
        )
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Database error while retrying deliveries: {exc}") from exc
    finally:
        session.close()

    skipped = [] if args.reset_all else [i for i in args.ids if i not in reset]
    print(f"Reset {len(reset)} deliveries to PENDING: {', '.join(map(str, reset)) or '-'}")
    if skipped:
        print(f"Skipped (not FAILED or missing): {', '.join(map(str, skipped))}")


if __name__ == "__main__":
    main()
