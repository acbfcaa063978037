#!/usr/bin/env python3
"""Run a single email check and exit.

Usage:
    python -m scripts.check_email
    python -m scripts.check_email --dry-run --hours 72

With --dry-run, emails are classified and printed but nothing is written to
the database.
"""
import argparse
import asyncio
import json
import logging
import sys

from scripts.bootstrap import settings, init_db
from src.gmail.auth import GmailAuth
from src.gmail.client import GmailClient
from src.logging_config import setup_logging
from src.monitoring.email_monitor import EmailMonitor

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check Gmail once for job-related emails.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Classify only; do not update jobs or store email events",
    )
    parser.add_argument(
        "--hours",
        type=int,
        default=settings.initial_lookback_hours,
        help="How far back to search (default: %(default)s)",
    )
    parser.add_argument(
        "--label",
        default=settings.gmail_label,
        help="Restrict the search to a Gmail label",
    )
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Run one monitoring cycle."""
    args = parse_args(argv)
    setup_logging(level=settings.log_level)

    auth = GmailAuth(
        credentials_file=settings.gmail_credentials_file,
        token_file=settings.gmail_token_file,
    )
    if not auth.is_authenticated():
        logger.error("Gmail not authenticated. Run: python -m scripts.setup_gmail")
        return 1

    if not args.dry_run:
        init_db()

    monitor = EmailMonitor(
        GmailClient(auth, timeout_seconds=settings.mail_timeout_seconds),
        label=args.label,
        initial_lookback_hours=args.hours,
        dry_run=args.dry_run,
    )
    results = await monitor.run_cycle()

    for result in results:
        print(
            f"{result.type.value:<25} {result.confidence:5.1f}  "
            f"{result.company or '-'} / {result.job_title or '-'}"
        )
        if result.deadline:
            print(f"{'':<25} deadline {result.deadline.isoformat()}")

    print()
    print(json.dumps(monitor.status(), indent=2, default=str))
    return 0 if monitor.connected else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
