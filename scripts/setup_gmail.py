#!/usr/bin/env python3
"""Authorize Job Inbox to read Gmail and store the token the monitor uses.

Usage:
    python -m scripts.setup_gmail
    python -m scripts.setup_gmail --force   # discard the stored token first

The monitor itself never opens a browser; it only refreshes the token
written here (``settings.gmail_token_file``).
"""
import argparse
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from scripts.bootstrap import settings
from src.errors import TransportFailure
from src.gmail.auth import SCOPES, GmailAuth
from src.gmail.client import GmailClient
from src.logging_config import setup_logging

logger = logging.getLogger(__name__)

CONSOLE_STEPS = (
    "Open https://console.cloud.google.com and pick or create a project",
    "Enable the Gmail API for it",
    "Credentials > Create Credentials > OAuth client ID, type 'Desktop app'",
    "Download the client JSON",
)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Authorize read-only Gmail access for Job Inbox.")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Delete the stored token and run the consent flow again",
    )
    return parser.parse_args(argv)


def check_access(auth: GmailAuth) -> bool:
    """One unread search over the last day, scoped like the monitor's."""
    client = GmailClient(auth, timeout_seconds=settings.mail_timeout_seconds)
    since = datetime.now(timezone.utc) - timedelta(days=1)
    try:
        ids = client.search_unseen(since, max_results=1, label=settings.gmail_label)
    except TransportFailure as e:
        logger.error("Authorized, but the test search failed: %s", e)
        return False
    logger.info("Test search OK (%s unread in the last day)", "some" if ids else "no")
    return True


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(level=settings.log_level)

    credentials_path = Path(settings.gmail_credentials_file)
    token_path = Path(settings.gmail_token_file)

    if not credentials_path.exists():
        logger.error("OAuth client file not found: %s", credentials_path.absolute())
        print("\nTo create one:")
        for n, step in enumerate(CONSOLE_STEPS, 1):
            print(f"  {n}. {step}")
        print(f"  {len(CONSOLE_STEPS) + 1}. Save it as {credentials_path.absolute()}")
        return 1

    if args.force and token_path.exists():
        token_path.unlink()
        logger.info("Removed stored token %s", token_path)

    auth = GmailAuth(
        credentials_file=str(credentials_path),
        token_file=str(token_path),
        interactive=True,
    )

    print(f"Requesting scopes: {', '.join(SCOPES)}")
    print("A browser window opens if no valid token is stored.")
    if not auth.is_authenticated():
        logger.error("Authorization failed; check the OAuth client file and try again")
        return 1
    logger.info("Token stored at %s", token_path)

    if not check_access(auth):
        return 1

    print("\nGmail is ready.")
    print("  Monitor:      python -m src.main")
    print("  Single check: python -m scripts.check_email --dry-run")
    return 0


if __name__ == "__main__":
    sys.exit(main())
