#!/usr/bin/env python3
"""Record a correction for a stored email classification.

Usage:
    python -m scripts.record_feedback <event-id> <correct-type> [--notes TEXT]
    python -m scripts.record_feedback --list

Feedback is stored for future rule tuning. The email event and its job are
left exactly as they are.
"""
import argparse
import logging
import sys

from scripts.bootstrap import get_session, init_db
from src.classification.classifier import EmailClassifier
from src.classification.types import EmailType
from src.logging_config import setup_logging
from src.tracking.job_store import JobStore

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Correct the type of a classified email.")
    parser.add_argument("event_id", nargs="?", help="EmailEvent ID")
    parser.add_argument(
        "correct_type",
        nargs="?",
        choices=[t.value for t in EmailType],
        help="The type the email should have had",
    )
    parser.add_argument("--notes", help="Free-text explanation")
    parser.add_argument("--list", action="store_true", help="List recent email events")
    return parser.parse_args(argv)


def list_events(store: JobStore) -> None:
    for event in store.list_email_events(limit=25):
        confidence = (event.event_metadata or {}).get("confidence")
        print(f"{event.id}  {event.email_type:<25} {confidence!s:>5}  {event.email_subject}")


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()
    init_db()

    with get_session() as session:
        store = JobStore(session)

        if args.list:
            list_events(store)
            return 0

        if not args.event_id or not args.correct_type:
            logger.error("event_id and correct_type are required (or use --list)")
            return 1

        event = store.get_email_event(args.event_id)
        if not event:
            logger.error("No email event with id %s", args.event_id)
            return 1

        original_type = event.email_type
        event_key = (event.event_metadata or {}).get("event_key") or event.id
        EmailClassifier().record_feedback(
            event_key,
            args.correct_type,
            notes=args.notes,
            store=store,
            original_type=original_type,
        )

    print(f"Recorded: {args.event_id} {original_type} -> {args.correct_type}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
