"""Main entry point for the Job Inbox email monitor."""
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import settings
from src.gmail.auth import GmailAuth
from src.gmail.client import GmailClient
from src.logging_config import setup_logging
from src.monitoring.email_monitor import EmailMonitor
from src.persistence.database import init_db

logger = logging.getLogger(__name__)


async def async_main():
    """Async main entry point."""
    setup_logging(level=settings.log_level, log_file=settings.log_file or None)
    logger.info("Job Inbox Starting...")
    logger.info("Database: %s", settings.database_url)

    auth = GmailAuth(
        credentials_file=settings.gmail_credentials_file,
        token_file=settings.gmail_token_file,
    )
    if not auth.is_authenticated():
        logger.error("Gmail not authenticated. Run scripts/setup_gmail.py first.")
        return

    # Initialize database
    init_db()
    logger.info("Database initialized")

    client = GmailClient(auth, timeout_seconds=settings.mail_timeout_seconds)
    monitor = EmailMonitor(client)
    monitor.start()

    try:
        logger.info("Job Inbox running. Press Ctrl+C to stop.")

        # Keep running forever
        while True:
            await asyncio.sleep(60)
            logger.debug("Monitor status: %s", monitor.status())

    except asyncio.CancelledError:
        logger.info("Shutting down...")
    finally:
        monitor.stop()


def main():
    """Main entry point."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown complete.")


if __name__ == "__main__":
    main()
