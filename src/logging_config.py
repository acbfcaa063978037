"""Process-wide logging for the monitor and the maintenance scripts."""
import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handler names owned by this module; foreign handlers (pytest capture, IDEs) are left alone
CONSOLE_HANDLER = "job_inbox.console"
FILE_HANDLER = "job_inbox.file"

# Per-request chatter from the Gmail client stack and the scheduler's per-run lines
QUIET_LOGGERS = ("googleapiclient", "google_auth_httplib2", "urllib3", "sqlalchemy", "apscheduler")


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
) -> None:
    """Send Job Inbox logs to stderr and, optionally, a rotating file.

    main.py passes ``settings.log_level`` and ``settings.log_file``; the
    scripts log to stderr only. Unknown level names fall back to INFO.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    installed = {h.get_name() for h in root.handlers}
    fmt = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if CONSOLE_HANDLER not in installed:
        console = logging.StreamHandler()
        console.set_name(CONSOLE_HANDLER)
        console.setFormatter(fmt)
        root.addHandler(console)

    if log_file and FILE_HANDLER not in installed:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
        )
        file_handler.set_name(FILE_HANDLER)
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
