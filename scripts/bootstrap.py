"""Shared startup for the Job Inbox maintenance scripts.

``python scripts/check_email.py`` puts ``scripts/`` rather than the project
root on ``sys.path``; importing this module first makes ``config`` and
``src`` importable either way, then hands out the pieces every script needs:

    from scripts.bootstrap import settings, get_session, init_db
"""
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import settings  # noqa: E402
from src.persistence.database import get_session, init_db  # noqa: E402

__all__ = ["PROJECT_ROOT", "settings", "get_session", "init_db"]
