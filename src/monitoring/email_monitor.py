"""Periodic mailbox monitoring: fetch, classify, correlate."""
import asyncio
import logging
from contextlib import AbstractContextManager
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from config.settings import settings
from src.classification.classifier import EmailClassifier
from src.classification.combiner import is_accepted
from src.classification.types import ClassificationResult
from src.dedup.deduplicator import EmailDeduplicator
from src.errors import ParseFailure, TransportFailure
from src.gmail.client import EmailMessage
from src.persistence.database import get_session
from src.tracking.correlator import JobCorrelator
from src.tracking.job_store import JobStore

logger = logging.getLogger(__name__)

JOB_ID = "email_monitor"


class MailSource(Protocol):
    """What the monitor needs from a mailbox."""

    def search_unseen(
        self,
        since: datetime,
        max_results: int = 100,
        label: Optional[str] = None,
        before: Optional[datetime] = None,
    ) -> list[str]:
        """Unread message ids received after ``since`` (and before ``before``), newest first."""
        ...

    def fetch(self, message_id: str) -> EmailMessage:
        ...

    def reconnect(self) -> None:
        ...


class EmailMonitor:
    """Owns the dedup cache, the watermark and the connection-health flag.

    Cycles never overlap: the scheduler runs at most one instance and
    ``run_cycle`` also refuses to start while another cycle holds the lock.
    """

    def __init__(
        self,
        source: MailSource,
        classifier: Optional[EmailClassifier] = None,
        deduplicator: Optional[EmailDeduplicator] = None,
        session_factory: Callable[[], AbstractContextManager[Session]] = get_session,
        interval_minutes: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        max_results: Optional[int] = None,
        label: Optional[str] = None,
        initial_lookback_hours: Optional[int] = None,
        dry_run: bool = False,
    ):
        """
        Initialize email monitor.

        Args:
            source: Mail source (normally a GmailClient)
            classifier: Email classifier (a fresh one by default)
            deduplicator: Dedup guards; keep one per process
            session_factory: Context manager factory yielding a DB session
            interval_minutes: Minutes between scheduled cycles
            timeout_seconds: Bound on each mail source round trip
            max_results: Maximum messages per cycle
            label: Restrict searches to this mailbox label
            initial_lookback_hours: Window searched when no watermark exists yet
            dry_run: Classify only; never touch the job store
        """
        self.source = source
        self.classifier = classifier or EmailClassifier()
        self.deduplicator = deduplicator or EmailDeduplicator()
        self.session_factory = session_factory
        self.interval_minutes = interval_minutes or settings.email_check_interval_minutes
        self.timeout_seconds = timeout_seconds or settings.mail_timeout_seconds
        self.max_results = max_results or settings.mail_max_results
        self.label = label if label is not None else settings.gmail_label
        self.initial_lookback = timedelta(
            hours=initial_lookback_hours if initial_lookback_hours is not None else settings.initial_lookback_hours
        )
        self.dry_run = dry_run

        self.watermark: Optional[datetime] = None
        self.last_check: Optional[datetime] = None
        self.connected = True
        self.processed_count = 0

        self._cycle_lock = asyncio.Lock()
        self._scheduler: Optional[AsyncIOScheduler] = None

    async def _call(self, operation: str, func, *args, **kwargs):
        """Run a blocking mail call in a worker thread under the round-trip timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise TransportFailure(operation, f"timed out after {self.timeout_seconds}s") from e

    async def run_cycle(self) -> list[ClassificationResult]:
        """
        Run one check: search unseen mail since the watermark and process it.

        The watermark only advances when every unseen message of the window
        was reached; otherwise the next cycle retries the same window.

        Returns:
            Accepted classification results of this cycle
        """
        if self._cycle_lock.locked():
            logger.warning("Previous email check still running, skipping this one")
            return []

        async with self._cycle_lock:
            cycle_start = datetime.now(timezone.utc)
            since = self.watermark or cycle_start - self.initial_lookback
            self.last_check = cycle_start

            try:
                if not self.connected:
                    logger.info("Reconnecting to mail source...")
                    await self._call("reconnect", self.source.reconnect)

                results, drained = await self._drain_window(since)
            except TransportFailure as e:
                self.connected = False
                logger.error("Email check failed, will retry next cycle (since %s): %s", since.isoformat(), e)
                return []

            if drained:
                self.watermark = cycle_start
            logger.info("Email check complete: %d job events", len(results))
            return results

    async def _drain_window(self, since: datetime) -> tuple[list[ClassificationResult], bool]:
        """
        Search and process every unseen message received after ``since``.

        Searches list newest first and stop at ``max_results``. A full page is
        followed by another search bounded by the oldest message fetched so far.

        Returns:
            Accepted results, and whether the whole window was reached
        """
        results: list[ClassificationResult] = []
        handled: set[str] = set()
        before: Optional[datetime] = None

        while True:
            message_ids = await self._call(
                "search",
                self.source.search_unseen,
                since,
                max_results=self.max_results,
                label=self.label,
                before=before,
            )
            self.connected = True
            new_ids = [i for i in message_ids if i not in handled]
            handled.update(new_ids)
            logger.info("Found %d unseen messages since %s", len(new_ids), since.isoformat())

            batch, oldest = await self._process_ids(new_ids)
            results.extend(batch)

            if len(message_ids) < self.max_results:
                return results, True
            if not new_ids or oldest is None:
                logger.warning(
                    "Could not page past %d unseen messages since %s; keeping the watermark",
                    self.max_results,
                    since.isoformat(),
                )
                return results, False
            # Whole-second bound, so same-second siblings are listed again and skipped
            before = oldest + timedelta(seconds=1)

    async def process_batch(self, message_ids: list[str]) -> list[ClassificationResult]:
        """
        Fetch and process messages one by one.

        A message that cannot be parsed is skipped. A transport failure aborts
        the batch, since the remaining fetches would fail the same way.

        Returns:
            Accepted classification results, in message order

        Raises:
            TransportFailure: If the mail source becomes unreachable
        """
        results, _ = await self._process_ids(message_ids)
        return results

    async def _process_ids(
        self, message_ids: list[str]
    ) -> tuple[list[ClassificationResult], Optional[datetime]]:
        results = []
        oldest = None
        for message_id in message_ids:
            try:
                email = await self._call("fetch", self.source.fetch, message_id)
            except ParseFailure as e:
                logger.warning("Skipping message: %s", e)
                continue

            if email.date and (oldest is None or email.date < oldest):
                oldest = email.date

            # Classification and the store session are blocking work too
            result = await asyncio.to_thread(self.process_email, email)
            if result:
                results.append(result)
        return results, oldest

    def process_email(self, email: EmailMessage) -> Optional[ClassificationResult]:
        """
        Classify one email and, if accepted, record it against the job store.

        Returns:
            The accepted result, or None if the email was skipped, rejected by
            the acceptance gate, or failed
        """
        if self.deduplicator.is_duplicate(email):
            logger.debug("Already processed %r", email.subject)
            return None

        try:
            result = self.classifier.classify(email)
            if not is_accepted(result):
                self.deduplicator.mark_seen(email)
                return None

            if not self.dry_run:
                with self.session_factory() as session:
                    store = JobStore(session)
                    correlator = JobCorrelator(store, self.deduplicator.guard(store))
                    event = correlator.correlate(result, email)
                    logger.info(
                        "Recorded %s email %r (confidence %.1f, event %s)",
                        result.type.value,
                        email.subject,
                        result.confidence,
                        event.id,
                    )
        except Exception as e:
            logger.error("Error processing email %r: %s", email.subject, e, exc_info=True)
            return None

        self.deduplicator.mark_seen(email)
        self.processed_count += 1
        return result

    def start(self) -> None:
        """Schedule periodic cycles, with the first one right away. Needs a running event loop."""
        if self._scheduler:
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.run_cycle,
            IntervalTrigger(minutes=self.interval_minutes),
            id=JOB_ID,
            name="Email Monitor",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        logger.info("Email monitoring started: every %d minutes", self.interval_minutes)

    def stop(self) -> None:
        """Stop scheduling cycles. A cycle already running is left to finish."""
        if not self._scheduler:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Email monitoring stopped")

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def status(self) -> dict:
        """Monitoring status report."""
        return {
            "running": self.is_running,
            "connected": self.connected,
            "last_check": self.last_check.isoformat() if self.last_check else None,
            "watermark": self.watermark.isoformat() if self.watermark else None,
            "check_interval_minutes": self.interval_minutes,
            "processed_count": self.processed_count,
            "seen_count": len(self.deduplicator.cache),
            "classification": self.classifier.stats(),
        }
