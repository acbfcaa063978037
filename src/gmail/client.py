"""Gmail API client used as the monitor's mail source."""
import base64
import binascii
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parseaddr, parsedate_to_datetime
from typing import Optional

import httplib2
from bs4 import BeautifulSoup
from google.auth.exceptions import GoogleAuthError
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from src.errors import ParseFailure, TransportFailure

from .auth import GmailAuth

logger = logging.getLogger(__name__)

# Errors that mean "the mail source is not reachable right now"
_TRANSPORT_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


@dataclass(frozen=True)
class EmailMessage:
    """A fetched email. Immutable once built."""

    id: str
    subject: str
    from_header: str
    from_address: str
    from_name: str
    date: datetime
    body_text: str
    message_id: Optional[str] = None
    thread_id: str = ""
    body_html: Optional[str] = None
    snippet: str = ""
    labels: tuple[str, ...] = field(default_factory=tuple)


def html_to_text(html: str) -> str:
    """Flatten an HTML body to whitespace-normalized text."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["style", "script"]):
        tag.decompose()
    return " ".join(soup.get_text(separator=" ").split())


class GmailClient:
    """Gmail API client for searching and fetching emails."""

    def __init__(self, auth: GmailAuth, timeout_seconds: float = 60.0):
        """
        Initialize Gmail client.

        Args:
            auth: GmailAuth instance for authentication
            timeout_seconds: Socket timeout for each API round trip
        """
        self.auth = auth
        self.timeout_seconds = timeout_seconds
        self._service = None

    def _get_service(self):
        """Get or create Gmail API service."""
        if self._service is None:
            credentials = self.auth.get_credentials()
            if not credentials:
                raise TransportFailure("authenticate", "Gmail authentication required")
            http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=self.timeout_seconds))
            self._service = build("gmail", "v1", http=http, cache_discovery=False)
        return self._service

    def reconnect(self) -> None:
        """Drop the cached API session so the next call builds a fresh one."""
        self._service = None

    def search_messages(
        self,
        query: str,
        max_results: int = 100,
        after: Optional[datetime] = None,
        before: Optional[datetime] = None,
    ) -> list[str]:
        """
        Search for messages matching query.

        Args:
            query: Gmail search query (same syntax as Gmail search)
            max_results: Maximum number of message IDs to return
            after: Only return messages received after this instant
            before: Only return messages received before this instant

        Returns:
            List of message IDs

        Raises:
            TransportFailure: If the API cannot be reached
        """
        if after:
            # Epoch seconds give second-level precision, unlike after:YYYY/MM/DD
            query += f" after:{int(after.timestamp())}"
        if before:
            query += f" before:{int(before.timestamp())}"

        message_ids: list[str] = []
        page_token = None

        try:
            service = self._get_service()
            while len(message_ids) < max_results:
                result = (
                    service.users()
                    .messages()
                    .list(
                        userId="me",
                        q=query,
                        maxResults=min(100, max_results - len(message_ids)),
                        pageToken=page_token,
                    )
                    .execute()
                )

                messages = result.get("messages", [])
                message_ids.extend(msg["id"] for msg in messages)

                page_token = result.get("nextPageToken")
                if not page_token:
                    break
        except _TRANSPORT_ERRORS as e:
            raise TransportFailure("search", str(e)) from e

        return message_ids[:max_results]

    def search_unseen(
        self,
        since: datetime,
        max_results: int = 100,
        label: Optional[str] = None,
        before: Optional[datetime] = None,
    ) -> list[str]:
        """Search for unread messages received after ``since``, newest first."""
        query = "is:unread"
        if label:
            query += f' label:"{label}"'
        return self.search_messages(query, max_results=max_results, after=since, before=before)

    def fetch(self, message_id: str) -> EmailMessage:
        """
        Get full message details.

        Raises:
            ParseFailure: If the message is gone or malformed
            TransportFailure: If the API cannot be reached
        """
        try:
            service = self._get_service()
            data = (
                service.users()
                .messages()
                .get(userId="me", id=message_id, format="full")
                .execute()
            )
        except HttpError as e:
            if e.resp is not None and e.resp.status == 404:
                raise ParseFailure(message_id, "message not found") from e
            raise TransportFailure("fetch", str(e)) from e
        except _TRANSPORT_ERRORS as e:
            raise TransportFailure("fetch", str(e)) from e

        try:
            return self._parse_message(data)
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            raise ParseFailure(message_id, str(e)) from e

    def _parse_message(self, data: dict) -> EmailMessage:
        """Parse raw Gmail API response into EmailMessage."""
        headers = {h["name"].lower(): h["value"] for h in data["payload"]["headers"]}

        from_header = headers.get("from", "")
        from_name, from_address = parseaddr(from_header)
        if not from_address:
            from_address = from_header

        date = self._parse_date(headers.get("date", ""), data.get("internalDate"))
        body_text, body_html = self._extract_body(data["payload"])

        return EmailMessage(
            id=data["id"],
            thread_id=data.get("threadId", ""),
            subject=headers.get("subject", ""),
            from_header=from_header,
            from_address=from_address,
            from_name=from_name,
            date=date,
            body_text=body_text,
            body_html=body_html,
            message_id=headers.get("message-id"),
            snippet=data.get("snippet", ""),
            labels=tuple(data.get("labelIds", [])),
        )

    @staticmethod
    def _parse_date(date_header: str, internal_date: Optional[str]) -> datetime:
        """Parse the Date header, falling back to Gmail's internalDate (epoch ms)."""
        try:
            date = parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            date = None

        if date is None:
            if internal_date:
                return datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)
            return datetime.now(timezone.utc)

        if date.tzinfo is None:
            date = date.replace(tzinfo=timezone.utc)
        return date

    def _extract_body(self, payload: dict) -> tuple[str, Optional[str]]:
        """Extract text and HTML body from message payload."""
        body_text = ""
        body_html = None

        def extract_parts(part):
            nonlocal body_text, body_html

            mime_type = part.get("mimeType", "")

            if part.get("body", {}).get("data"):
                decoded = base64.urlsafe_b64decode(part["body"]["data"]).decode(
                    "utf-8", errors="ignore"
                )
                # First part of each kind wins (later ones are usually quoted replies)
                if mime_type == "text/plain" and not body_text:
                    body_text = decoded
                elif mime_type == "text/html" and body_html is None:
                    body_html = decoded

            for child in part.get("parts", []):
                extract_parts(child)

        extract_parts(payload)

        if not body_text and body_html:
            body_text = html_to_text(body_html)

        return body_text, body_html
