"""Tests for Gmail integration."""
import base64
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from src.errors import ParseFailure, TransportFailure
from src.gmail.auth import GmailAuth
from src.gmail.client import GmailClient, html_to_text

RECEIVED_EPOCH = 1772465400  # 2026-03-02 15:30 UTC


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")


def _http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b'{"error": {"message": "boom"}}')


def _raw_message(headers=None, payload=None, **extra) -> dict:
    headers = headers if headers is not None else {
        "From": "Acme Recruiting <hr@acme.com>",
        "Subject": "Your application",
        "Date": "Mon, 02 Mar 2026 10:30:00 -0500",
        "Message-ID": "<abc@acme.com>",
    }
    data = {
        "id": "m1",
        "threadId": "t1",
        "snippet": "Thank you for applying",
        "labelIds": ["INBOX", "UNREAD"],
        "payload": payload or {
            "mimeType": "text/plain",
            "headers": [],
            "body": {"data": _b64("Thank you for applying to Acme.")},
        },
    }
    data["payload"]["headers"] = [{"name": k, "value": v} for k, v in headers.items()]
    data.update(extra)
    return data


@pytest.fixture
def service():
    """Mocked Gmail API service."""
    return MagicMock()


@pytest.fixture
def client(service):
    """GmailClient wired to the mocked service."""
    client = GmailClient(auth=MagicMock())
    client._service = service
    return client


def _messages(service):
    return service.users.return_value.messages.return_value


class TestSearch:
    """Tests for message search."""

    def test_paginates_until_max_results(self, client, service):
        _messages(service).list.return_value.execute.side_effect = [
            {"messages": [{"id": f"a{i}"} for i in range(100)], "nextPageToken": "p2"},
            {"messages": [{"id": f"b{i}"} for i in range(50)], "nextPageToken": "p3"},
        ]

        ids = client.search_messages("is:unread", max_results=150)

        assert len(ids) == 150
        calls = _messages(service).list.call_args_list
        assert len(calls) == 2
        assert calls[0].kwargs["maxResults"] == 100
        assert calls[1].kwargs["maxResults"] == 50
        assert calls[1].kwargs["pageToken"] == "p2"

    def test_stops_without_next_page(self, client, service):
        _messages(service).list.return_value.execute.return_value = {"messages": [{"id": "a"}]}

        assert client.search_messages("is:unread") == ["a"]
        assert _messages(service).list.call_count == 1

    def test_empty_result(self, client, service):
        _messages(service).list.return_value.execute.return_value = {"resultSizeEstimate": 0}
        assert client.search_messages("is:unread") == []

    def test_search_unseen_query(self, client, service):
        _messages(service).list.return_value.execute.return_value = {}
        since = datetime.fromtimestamp(RECEIVED_EPOCH, tz=timezone.utc)

        client.search_unseen(since, max_results=10, label="Jobs")

        kwargs = _messages(service).list.call_args.kwargs
        assert kwargs["q"] == f'is:unread label:"Jobs" after:{RECEIVED_EPOCH}'
        assert kwargs["userId"] == "me"
        assert kwargs["maxResults"] == 10

    def test_search_unseen_without_label(self, client, service):
        _messages(service).list.return_value.execute.return_value = {}

        client.search_unseen(datetime.fromtimestamp(RECEIVED_EPOCH, tz=timezone.utc))

        assert _messages(service).list.call_args.kwargs["q"] == f"is:unread after:{RECEIVED_EPOCH}"

    def test_search_unseen_before_bound(self, client, service):
        _messages(service).list.return_value.execute.return_value = {}
        before = datetime.fromtimestamp(RECEIVED_EPOCH, tz=timezone.utc)

        client.search_unseen(before - timedelta(hours=1), before=before)

        query = _messages(service).list.call_args.kwargs["q"]
        assert query == f"is:unread after:{RECEIVED_EPOCH - 3600} before:{RECEIVED_EPOCH}"

    def test_http_error_is_transport_failure(self, client, service):
        _messages(service).list.return_value.execute.side_effect = _http_error(500)

        with pytest.raises(TransportFailure) as exc_info:
            client.search_messages("is:unread")
        assert exc_info.value.operation == "search"

    def test_socket_error_is_transport_failure(self, client, service):
        _messages(service).list.return_value.execute.side_effect = ConnectionResetError("reset")

        with pytest.raises(TransportFailure):
            client.search_messages("is:unread")

    def test_missing_credentials(self):
        auth = MagicMock()
        auth.get_credentials.return_value = None

        with pytest.raises(TransportFailure):
            GmailClient(auth).search_messages("is:unread")

    def test_reconnect_drops_service(self, client):
        client.reconnect()
        assert client._service is None


class TestFetch:
    """Tests for fetching and parsing messages."""

    def test_plain_text_message(self, client, service):
        _messages(service).get.return_value.execute.return_value = _raw_message()

        email = client.fetch("m1")

        assert email.id == "m1"
        assert email.thread_id == "t1"
        assert email.subject == "Your application"
        assert email.from_header == "Acme Recruiting <hr@acme.com>"
        assert email.from_address == "hr@acme.com"
        assert email.from_name == "Acme Recruiting"
        assert email.message_id == "<abc@acme.com>"
        assert email.body_text == "Thank you for applying to Acme."
        assert email.labels == ("INBOX", "UNREAD")
        assert email.date == datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)
        assert _messages(service).get.call_args.kwargs == {"userId": "me", "id": "m1", "format": "full"}

    def test_multipart_prefers_plain_text(self, client, service):
        payload = {
            "mimeType": "multipart/alternative",
            "body": {},
            "parts": [
                {"mimeType": "text/plain", "body": {"data": _b64("Plain body")}},
                {"mimeType": "text/html", "body": {"data": _b64("<p>HTML body</p>")}},
            ],
        }
        _messages(service).get.return_value.execute.return_value = _raw_message(payload=payload)

        email = client.fetch("m1")

        assert email.body_text == "Plain body"
        assert email.body_html == "<p>HTML body</p>"

    def test_html_only_is_flattened(self, client, service):
        payload = {
            "mimeType": "multipart/alternative",
            "body": {},
            "parts": [
                {"mimeType": "text/html", "body": {"data": _b64("<p>Hi <b>Alex</b>,</p><p>Next steps</p>")}},
            ],
        }
        _messages(service).get.return_value.execute.return_value = _raw_message(payload=payload)

        assert client.fetch("m1").body_text == "Hi Alex , Next steps"

    def test_date_falls_back_to_internal_date(self, client, service):
        data = _raw_message(
            headers={"From": "hr@acme.com", "Subject": "Hi"},
            internalDate=str(RECEIVED_EPOCH * 1000),
        )
        _messages(service).get.return_value.execute.return_value = data

        email = client.fetch("m1")

        assert email.date == datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)
        assert email.message_id is None
        assert email.from_name == ""

    def test_naive_date_assumed_utc(self, client, service):
        headers = {"From": "hr@acme.com", "Subject": "Hi", "Date": "Mon, 02 Mar 2026 15:30:00 -0000"}
        _messages(service).get.return_value.execute.return_value = _raw_message(headers=headers)

        assert client.fetch("m1").date == datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)

    def test_not_found_is_parse_failure(self, client, service):
        _messages(service).get.return_value.execute.side_effect = _http_error(404)

        with pytest.raises(ParseFailure) as exc_info:
            client.fetch("gone")
        assert exc_info.value.message_id == "gone"

    def test_server_error_is_transport_failure(self, client, service):
        _messages(service).get.return_value.execute.side_effect = _http_error(503)

        with pytest.raises(TransportFailure):
            client.fetch("m1")

    def test_malformed_payload_is_parse_failure(self, client, service):
        _messages(service).get.return_value.execute.return_value = {"id": "m1"}

        with pytest.raises(ParseFailure):
            client.fetch("m1")

    def test_bad_base64_is_parse_failure(self, client, service):
        payload = {"mimeType": "text/plain", "body": {"data": "abc"}}
        _messages(service).get.return_value.execute.return_value = _raw_message(payload=payload)

        with pytest.raises(ParseFailure):
            client.fetch("m1")


class TestHtmlToText:
    def test_strips_scripts_and_styles(self):
        html = "<style>p {color: red}</style><p>Hello   there</p><script>track()</script>"
        assert html_to_text(html) == "Hello there"


class TestGmailAuth:
    """Tests for GmailAuth."""

    def test_non_interactive_without_token(self, tmp_path):
        auth = GmailAuth(
            credentials_file=str(tmp_path / "credentials.json"),
            token_file=str(tmp_path / "token.json"),
        )

        assert auth.get_credentials() is None
        assert not auth.is_authenticated()
        assert not (tmp_path / "token.json").exists()

    def test_interactive_without_credentials_file(self, tmp_path):
        auth = GmailAuth(
            credentials_file=str(tmp_path / "credentials.json"),
            token_file=str(tmp_path / "token.json"),
            interactive=True,
        )

        assert auth.get_credentials() is None
