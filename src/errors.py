"""Exceptions raised by the mail pipeline."""


class JobInboxError(Exception):
    """Base exception for Job Inbox errors."""

    pass


class TransportFailure(JobInboxError):
    """Raised when the mail source is unreachable or rejects our credentials.

    Never retried inside a cycle; the next scheduled wake retries the same
    watermark window.
    """

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Mail source {operation} failed: {reason}")


class ParseFailure(JobInboxError):
    """Raised when a single message cannot be turned into an EmailMessage."""

    def __init__(self, message_id: str, reason: str):
        self.message_id = message_id
        self.reason = reason
        super().__init__(f"Could not parse message {message_id}: {reason}")
