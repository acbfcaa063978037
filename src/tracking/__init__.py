"""Job tracking: store and email correlation."""
from .job_store import JobStore

__all__ = ["JobStore"]
