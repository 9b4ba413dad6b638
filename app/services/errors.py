from enum import Enum


class QuoteError(Exception):
    """Base class for failures that end up as a user-facing reply."""


class QuoteNotFound(QuoteError):
    def __init__(self, quote_id: int | None = None):
        super().__init__(f"Quote {quote_id} not found")
        self.quote_id = quote_id


class MalformedReference(QuoteError):
    """The quoted message does not point at any stored quote."""


class IngestOutcome(str, Enum):
    SUCCESS = "success"
    INTEGRITY_FAILURE = "integrity_failure"
    SIZE_VIOLATION = "size_violation"
    CANCELLED = "cancelled"
