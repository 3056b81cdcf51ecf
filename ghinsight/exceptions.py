"""Custom exceptions for ghinsight."""

from __future__ import annotations


class GhInsightError(Exception):
    """Base exception for all ghinsight errors."""


class AuthError(GhInsightError):
    """Raised when the credential is invalid, expired, or lacks access.

    Fatal to a whole fetch cycle and never retried.
    """


class RateLimitError(GhInsightError):
    """Raised when the API quota stays exhausted after every retry."""

    def __init__(self, wait_seconds: float) -> None:
        self.wait_seconds = wait_seconds
        super().__init__(f"rate limit exceeded, retry after {wait_seconds:.0f}s")


class TransientError(GhInsightError):
    """Raised when a network error or non-auth HTTP failure outlives its retries."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RecordMappingError(GhInsightError):
    """One raw record that could not be mapped to a canonical entity.

    Collected into a side channel by the normalizer; never raised out of it.
    """

    def __init__(self, kind: str, index: int, reason: str) -> None:
        self.kind = kind
        self.index = index
        self.reason = reason
        super().__init__(f"{kind}[{index}]: {reason}")


class PartialResourceFailure(GhInsightError):
    """One top-level resource that degraded to an empty sequence.

    Collected on the raw bundle; never raised out of the orchestrator.
    """

    def __init__(self, resource: str, cause: BaseException) -> None:
        self.resource = resource
        self.cause = cause
        super().__init__(f"{resource}: {type(cause).__name__}: {cause}")
