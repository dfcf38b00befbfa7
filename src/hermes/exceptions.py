"""Framework exception types."""

from __future__ import annotations


class HermesError(Exception):
    """Base error type."""


class ParamsNotParsedError(HermesError, LookupError):
    """Raised when a request's parameter store is read before it was parsed."""

    def __init__(self, method: str, path: str) -> None:
        super().__init__(f"No parameters attached to {method} {path}; call parse_params first")
        self.method = method
        self.path = path


class IngestionError(HermesError):
    """A single body source could not be decoded.

    Raised inside the ingestors and handled at the ingestion boundary, where it
    is logged and the offending source contributes nothing to the store.
    """

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason
