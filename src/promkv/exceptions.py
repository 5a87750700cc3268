"""Error taxonomy for promkv operations."""
from __future__ import annotations


class PromKVError(Exception):
    """Base error for all promkv failures."""


class TransportError(PromKVError):
    """Raised when the backend is unreachable or answers with a non-2xx status.

    ``status_code`` is ``None`` for network-level failures.
    """

    def __init__(self, status_code: int | None, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


class EncodingError(PromKVError):
    """Raised when a value cannot be serialized into a write request."""


class NotFoundError(PromKVError):
    """Raised when no data exists for the requested key."""

    def __init__(self, key: str, series: str | None = None) -> None:
        self.key = key
        self.series = series
        where = f" in {series}" if series else ""
        super().__init__(f"key {key!r} not found{where}")


class MalformedDataError(PromKVError):
    """Raised when a query result has an unexpected shape or implausible values."""
