"""Engine error taxonomy.

ValidationError and NotFoundError propagate to the caller as distinct,
presentable error kinds.  InvalidDataError is built for logging when a bad
source row is excluded and never escapes the engine.  InsufficientDataError
is normally carried as data on a result; raise_for_status() converts it.
"""

from __future__ import annotations

from typing import Any


class AnalysisError(Exception):
    """Root of every error raised by the seasonality engine."""


class ValidationError(AnalysisError, ValueError):
    """Malformed request: missing symbol, start > end, unknown enum key, ..."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(AnalysisError, LookupError):
    """No source rows exist for the requested symbol/range (or catalog)."""

    def __init__(self, message: str, symbol: str | None = None) -> None:
        super().__init__(message)
        self.symbol = symbol


class InsufficientDataError(AnalysisError):
    """A computation needed a minimum sample that was not available."""

    def __init__(
        self,
        message: str,
        found: int,
        required: int,
        reason_code: str = "INSUFFICIENT_OCCURRENCES",
    ) -> None:
        super().__init__(message)
        self.found = found
        self.required = required
        self.reason_code = reason_code


class InvalidDataError(AnalysisError, ValueError):
    """A source row violates an integrity rule and was excluded."""

    def __init__(self, message: str, row_date: Any = None) -> None:
        super().__init__(message)
        self.row_date = row_date
