# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy shared by every workflow.

Each failure surfaced to callers is exactly one of these classes and always
carries the human-readable reason staff can act on. ``StoreError`` is the
fatal persistence failure; the others describe the request.
"""

from typing import Optional


class RecordsError(Exception):
    """Base exception for academic records operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return the human-readable message."""
        return self.message


class ValidationError(RecordsError):
    """Malformed or inconsistent input (e.g. course/class mismatch)."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, original_error)
        self.field = field


class NotFoundError(RecordsError):
    """Entity absent or owned by another tenant."""

    pass


class ConflictError(RecordsError):
    """Duplicate deferred equivalency, duplicate terminal record, reused number."""

    pass


class ForbiddenError(RecordsError):
    """Immutability violation or insufficient role."""

    pass


class EligibilityError(RecordsError):
    """Financial/academic hold or unmet requirement.

    Attributes:
        check: Name of the pipeline check that failed, when known.
    """

    def __init__(
        self,
        message: str,
        check: str | None = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, original_error)
        self.check = check


class StoreError(RecordsError):
    """Fatal persistence failure. Nothing written in the unit of work survives."""

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message
