# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Ordered check pipelines.

An irreversible action is gated by a list of checks. Each check is an async
predicate returning ``None`` when it passes or the human-readable reason when
it fails. ``run_checks`` evaluates them in order and stops at the first
failure, so later (usually more expensive) checks never run once an earlier
one has failed.

Example:
    checks = [
        Check("student", lambda: student_exists(...), error=NotFoundError),
        Check("financial_hold", lambda: financial_reason(...)),
    ]
    await run_checks(checks)  # raises the failing check's error class
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from academic_records.core.errors import EligibilityError, RecordsError

CheckPredicate = Callable[[], Awaitable[str | None]]


@dataclass(frozen=True)
class Check:
    """One step of a pipeline.

    Attributes:
        name: Stable identifier, reported on failure.
        evaluate: Async predicate returning a failure reason or None.
        error: Error class raised with the reason when the check fails.
    """

    name: str
    evaluate: CheckPredicate
    error: type[RecordsError] = EligibilityError


@dataclass(frozen=True)
class CheckFailure:
    """First failing check of a pipeline run."""

    check: Check
    reason: str

    def to_error(self) -> RecordsError:
        """Build the error instance for this failure."""
        if issubclass(self.check.error, EligibilityError):
            return self.check.error(self.reason, check=self.check.name)
        return self.check.error(self.reason)


async def first_failure(checks: Sequence[Check]) -> CheckFailure | None:
    """Evaluate checks in order and return the first failure, if any."""
    for check in checks:
        reason = await check.evaluate()
        if reason is not None:
            return CheckFailure(check=check, reason=reason)
    return None


async def run_checks(checks: Sequence[Check]) -> None:
    """Evaluate checks in order, raising on the first failure.

    Raises:
        RecordsError: The failing check's error class, carrying its reason.
    """
    failure = await first_failure(checks)
    if failure is not None:
        raise failure.to_error()
