# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for ordered check pipelines."""

from unittest.mock import AsyncMock

import pytest

from academic_records.core.errors import EligibilityError, NotFoundError
from academic_records.core.pipeline import Check, first_failure, run_checks


def passing() -> AsyncMock:
    return AsyncMock(return_value=None)


def failing(reason: str) -> AsyncMock:
    return AsyncMock(return_value=reason)


class TestRunChecks:
    """Tests for run_checks."""

    @pytest.mark.asyncio
    async def test_all_checks_pass(self) -> None:
        """Test that a passing pipeline evaluates every check."""
        first, second = passing(), passing()

        await run_checks([Check("first", first), Check("second", second)])

        first.assert_awaited_once()
        second.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self) -> None:
        """Test that checks after the first failure never run."""
        later = passing()

        with pytest.raises(EligibilityError) as exc_info:
            await run_checks(
                [
                    Check("student", passing()),
                    Check("financial_hold", failing("Outstanding tuition.")),
                    Check("academic_hold", later),
                ]
            )

        assert exc_info.value.message == "Outstanding tuition."
        assert exc_info.value.check == "financial_hold"
        later.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_raises_configured_error_class(self) -> None:
        """Test that a check raises its own error class."""
        with pytest.raises(NotFoundError) as exc_info:
            await run_checks([Check("student", failing("Student not found."), error=NotFoundError)])

        assert str(exc_info.value) == "Student not found."


class TestFirstFailure:
    """Tests for first_failure."""

    @pytest.mark.asyncio
    async def test_returns_none_when_all_pass(self) -> None:
        """Test that no failure is reported for passing checks."""
        assert await first_failure([Check("a", passing()), Check("b", passing())]) is None

    @pytest.mark.asyncio
    async def test_reports_failing_check(self) -> None:
        """Test that the failing check and reason are reported."""
        check = Check("requirement", failing("No active enrollment."))

        failure = await first_failure([Check("student", passing()), check])

        assert failure is not None
        assert failure.check is check
        assert failure.reason == "No active enrollment."
        error = failure.to_error()
        assert isinstance(error, EligibilityError)
        assert error.check == "requirement"

    @pytest.mark.asyncio
    async def test_empty_pipeline_passes(self) -> None:
        """Test that an empty pipeline has no failure."""
        assert await first_failure([]) is None
