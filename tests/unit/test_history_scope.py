# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for historical record rows and scope filtering."""

import pytest

from academic_records.domains.history import filter_scope
from academic_records.models.common import HistoryOutcome
from academic_records.models.history import HistoryRow


def make_row(discipline_id: str, **kwargs) -> HistoryRow:
    values = {
        "academic_year": 2025,
        "discipline_id": discipline_id,
        "discipline_name": discipline_id.title(),
        "workload_hours": 60,
        "outcome": HistoryOutcome.PASSED,
    }
    values.update(kwargs)
    return HistoryRow(**values)


@pytest.fixture
def rows() -> list[HistoryRow]:
    """Rows spread over two courses, one class and one equivalency."""
    return [
        make_row("math", course_id="course-a", class_id="class-1"),
        make_row("physics", course_id="course-a", class_id="class-2"),
        make_row("law", course_id="course-b"),
        make_row(
            "history",
            academic_year=None,
            course_id="course-a",
            outcome=HistoryOutcome.EQUIVALENT,
            from_equivalency=True,
        ),
    ]


class TestFilterScope:
    """Tests for filter_scope."""

    def test_class_scope_keeps_class_and_equivalency_rows(self, rows: list[HistoryRow]) -> None:
        """Test that a class scope keeps its rows plus equivalencies."""
        result = filter_scope(rows, class_id="class-1")

        assert [row.discipline_id for row in result] == ["math", "history"]

    def test_class_scope_wins_over_course(self, rows: list[HistoryRow]) -> None:
        """Test that the class filter takes precedence."""
        result = filter_scope(rows, course_id="course-b", class_id="class-2")

        assert [row.discipline_id for row in result] == ["physics", "history"]

    def test_course_scope(self, rows: list[HistoryRow]) -> None:
        """Test filtering by course."""
        result = filter_scope(rows, course_id="course-a")

        assert [row.discipline_id for row in result] == ["math", "physics", "history"]

    def test_no_scope_returns_all(self, rows: list[HistoryRow]) -> None:
        """Test that no filter returns a copy of every row."""
        result = filter_scope(rows)

        assert result == rows
        assert result is not rows


class TestHistoryRow:
    """Tests for HistoryRow."""

    @pytest.mark.parametrize(
        ("outcome", "expected"),
        [
            (HistoryOutcome.PASSED, True),
            (HistoryOutcome.EQUIVALENT, True),
            (HistoryOutcome.FAILED, False),
            (HistoryOutcome.FAILED_ATTENDANCE, False),
        ],
    )
    def test_is_passing(self, outcome: HistoryOutcome, expected: bool) -> None:
        """Test which outcomes count as completed."""
        assert make_row("math", outcome=outcome).is_passing is expected

    def test_rows_are_frozen(self) -> None:
        """Test that rows cannot be changed after creation."""
        row = make_row("math")

        with pytest.raises(Exception):
            row.final_grade = 20.0  # type: ignore[misc]
