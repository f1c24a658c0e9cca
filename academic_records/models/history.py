# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Historical record rows."""

from pydantic import BaseModel, ConfigDict, Field

from academic_records.models.common import HistoryOutcome


class HistoryRow(BaseModel):
    """One immutable subject line of a student's historical record.

    Rows from closed academic years carry the snapshot values. Rows added
    from deferred equivalencies have ``from_equivalency`` set and outcome
    EQUIVALENT.
    """

    model_config = ConfigDict(frozen=True)

    academic_year: int | None = None
    discipline_id: str
    discipline_name: str
    course_id: str | None = None
    class_id: str | None = None
    workload_hours: int = 0
    attendance_percent: float | None = None
    final_grade: float | None = None
    outcome: HistoryOutcome
    from_equivalency: bool = False
    origin_institution: str | None = Field(
        default=None,
        description="Institution where an equivalent subject was taken.",
    )

    @property
    def is_passing(self) -> bool:
        """Check if the row counts as a completed subject."""
        return self.outcome in (HistoryOutcome.PASSED, HistoryOutcome.EQUIVALENT)
