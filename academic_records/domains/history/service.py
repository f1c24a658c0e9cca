# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Historical record read model.

The historical record is the immutable per-subject snapshot produced when an
academic year closes. This module only reads it: open years are never
included and grades are never recomputed. Deferred equivalencies are
appended as additional EQUIVALENT rows; they never rewrite a snapshot row.
"""

import logging
from typing import Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.errors import StoreError
from academic_records.infrastructure.database.models import (
    AcademicYear,
    Discipline,
    EquivalencyRecord,
    HistoryEntry,
)
from academic_records.models.common import AcademicYearStatus, HistoryOutcome
from academic_records.models.history import HistoryRow

logger = logging.getLogger(__name__)


class HistoricalRecord(Protocol):
    """Source of a student's ordered, immutable per-subject rows."""

    async def rows(
        self,
        student_id: str,
        tenant_id: str,
        academic_year_id: str | None = None,
    ) -> list[HistoryRow]: ...


def filter_scope(
    rows: Iterable[HistoryRow],
    course_id: str | None = None,
    class_id: str | None = None,
) -> list[HistoryRow]:
    """Keep the rows belonging to a course or class.

    A class scope keeps the rows of that class plus equivalency rows, which
    are not attached to a class. A course scope keeps rows of that course.
    """
    if class_id is not None:
        return [row for row in rows if row.class_id == class_id or row.from_equivalency]
    if course_id is not None:
        return [row for row in rows if row.course_id == course_id]
    return list(rows)


class HistoricalRecordService:
    """Default historical record backed by ``history_entries``.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def rows(
        self,
        student_id: str,
        tenant_id: str,
        academic_year_id: str | None = None,
    ) -> list[HistoryRow]:
        """Return the student's historical rows.

        Rows come from CLOSED academic years only, newest year first and by
        discipline name within a year. When no year filter is given, deferred
        equivalencies follow as EQUIVALENT rows.

        Args:
            student_id: Student identifier.
            tenant_id: Tenant identifier.
            academic_year_id: Restrict to one academic year.

        Returns:
            Ordered history rows.

        Raises:
            StoreError: If the store query fails.
        """
        try:
            rows = await self._snapshot_rows(student_id, tenant_id, academic_year_id)
            if academic_year_id is None:
                rows.extend(await self._equivalency_rows(student_id, tenant_id))
        except SQLAlchemyError as e:
            raise StoreError("Failed to read historical record", e) from e

        logger.debug(
            "Loaded %d history rows: student=%s, tenant=%s",
            len(rows),
            student_id,
            tenant_id,
        )
        return rows

    async def _snapshot_rows(
        self,
        student_id: str,
        tenant_id: str,
        academic_year_id: str | None,
    ) -> list[HistoryRow]:
        stmt = (
            select(HistoryEntry, AcademicYear.year, Discipline.name)
            .join(AcademicYear, AcademicYear.id == HistoryEntry.academic_year_id)
            .join(Discipline, Discipline.id == HistoryEntry.discipline_id)
            .where(
                HistoryEntry.tenant_id == tenant_id,
                HistoryEntry.student_id == student_id,
                AcademicYear.tenant_id == tenant_id,
                AcademicYear.status == AcademicYearStatus.CLOSED.value,
            )
            .order_by(AcademicYear.year.desc(), Discipline.name.asc())
        )
        if academic_year_id is not None:
            stmt = stmt.where(HistoryEntry.academic_year_id == academic_year_id)

        result = await self.db.execute(stmt)
        return [
            HistoryRow(
                academic_year=year,
                discipline_id=entry.discipline_id,
                discipline_name=name,
                course_id=entry.course_id,
                class_id=entry.class_id,
                workload_hours=entry.workload_hours,
                attendance_percent=entry.attendance_percent,
                final_grade=entry.final_grade,
                outcome=HistoryOutcome(entry.outcome),
            )
            for entry, year, name in result.all()
        ]

    async def _equivalency_rows(self, student_id: str, tenant_id: str) -> list[HistoryRow]:
        stmt = (
            select(EquivalencyRecord, Discipline.name, Discipline.course_id)
            .join(Discipline, Discipline.id == EquivalencyRecord.destination_discipline_id)
            .where(
                EquivalencyRecord.tenant_id == tenant_id,
                EquivalencyRecord.student_id == student_id,
                EquivalencyRecord.deferred.is_(True),
            )
            .order_by(Discipline.name.asc())
        )
        result = await self.db.execute(stmt)
        return [
            HistoryRow(
                discipline_id=record.destination_discipline_id,
                discipline_name=name,
                course_id=course_id,
                workload_hours=record.destination_hours,
                final_grade=record.origin_grade,
                outcome=HistoryOutcome.EQUIVALENT,
                from_equivalency=True,
                origin_institution=record.origin_institution,
            )
            for record, name, course_id in result.all()
        ]
