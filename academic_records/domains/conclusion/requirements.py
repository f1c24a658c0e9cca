# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conclusion requirement checks.

Produces the ordered error list and checklist shown to staff before a course
or class is concluded. Certificate and transcript issuance reuse the same
report through the eligibility pipeline.
"""

import logging
from typing import Protocol

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.config.settings import RecordsSettings, get_settings
from academic_records.core.context import AcademicType
from academic_records.core.errors import NotFoundError
from academic_records.domains.conclusion.scope import (
    ConclusionScope,
    HigherConclusionScope,
    conclusion_scope,
)
from academic_records.domains.holds.service import (
    AcademicHold,
    AcademicHoldError,
    AcademicHoldService,
)
from academic_records.domains.history.service import (
    HistoricalRecord,
    HistoricalRecordService,
    filter_scope,
)
from academic_records.infrastructure.database.models import (
    AcademicYear,
    AnnualEnrollment,
    Course,
    Discipline,
    SchoolClass,
)
from academic_records.models.common import AcademicYearStatus, EnrollmentStatus
from academic_records.models.eligibility import RequirementItem, RequirementsReport
from academic_records.models.history import HistoryRow

logger = logging.getLogger(__name__)

HIGHER_CURRICULUM_MESSAGE = "Student does not meet all curriculum requirements."
SECONDARY_CURRICULUM_MESSAGE = "Student has not completed all mandatory classes."


class ConclusionRequirements(Protocol):
    """Requirement-completeness collaborator."""

    async def check(
        self,
        student_id: str,
        course_id: str | None,
        class_id: str | None,
        tenant_id: str,
        academic_type: AcademicType,
    ) -> RequirementsReport: ...


class ConclusionRequirementsService:
    """Default requirement check backed by the records schema.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        academic_hold: AcademicHold | None = None,
        history: HistoricalRecord | None = None,
        settings: RecordsSettings | None = None,
    ) -> None:
        """Initialize the requirement check.

        Args:
            db: Async database session.
            academic_hold: Academic hold collaborator.
            history: Historical record source.
            settings: Academic rules; defaults to the application settings.
        """
        self.db = db
        self.academic_hold = academic_hold or AcademicHoldService(db)
        self.history = history or HistoricalRecordService(db)
        self.settings = settings or get_settings().records

    async def check(
        self,
        student_id: str,
        course_id: str | None,
        class_id: str | None,
        tenant_id: str,
        academic_type: AcademicType,
    ) -> RequirementsReport:
        """Evaluate every conclusion requirement.

        Args:
            student_id: Student identifier.
            course_id: Course (HIGHER, optional for SECONDARY).
            class_id: Class (SECONDARY).
            tenant_id: Tenant identifier.
            academic_type: Institution academic type.

        Returns:
            The report; ``valid`` only when ``errors`` is empty.

        Raises:
            ValidationError: If the course/class selection does not match
                the academic type.
            NotFoundError: If the course or class is not in the tenant.
        """
        scope = conclusion_scope(academic_type, course_id, class_id)
        errors: list[str] = []
        warnings: list[str] = []
        checklist: list[RequirementItem] = []

        program_hours = await self._program_hours(scope, tenant_id)

        # 1. Active annual enrollment for the scope
        enrollment = await self._active_enrollment(student_id, tenant_id, scope)
        if enrollment is None:
            errors.append("Student has no valid active annual enrollment for this course/class.")
        checklist.append(RequirementItem(name="enrollment", met=enrollment is not None))

        # 2. Academic hold
        hold_reason: str | None = None
        try:
            await self.academic_hold.check(
                student_id,
                tenant_id,
                academic_type,
                academic_year_id=enrollment.academic_year_id if enrollment else None,
            )
        except AcademicHoldError as e:
            hold_reason = e.message
            errors.append(f"Academic hold: {e.message}")
        checklist.append(
            RequirementItem(name="academic_hold", met=hold_reason is None, detail=hold_reason)
        )

        # 3. Mandatory disciplines
        rows = filter_scope(
            await self.history.rows(student_id, tenant_id),
            course_id=scope.course_id,
            class_id=scope.class_id,
        )
        if not rows:
            warnings.append(
                "No consolidated historical record found. "
                "Close the academic year before concluding."
            )
        passed = [row for row in rows if row.is_passing]
        passed_ids = {row.discipline_id for row in passed}
        mandatory = await self._mandatory_disciplines(scope, tenant_id)
        pending = [name for discipline_id, name in mandatory if discipline_id not in passed_ids]
        if pending:
            errors.append(
                f"Missing {len(pending)} mandatory discipline(s): {', '.join(pending)}"
            )
        checklist.append(
            RequirementItem(
                name="mandatory_disciplines",
                met=not pending,
                detail=f"{len(mandatory) - len(pending)} of {len(mandatory)} completed",
            )
        )

        # 4. Workload
        completed_hours = sum(row.workload_hours for row in passed)
        if program_hours > 0 and completed_hours < program_hours:
            percent = completed_hours / program_hours * 100
            errors.append(
                f"Insufficient workload: {completed_hours}h of {program_hours}h "
                f"required ({percent:.2f}%)"
            )
        checklist.append(
            RequirementItem(
                name="workload",
                met=program_hours == 0 or completed_hours >= program_hours,
                detail=f"{completed_hours}h of {program_hours}h",
            )
        )

        # 5. Attendance
        mean_attendance = _mean_attendance(rows)
        minimum = self.settings.min_attendance_percent
        if mean_attendance < minimum:
            errors.append(
                f"Insufficient mean attendance: {mean_attendance:.2f}% (minimum: {minimum:g}%)"
            )
        checklist.append(
            RequirementItem(
                name="attendance",
                met=mean_attendance >= minimum,
                detail=f"{mean_attendance:.2f}%",
            )
        )

        # 6. Academic years closed
        open_years = await self._open_years(student_id, tenant_id, scope)
        if open_years:
            errors.append("All related academic years must be closed.")
        checklist.append(RequirementItem(name="academic_years_closed", met=not open_years))

        # 7. Institution-type summary
        if pending:
            errors.append(
                HIGHER_CURRICULUM_MESSAGE
                if isinstance(scope, HigherConclusionScope)
                else SECONDARY_CURRICULUM_MESSAGE
            )

        report = RequirementsReport(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            checklist=checklist,
        )
        logger.info(
            "Conclusion requirements: student=%s, tenant=%s, valid=%s, errors=%d",
            student_id,
            tenant_id,
            report.valid,
            len(errors),
        )
        return report

    async def _program_hours(self, scope: ConclusionScope, tenant_id: str) -> int:
        if isinstance(scope, HigherConclusionScope):
            course = await self.db.scalar(
                select(Course).where(Course.id == scope.course_id, Course.tenant_id == tenant_id)
            )
            if course is None:
                raise NotFoundError("Course not found.")
            return course.total_hours

        school_class = await self.db.scalar(
            select(SchoolClass).where(
                SchoolClass.id == scope.class_id,
                SchoolClass.tenant_id == tenant_id,
            )
        )
        if school_class is None:
            raise NotFoundError("Class not found.")
        return school_class.total_hours

    async def _active_enrollment(
        self,
        student_id: str,
        tenant_id: str,
        scope: ConclusionScope,
    ) -> AnnualEnrollment | None:
        stmt = (
            select(AnnualEnrollment)
            .where(
                AnnualEnrollment.tenant_id == tenant_id,
                AnnualEnrollment.student_id == student_id,
                AnnualEnrollment.status == EnrollmentStatus.ACTIVE.value,
                *_scope_filters(scope),
            )
            .order_by(AnnualEnrollment.created_at.desc())
            .limit(1)
        )
        return await self.db.scalar(stmt)

    async def _mandatory_disciplines(
        self,
        scope: ConclusionScope,
        tenant_id: str,
    ) -> list[tuple[str, str]]:
        stmt = select(Discipline.id, Discipline.name).where(
            Discipline.tenant_id == tenant_id,
            Discipline.is_mandatory.is_(True),
            Discipline.is_active.is_(True),
        )
        if isinstance(scope, HigherConclusionScope):
            stmt = stmt.where(Discipline.course_id == scope.course_id)
        elif scope.course_id is not None:
            stmt = stmt.where(
                or_(Discipline.course_id.is_(None), Discipline.course_id == scope.course_id)
            )
        else:
            stmt = stmt.where(Discipline.course_id.is_(None))

        result = await self.db.execute(stmt.order_by(Discipline.name))
        return [(discipline_id, name) for discipline_id, name in result.all()]

    async def _open_years(
        self,
        student_id: str,
        tenant_id: str,
        scope: ConclusionScope,
    ) -> list[str]:
        stmt = (
            select(AcademicYear.id)
            .join(AnnualEnrollment, AnnualEnrollment.academic_year_id == AcademicYear.id)
            .where(
                AnnualEnrollment.tenant_id == tenant_id,
                AnnualEnrollment.student_id == student_id,
                AcademicYear.status == AcademicYearStatus.OPEN.value,
                *_scope_filters(scope),
            )
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


def _scope_filters(scope: ConclusionScope) -> list:
    if isinstance(scope, HigherConclusionScope):
        return [AnnualEnrollment.course_id == scope.course_id]
    return [AnnualEnrollment.class_id == scope.class_id]


def _mean_attendance(rows: list[HistoryRow]) -> float:
    values = [row.attendance_percent for row in rows if row.attendance_percent is not None]
    if not values:
        return 0.0
    return sum(values) / len(values)
