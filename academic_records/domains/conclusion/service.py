# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course and class conclusion workflow.

This module provides the ConclusionWorkflow class for:
- Checking conclusion requirements
- Registering a VALIDATED conclusion with consolidated metrics
- Concluding it (VALIDATED -> CONCLUDED) and cascading annual enrollments
- Registering the terminal graduation (HIGHER) or certificate (SECONDARY) record

Conclusion records are official facts. Apart from the single conclude
transition they are never updated and never deleted.
"""

import logging
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.context import AcademicType, TenantContext
from academic_records.core.errors import (
    ConflictError,
    EligibilityError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from academic_records.core.guards import ImmutabilityGuard
from academic_records.domains.audit.service import AuditService
from academic_records.domains.conclusion.requirements import (
    ConclusionRequirements,
    ConclusionRequirementsService,
)
from academic_records.domains.conclusion.scope import (
    ConclusionScope,
    HigherConclusionScope,
    conclusion_scope,
)
from academic_records.domains.history.service import (
    HistoricalRecord,
    HistoricalRecordService,
    filter_scope,
)
from academic_records.domains.immutability import IMMUTABLE_RECORD, RECORD_GUARD
from academic_records.infrastructure.database.connection import unit_of_work
from academic_records.infrastructure.database.models import (
    AnnualEnrollment,
    CertificateRecord,
    ConclusionRecord,
    GraduationRecord,
    Student,
)
from academic_records.models.common import ConclusionStatus, EnrollmentStatus
from academic_records.models.conclusion import (
    CertificateCreateRequest,
    CertificateResponse,
    ConclusionCreateRequest,
    ConclusionResponse,
    GraduationCreateRequest,
    GraduationResponse,
)
from academic_records.models.eligibility import RequirementsReport
from academic_records.models.history import HistoryRow
from academic_records.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ENTITY = "conclusion"


class ConclusionMetrics:
    """Consolidated metrics of a student's record within a scope."""

    def __init__(self, rows: list[HistoryRow]) -> None:
        passing = [row for row in rows if row.is_passing]
        attendance = [row.attendance_percent for row in rows if row.attendance_percent is not None]
        grades = [row.final_grade for row in rows if row.final_grade is not None]

        self.completed_disciplines = len(passing)
        self.total_hours = sum(row.workload_hours for row in rows)
        self.mean_attendance = _rounded_mean(attendance)
        self.mean_grade = _rounded_mean(grades)


class ConclusionWorkflow:
    """State machine for course and class conclusions.

    Attributes:
        db: Async database session.
        requirements: Requirement-completeness collaborator.
        history: Historical record source used for metrics.
    """

    def __init__(
        self,
        db: AsyncSession,
        requirements: ConclusionRequirements | None = None,
        history: HistoricalRecord | None = None,
        guard: ImmutabilityGuard = RECORD_GUARD,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the workflow.

        Args:
            db: Async database session.
            requirements: Requirement check; defaults to the schema-backed one.
            history: Historical record source; defaults to ``history_entries``.
            guard: Immutability guard consulted before every write.
            clock: Source of the current time.
        """
        self.db = db
        self.history = history or HistoricalRecordService(db)
        self.requirements = requirements or ConclusionRequirementsService(
            db, history=self.history
        )
        self.audit = AuditService(db)
        self._guard = guard
        self._clock = clock

    # =========================================================================
    # Requirements
    # =========================================================================

    async def can_conclude(
        self,
        student_id: str,
        context: TenantContext,
        course_id: str | None = None,
        class_id: str | None = None,
    ) -> RequirementsReport:
        """Check whether the student may conclude a course or class.

        Raises:
            ValidationError: If the academic type is unset or the course/class
                selection does not match it.
        """
        academic_type = context.require_academic_type()
        return await self.requirements.check(
            student_id,
            course_id,
            class_id,
            context.tenant_id,
            academic_type,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def create(
        self,
        request: ConclusionCreateRequest,
        context: TenantContext,
    ) -> ConclusionResponse:
        """Register a VALIDATED conclusion.

        Args:
            request: Conclusion data.
            context: Tenant and actor.

        Returns:
            The created conclusion.

        Raises:
            ValidationError: If the scope does not match the academic type.
            NotFoundError: If the student is not in the tenant.
            ConflictError: If a conclusion already exists for the scope.
            EligibilityError: If any requirement is unmet.
        """
        academic_type = context.require_academic_type()
        scope = conclusion_scope(academic_type, request.course_id, request.class_id)

        async with unit_of_work(self.db, "Failed to register conclusion"):
            await self._get_student(request.student_id, context.tenant_id)

            existing = await self._find_for_scope(request.student_id, context.tenant_id, scope)
            if existing is not None:
                raise ConflictError(
                    "A conclusion already exists for this student and course/class."
                )

            report = await self.requirements.check(
                request.student_id,
                scope.course_id,
                scope.class_id,
                context.tenant_id,
                academic_type,
            )
            if not report.valid:
                raise EligibilityError(
                    "Conclusion requirements not met: " + "; ".join(report.errors),
                    check="conclusion_requirements",
                )

            rows = filter_scope(
                await self.history.rows(request.student_id, context.tenant_id),
                course_id=scope.course_id,
                class_id=scope.class_id,
            )
            metrics = ConclusionMetrics(rows)
            now = self._clock()

            record = ConclusionRecord(
                tenant_id=context.tenant_id,
                student_id=request.student_id,
                course_id=scope.course_id,
                class_id=scope.class_id,
                conclusion_type=request.conclusion_type.value,
                status=ConclusionStatus.VALIDATED.value,
                completed_disciplines=metrics.completed_disciplines,
                total_hours=metrics.total_hours,
                mean_attendance=metrics.mean_attendance,
                mean_grade=metrics.mean_grade,
                started_on=request.started_on,
                completed_on=request.completed_on,
                notes=request.notes,
                registered_by=context.actor_id,
                validated_by=context.actor_id,
                validated_at=now,
            )
            self.db.add(record)
            await self.db.flush()

            await self.audit.record(
                context,
                action="conclusion.created",
                entity_type=ENTITY,
                entity_id=record.id,
                description="Conclusion validated",
                details={
                    "student_id": record.student_id,
                    "course_id": record.course_id,
                    "class_id": record.class_id,
                    "warnings": report.warnings,
                },
            )

        logger.info(
            "Created conclusion: id=%s, student=%s, tenant=%s, by=%s",
            record.id,
            record.student_id,
            context.tenant_id,
            context.actor_id,
        )
        return ConclusionResponse.model_validate(record)

    async def conclude(
        self,
        conclusion_id: str,
        context: TenantContext,
        official_act_number: str | None = None,
    ) -> ConclusionResponse:
        """Conclude a VALIDATED conclusion and cascade its annual enrollments.

        The status flip is a compare-and-set on VALIDATED, so of two
        concurrent calls exactly one succeeds and the cascade runs once.

        Args:
            conclusion_id: Conclusion identifier.
            context: Tenant and actor.
            official_act_number: Official act reference, if any.

        Returns:
            The concluded record.

        Raises:
            NotFoundError: If the conclusion is not in the tenant.
            ForbiddenError: If the conclusion is not VALIDATED.
        """
        async with unit_of_work(self.db, "Failed to conclude"):
            record = await self._get_record(conclusion_id, context.tenant_id)
            self._guard.ensure_mutable(record, "conclude")

            now = self._clock()
            result = await self.db.execute(
                update(ConclusionRecord)
                .where(
                    ConclusionRecord.id == record.id,
                    ConclusionRecord.tenant_id == context.tenant_id,
                    ConclusionRecord.status == ConclusionStatus.VALIDATED.value,
                )
                .values(
                    status=ConclusionStatus.CONCLUDED.value,
                    concluded_by=context.actor_id,
                    concluded_at=now,
                    official_act_number=official_act_number or record.official_act_number,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ForbiddenError("Only VALIDATED conclusions can be concluded.")

            cascade = await self.db.execute(
                update(AnnualEnrollment)
                .where(
                    AnnualEnrollment.tenant_id == context.tenant_id,
                    AnnualEnrollment.student_id == record.student_id,
                    AnnualEnrollment.status == EnrollmentStatus.ACTIVE.value,
                    *_enrollment_scope(record),
                )
                .values(status=EnrollmentStatus.CONCLUDED.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )

            await self.audit.record(
                context,
                action="conclusion.concluded",
                entity_type=ENTITY,
                entity_id=record.id,
                description="Course/class concluded",
                details={
                    "official_act_number": official_act_number,
                    "enrollments_concluded": cascade.rowcount,
                },
            )

        await self.db.refresh(record)
        logger.info(
            "Concluded: id=%s, student=%s, enrollments=%d, by=%s",
            record.id,
            record.student_id,
            cascade.rowcount,
            context.actor_id,
        )
        return ConclusionResponse.model_validate(record)

    async def register_graduation(
        self,
        conclusion_id: str,
        request: GraduationCreateRequest,
        context: TenantContext,
    ) -> GraduationResponse:
        """Register the degree of a concluded higher-education course.

        Raises:
            ValidationError: If the institution is not HIGHER or the
                conclusion is not CONCLUDED.
            NotFoundError: If the conclusion is not in the tenant.
            ConflictError: If a graduation exists or the number is taken.
        """
        if context.require_academic_type() != AcademicType.HIGHER:
            raise ValidationError(
                "Graduation records apply to higher education only. "
                "Register a certificate instead.",
                field="academic_type",
            )

        async with unit_of_work(self.db, "Failed to register graduation"):
            record = await self._get_concluded(conclusion_id, context.tenant_id)

            if await self.db.scalar(
                select(GraduationRecord.id).where(GraduationRecord.conclusion_id == record.id)
            ):
                raise ConflictError("A graduation is already registered for this conclusion.")
            if await self.db.scalar(
                select(GraduationRecord.id).where(
                    GraduationRecord.tenant_id == context.tenant_id,
                    GraduationRecord.graduation_number == request.graduation_number,
                )
            ):
                raise ConflictError(
                    f"Graduation number {request.graduation_number} is already in use."
                )

            graduation = GraduationRecord(
                tenant_id=context.tenant_id,
                conclusion_id=record.id,
                graduation_number=request.graduation_number,
                graduated_on=request.graduated_on,
                degree_title=request.degree_title,
                ceremony_notes=request.ceremony_notes,
                registered_by=context.actor_id,
            )
            await self._insert_terminal(graduation, "A graduation is already registered.")

            await self.audit.record(
                context,
                action="graduation.registered",
                entity_type="graduation",
                entity_id=graduation.id,
                details={"conclusion_id": record.id, "number": request.graduation_number},
            )

        logger.info(
            "Registered graduation %s for conclusion %s",
            graduation.graduation_number,
            record.id,
        )
        return GraduationResponse.model_validate(graduation)

    async def register_certificate(
        self,
        conclusion_id: str,
        request: CertificateCreateRequest,
        context: TenantContext,
    ) -> CertificateResponse:
        """Register the certificate of a concluded secondary class.

        Raises:
            ValidationError: If the institution is not SECONDARY or the
                conclusion is not CONCLUDED.
            NotFoundError: If the conclusion is not in the tenant.
            ConflictError: If a certificate exists or the number is taken.
        """
        if context.require_academic_type() != AcademicType.SECONDARY:
            raise ValidationError(
                "Certificate records apply to secondary education only. "
                "Register a graduation instead.",
                field="academic_type",
            )

        async with unit_of_work(self.db, "Failed to register certificate"):
            record = await self._get_concluded(conclusion_id, context.tenant_id)

            if await self.db.scalar(
                select(CertificateRecord.id).where(CertificateRecord.conclusion_id == record.id)
            ):
                raise ConflictError("A certificate is already registered for this conclusion.")
            if await self.db.scalar(
                select(CertificateRecord.id).where(
                    CertificateRecord.tenant_id == context.tenant_id,
                    CertificateRecord.certificate_number == request.certificate_number,
                )
            ):
                raise ConflictError(
                    f"Certificate number {request.certificate_number} is already in use."
                )

            certificate = CertificateRecord(
                tenant_id=context.tenant_id,
                conclusion_id=record.id,
                certificate_number=request.certificate_number,
                issued_on=request.issued_on,
                book_reference=request.book_reference,
                page_reference=request.page_reference,
                registered_by=context.actor_id,
            )
            await self._insert_terminal(certificate, "A certificate is already registered.")

            await self.audit.record(
                context,
                action="certificate.registered",
                entity_type="certificate",
                entity_id=certificate.id,
                details={"conclusion_id": record.id, "number": request.certificate_number},
            )

        logger.info(
            "Registered certificate %s for conclusion %s",
            certificate.certificate_number,
            record.id,
        )
        return CertificateResponse.model_validate(certificate)

    async def update(
        self,
        conclusion_id: str,
        changes: dict[str, Any],
        context: TenantContext,
    ) -> ConclusionResponse:
        """Refuse any change to a conclusion record.

        The refusal does not depend on the guard: a guard without a
        conclusion rule still cannot make a conclusion editable.

        Raises:
            NotFoundError: If the conclusion is not in the tenant.
            ForbiddenError: Always, for an existing record.
        """
        record = await self._get_record(conclusion_id, context.tenant_id)
        self._guard.ensure_mutable(record, "update")
        raise ForbiddenError(IMMUTABLE_RECORD)

    async def delete(self, conclusion_id: str, context: TenantContext) -> None:
        """Refuse deletion of a conclusion record.

        The refusal does not depend on the guard: a guard without a
        conclusion rule still cannot make a conclusion deletable.

        Raises:
            NotFoundError: If the conclusion is not in the tenant.
            ForbiddenError: Always, for an existing record.
        """
        record = await self._get_record(conclusion_id, context.tenant_id)
        self._guard.ensure_mutable(record, "delete")
        raise ForbiddenError(IMMUTABLE_RECORD)

    # =========================================================================
    # Read side
    # =========================================================================

    async def get(self, conclusion_id: str, context: TenantContext) -> ConclusionResponse:
        """Get a conclusion by ID.

        Raises:
            NotFoundError: If the conclusion is not in the tenant.
        """
        record = await self._get_record(conclusion_id, context.tenant_id)
        return ConclusionResponse.model_validate(record)

    async def list_conclusions(
        self,
        context: TenantContext,
        student_id: str | None = None,
        course_id: str | None = None,
        class_id: str | None = None,
        status: ConclusionStatus | None = None,
    ) -> list[ConclusionResponse]:
        """List the tenant's conclusions, newest first."""
        stmt = select(ConclusionRecord).where(ConclusionRecord.tenant_id == context.tenant_id)
        if student_id:
            stmt = stmt.where(ConclusionRecord.student_id == student_id)
        if course_id:
            stmt = stmt.where(ConclusionRecord.course_id == course_id)
        if class_id:
            stmt = stmt.where(ConclusionRecord.class_id == class_id)
        if status:
            stmt = stmt.where(ConclusionRecord.status == status.value)

        result = await self.db.execute(stmt.order_by(ConclusionRecord.created_at.desc()))
        return [ConclusionResponse.model_validate(r) for r in result.scalars().all()]

    async def is_concluded(
        self,
        student_id: str,
        context: TenantContext,
        course_id: str | None = None,
        class_id: str | None = None,
    ) -> bool:
        """Check if the student has a CONCLUDED conclusion.

        Without course or class, any CONCLUDED conclusion of the student counts.
        """
        stmt = select(ConclusionRecord.id).where(
            ConclusionRecord.tenant_id == context.tenant_id,
            ConclusionRecord.student_id == student_id,
            ConclusionRecord.status == ConclusionStatus.CONCLUDED.value,
        )
        if course_id:
            stmt = stmt.where(ConclusionRecord.course_id == course_id)
        elif class_id:
            stmt = stmt.where(ConclusionRecord.class_id == class_id)

        return await self.db.scalar(stmt.limit(1)) is not None

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_student(self, student_id: str, tenant_id: str) -> Student:
        student = await self.db.scalar(
            select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id)
        )
        if student is None:
            raise NotFoundError("Student not found.")
        return student

    async def _get_record(self, conclusion_id: str, tenant_id: str) -> ConclusionRecord:
        record = await self.db.scalar(
            select(ConclusionRecord).where(
                ConclusionRecord.id == conclusion_id,
                ConclusionRecord.tenant_id == tenant_id,
            )
        )
        if record is None:
            raise NotFoundError("Conclusion not found.")
        return record

    async def _get_concluded(self, conclusion_id: str, tenant_id: str) -> ConclusionRecord:
        record = await self._get_record(conclusion_id, tenant_id)
        if not record.is_concluded:
            raise ValidationError(
                "The conclusion must be CONCLUDED before registering its final record.",
                field="status",
            )
        return record

    async def _find_for_scope(
        self,
        student_id: str,
        tenant_id: str,
        scope: ConclusionScope,
    ) -> ConclusionRecord | None:
        stmt = select(ConclusionRecord).where(
            ConclusionRecord.tenant_id == tenant_id,
            ConclusionRecord.student_id == student_id,
        )
        if isinstance(scope, HigherConclusionScope):
            stmt = stmt.where(ConclusionRecord.course_id == scope.course_id)
        else:
            stmt = stmt.where(ConclusionRecord.class_id == scope.class_id)
        return await self.db.scalar(stmt.limit(1))

    async def _insert_terminal(
        self,
        child: GraduationRecord | CertificateRecord,
        conflict_message: str,
    ) -> None:
        """Insert a terminal record; unique violations become ConflictError."""
        self.db.add(child)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise ConflictError(conflict_message, e) from e


def _enrollment_scope(record: ConclusionRecord) -> list:
    if record.class_id is not None:
        return [AnnualEnrollment.class_id == record.class_id]
    return [AnnualEnrollment.course_id == record.course_id]


def _rounded_mean(values: list[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 2)
