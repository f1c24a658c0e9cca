# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document payload composition.

Declarations describe the present, so they are composed from live
enrollment, course, class and discipline data. Transcripts and certificates
describe the past, so they are composed from the immutable historical
snapshot and the conclusion record, never from a live recomputation.

The composed payload is stored verbatim with the issued document.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.context import TenantContext
from academic_records.core.errors import NotFoundError
from academic_records.domains.history.service import (
    HistoricalRecord,
    HistoricalRecordService,
    filter_scope,
)
from academic_records.infrastructure.database.models import (
    AcademicYear,
    AnnualEnrollment,
    CertificateRecord,
    ConclusionRecord,
    Course,
    Discipline,
    DisciplineEnrollment,
    GraduationRecord,
    SchoolClass,
    Student,
    Tenant,
)
from academic_records.models.common import (
    ConclusionStatus,
    DisciplineEnrollmentStatus,
    EnrollmentStatus,
)
from academic_records.models.document import (
    AttendanceDeclarationRequest,
    CertificateRequest,
    ConclusionInfo,
    DocumentPayload,
    DocumentRequest,
    EnrollmentInfo,
    InstitutionInfo,
    StudentInfo,
    TranscriptRequest,
)
from academic_records.models.history import HistoryRow
from academic_records.utils.datetime import format_display_date

logger = logging.getLogger(__name__)


class DocumentComposer:
    """Builds the payload of an official document.

    Attributes:
        db: Async database session.
        history: Historical record source for transcripts and certificates.
    """

    def __init__(self, db: AsyncSession, history: HistoricalRecord | None = None) -> None:
        self.db = db
        self.history = history or HistoricalRecordService(db)

    async def compose(
        self,
        request: DocumentRequest,
        student_id: str,
        context: TenantContext,
        *,
        number: str,
        verification_code: str,
        issued_at: datetime,
    ) -> DocumentPayload:
        """Compose the payload for a document request.

        Args:
            request: Document request variant.
            student_id: Student identifier.
            context: Tenant and actor.
            number: Allocated document number.
            verification_code: Public verification code.
            issued_at: Issue timestamp.

        Returns:
            The composed payload.

        Raises:
            NotFoundError: If the institution or student is missing.
        """
        payload = DocumentPayload(
            kind=request.kind,
            number=number,
            verification_code=verification_code,
            issued_at=issued_at.isoformat(),
            institution=await self._institution(context.tenant_id),
            student=await self._student(student_id, context.tenant_id),
        )

        if isinstance(request, TranscriptRequest):
            await self._compose_transcript(payload, request, student_id, context)
        elif isinstance(request, CertificateRequest):
            await self._compose_certificate(payload, request, student_id, context)
        else:
            await self._compose_declaration(payload, request, student_id, context)

        logger.debug(
            "Composed %s payload: number=%s, history_rows=%d",
            request.kind.value,
            number,
            len(payload.history),
        )
        return payload

    # =========================================================================
    # Per kind
    # =========================================================================

    async def _compose_declaration(
        self,
        payload: DocumentPayload,
        request: DocumentRequest,
        student_id: str,
        context: TenantContext,
    ) -> None:
        payload.purpose = request.purpose
        enrollment = await self._latest_enrollment(
            student_id, context.tenant_id, status=EnrollmentStatus.ACTIVE
        )
        if enrollment is None:
            return

        discipline_id = (
            request.discipline_id if isinstance(request, AttendanceDeclarationRequest) else None
        )
        payload.enrollment = await self._enrollment_info(
            enrollment,
            context.tenant_id,
            disciplines=await self._enrolled_disciplines(
                enrollment.id, context.tenant_id, discipline_id
            ),
        )

    async def _compose_transcript(
        self,
        payload: DocumentPayload,
        request: TranscriptRequest,
        student_id: str,
        context: TenantContext,
    ) -> None:
        rows = await self.history.rows(
            student_id, context.tenant_id, academic_year_id=request.academic_year_id
        )
        enrollment = await self._latest_enrollment(student_id, context.tenant_id)
        if enrollment is not None:
            payload.enrollment = await self._enrollment_info(enrollment, context.tenant_id)
        _apply_history(payload, rows)

    async def _compose_certificate(
        self,
        payload: DocumentPayload,
        request: CertificateRequest,
        student_id: str,
        context: TenantContext,
    ) -> None:
        conclusion = await self._concluded(
            student_id, context.tenant_id, request.course_id, request.class_id
        )
        course_id = conclusion.course_id if conclusion else request.course_id
        class_id = conclusion.class_id if conclusion else request.class_id

        rows = filter_scope(
            await self.history.rows(student_id, context.tenant_id),
            course_id=course_id,
            class_id=class_id,
        )
        enrollment = await self._latest_enrollment(student_id, context.tenant_id)
        if enrollment is not None:
            payload.enrollment = await self._enrollment_info(enrollment, context.tenant_id)
        if conclusion is not None:
            payload.conclusion = await self._conclusion_info(conclusion, context.tenant_id)
        _apply_history(payload, rows)

    # =========================================================================
    # Blocks
    # =========================================================================

    async def _institution(self, tenant_id: str) -> InstitutionInfo:
        tenant = await self.db.scalar(select(Tenant).where(Tenant.id == tenant_id))
        if tenant is None:
            raise NotFoundError("Institution not found.")
        return InstitutionInfo(
            name=tenant.name,
            tax_id=tenant.tax_id,
            address=tenant.address,
            phone=tenant.phone,
            contact_email=tenant.contact_email,
        )

    async def _student(self, student_id: str, tenant_id: str) -> StudentInfo:
        student = await self.db.scalar(
            select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id)
        )
        if student is None:
            raise NotFoundError("Student not found.")
        return StudentInfo(
            id=student.id,
            full_name=student.full_name,
            student_number=student.student_number,
            public_number=student.public_number,
            identity_document=student.identity_document,
            birth_date=student.birth_date.isoformat() if student.birth_date else None,
        )

    async def _enrollment_info(
        self,
        enrollment: AnnualEnrollment,
        tenant_id: str,
        disciplines: list[str] | None = None,
    ) -> EnrollmentInfo:
        course_name = None
        if enrollment.course_id:
            course_name = await self.db.scalar(
                select(Course.name).where(
                    Course.id == enrollment.course_id, Course.tenant_id == tenant_id
                )
            )
        class_name = None
        if enrollment.class_id:
            class_name = await self.db.scalar(
                select(SchoolClass.name).where(
                    SchoolClass.id == enrollment.class_id, SchoolClass.tenant_id == tenant_id
                )
            )
        academic_year = None
        if enrollment.academic_year_id:
            academic_year = await self.db.scalar(
                select(AcademicYear.year).where(
                    AcademicYear.id == enrollment.academic_year_id,
                    AcademicYear.tenant_id == tenant_id,
                )
            )

        return EnrollmentInfo(
            enrollment_id=enrollment.id,
            status=enrollment.status,
            year_label=enrollment.year_label,
            academic_year=academic_year,
            course_name=course_name,
            class_name=class_name,
            disciplines=disciplines or [],
        )

    async def _conclusion_info(self, record: ConclusionRecord, tenant_id: str) -> ConclusionInfo:
        # Secondary conclusions carry a class; higher ones only a course
        if record.class_id:
            program_name = await self.db.scalar(
                select(SchoolClass.name).where(
                    SchoolClass.id == record.class_id, SchoolClass.tenant_id == tenant_id
                )
            )
            registration = await self.db.scalar(
                select(CertificateRecord.certificate_number).where(
                    CertificateRecord.conclusion_id == record.id
                )
            )
        else:
            program_name = await self.db.scalar(
                select(Course.name).where(
                    Course.id == record.course_id, Course.tenant_id == tenant_id
                )
            )
            registration = await self.db.scalar(
                select(GraduationRecord.graduation_number).where(
                    GraduationRecord.conclusion_id == record.id
                )
            )

        return ConclusionInfo(
            conclusion_id=record.id,
            program_name=program_name or "",
            concluded_at=format_display_date(record.concluded_at) if record.concluded_at else None,
            completed_disciplines=record.completed_disciplines,
            total_hours=record.total_hours,
            mean_attendance=record.mean_attendance,
            mean_grade=record.mean_grade,
            official_act_number=record.official_act_number,
            registration_number=registration,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def _latest_enrollment(
        self,
        student_id: str,
        tenant_id: str,
        status: EnrollmentStatus | None = None,
    ) -> AnnualEnrollment | None:
        stmt = select(AnnualEnrollment).where(
            AnnualEnrollment.tenant_id == tenant_id,
            AnnualEnrollment.student_id == student_id,
        )
        if status is not None:
            stmt = stmt.where(AnnualEnrollment.status == status.value)
        return await self.db.scalar(stmt.order_by(AnnualEnrollment.created_at.desc()).limit(1))

    async def _enrolled_disciplines(
        self,
        enrollment_id: str,
        tenant_id: str,
        discipline_id: str | None,
    ) -> list[str]:
        stmt = (
            select(Discipline.name)
            .join(DisciplineEnrollment, DisciplineEnrollment.discipline_id == Discipline.id)
            .where(
                DisciplineEnrollment.tenant_id == tenant_id,
                DisciplineEnrollment.annual_enrollment_id == enrollment_id,
                DisciplineEnrollment.status != DisciplineEnrollmentStatus.DROPPED.value,
            )
            .order_by(Discipline.name)
        )
        if discipline_id is not None:
            stmt = stmt.where(Discipline.id == discipline_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _concluded(
        self,
        student_id: str,
        tenant_id: str,
        course_id: str | None,
        class_id: str | None,
    ) -> ConclusionRecord | None:
        stmt = select(ConclusionRecord).where(
            ConclusionRecord.tenant_id == tenant_id,
            ConclusionRecord.student_id == student_id,
            ConclusionRecord.status == ConclusionStatus.CONCLUDED.value,
        )
        if course_id:
            stmt = stmt.where(ConclusionRecord.course_id == course_id)
        elif class_id:
            stmt = stmt.where(ConclusionRecord.class_id == class_id)
        return await self.db.scalar(stmt.order_by(ConclusionRecord.concluded_at.desc()).limit(1))


def _apply_history(payload: DocumentPayload, rows: list[HistoryRow]) -> None:
    """Attach history rows and their totals to the payload."""
    payload.history = rows
    payload.total_hours = sum(row.workload_hours for row in rows if row.is_passing)
    grades = [row.final_grade for row in rows if row.final_grade is not None]
    payload.mean_grade = round(sum(grades) / len(grades), 2) if grades else None


