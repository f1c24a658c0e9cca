# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Financial and academic holds.

Both holds are collaborators of the eligibility pipeline. The financial hold
answers with a ``HoldResult``; the academic hold raises ``AcademicHoldError``
with the blocking reason, the way the enrollment office reports it.
"""

import logging
from datetime import date
from typing import Callable, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.context import AcademicType
from academic_records.core.errors import RecordsError
from academic_records.infrastructure.database.models import (
    AnnualEnrollment,
    DisciplineEnrollment,
    HoldPolicy,
    Student,
    TuitionInstallment,
)
from academic_records.models.common import (
    DisciplineEnrollmentStatus,
    EnrollmentStatus,
    HoldCategory,
    InstallmentStatus,
)
from academic_records.models.eligibility import HoldResult
from academic_records.utils.datetime import utc_today

logger = logging.getLogger(__name__)

_SETTLED_INSTALLMENTS = (InstallmentStatus.PAID.value, InstallmentStatus.CANCELLED.value)
_ACTIVE_DISCIPLINE_STATUSES = (
    DisciplineEnrollmentStatus.ENROLLED.value,
    DisciplineEnrollmentStatus.ATTENDING.value,
    DisciplineEnrollmentStatus.COMPLETED.value,
)


class AcademicHoldError(RecordsError):
    """Raised when the student's academic situation blocks the action."""

    pass


class FinancialHold(Protocol):
    """Financial hold collaborator."""

    async def check(
        self,
        student_id: str,
        tenant_id: str,
        category: HoldCategory,
    ) -> HoldResult: ...


class AcademicHold(Protocol):
    """Academic hold collaborator. Raises ``AcademicHoldError`` when blocked."""

    async def check(
        self,
        student_id: str,
        tenant_id: str,
        academic_type: AcademicType,
        discipline_id: str | None = None,
        academic_year_id: str | None = None,
    ) -> None: ...


class FinancialHoldService:
    """Blocks operations for students with overdue tuition.

    Blocking is opt-in per tenant through ``HoldPolicy``; without a policy
    row nothing is blocked.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.db = db
        self._today = today

    async def check(
        self,
        student_id: str,
        tenant_id: str,
        category: HoldCategory,
    ) -> HoldResult:
        """Check whether ``category`` is blocked for the student.

        Args:
            student_id: Student identifier.
            tenant_id: Tenant identifier.
            category: Operation category being attempted.

        Returns:
            The hold result, with the tenant's message or a standard one.
        """
        policy = await self.db.get(HoldPolicy, tenant_id)
        if policy is None:
            return HoldResult(blocked=False)

        enabled, custom_message = {
            HoldCategory.ENROLLMENT: (
                policy.block_enrollment_on_debt,
                policy.enrollment_block_message,
            ),
            HoldCategory.DOCUMENTS: (
                policy.block_documents_on_debt,
                policy.documents_block_message,
            ),
            HoldCategory.CERTIFICATES: (
                policy.block_certificates_on_debt,
                policy.certificates_block_message,
            ),
        }[category]
        if not enabled:
            return HoldResult(blocked=False)

        overdue = await self._overdue_installments(student_id, tenant_id)
        if not overdue:
            return HoldResult(blocked=False)

        amount = sum(
            (item.amount or 0.0) + (item.fine or 0.0) + (item.interest or 0.0)
            for item in overdue
        )
        reason = custom_message or self._standard_message(category, len(overdue), amount)

        logger.info(
            "Financial hold: student=%s, tenant=%s, category=%s, overdue=%d",
            student_id,
            tenant_id,
            category.value,
            len(overdue),
        )
        return HoldResult(
            blocked=True,
            reason=reason,
            overdue_installments=len(overdue),
            overdue_amount=round(amount, 2),
        )

    async def _overdue_installments(
        self,
        student_id: str,
        tenant_id: str,
    ) -> list[TuitionInstallment]:
        stmt = select(TuitionInstallment).where(
            TuitionInstallment.tenant_id == tenant_id,
            TuitionInstallment.student_id == student_id,
            TuitionInstallment.status.not_in(_SETTLED_INSTALLMENTS),
            TuitionInstallment.due_date < self._today(),
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def _standard_message(category: HoldCategory, count: int, amount: float) -> str:
        if category == HoldCategory.ENROLLMENT:
            return (
                "Enrollment blocked due to outstanding tuition. "
                f"There are {count} overdue installment(s) totalling {amount:.2f}."
            )
        if category == HoldCategory.CERTIFICATES:
            return (
                "Certificate issuance blocked. Both academic and financial standing "
                "must be regular; the financial standing is irregular."
            )
        return (
            "Document issuance blocked due to outstanding tuition. "
            "Settle the overdue installments to request documents."
        )


class AcademicHoldService:
    """Checks that the student is in good academic standing for an action.

    The student must exist in the tenant and hold a current annual
    enrollment (ACTIVE, or CONCLUDED once the course was concluded) pointing
    at a course (HIGHER) or class (SECONDARY). With ``discipline_id`` the
    student must also be registered in that discipline.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def check(
        self,
        student_id: str,
        tenant_id: str,
        academic_type: AcademicType,
        discipline_id: str | None = None,
        academic_year_id: str | None = None,
    ) -> None:
        """Raise when the student's academic situation blocks the action.

        Raises:
            AcademicHoldError: With the blocking reason.
        """
        student = await self.db.scalar(
            select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id)
        )
        if student is None:
            raise AcademicHoldError("Student not found or does not belong to this institution.")

        enrollment = await self._current_enrollment(student_id, tenant_id, academic_year_id)
        if enrollment is None:
            raise AcademicHoldError(
                "Student has no active annual enrollment. "
                "An active enrollment is required for this operation."
            )

        if academic_type == AcademicType.HIGHER and not enrollment.course_id:
            raise AcademicHoldError(
                "Annual enrollment has no course. Higher education enrollments require a course."
            )
        if academic_type == AcademicType.SECONDARY and not enrollment.class_id:
            raise AcademicHoldError(
                "Annual enrollment has no class. Secondary education enrollments require a class."
            )

        if discipline_id is not None:
            registered = await self.db.scalar(
                select(DisciplineEnrollment.id).where(
                    DisciplineEnrollment.tenant_id == tenant_id,
                    DisciplineEnrollment.student_id == student_id,
                    DisciplineEnrollment.annual_enrollment_id == enrollment.id,
                    DisciplineEnrollment.discipline_id == discipline_id,
                    DisciplineEnrollment.status.in_(_ACTIVE_DISCIPLINE_STATUSES),
                )
            )
            if registered is None:
                raise AcademicHoldError("Student is not registered in this discipline.")

    async def _current_enrollment(
        self,
        student_id: str,
        tenant_id: str,
        academic_year_id: str | None,
    ) -> AnnualEnrollment | None:
        """Return the latest ACTIVE enrollment, else the latest CONCLUDED one."""
        for status in (EnrollmentStatus.ACTIVE, EnrollmentStatus.CONCLUDED):
            stmt = (
                select(AnnualEnrollment)
                .where(
                    AnnualEnrollment.tenant_id == tenant_id,
                    AnnualEnrollment.student_id == student_id,
                    AnnualEnrollment.status == status.value,
                )
                .order_by(AnnualEnrollment.created_at.desc())
                .limit(1)
            )
            if academic_year_id is not None:
                stmt = stmt.where(AnnualEnrollment.academic_year_id == academic_year_id)
            enrollment = await self.db.scalar(stmt)
            if enrollment is not None:
                return enrollment
        return None
