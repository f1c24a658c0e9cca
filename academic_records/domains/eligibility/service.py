# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Eligibility pipeline for official document issuance.

Before a document is numbered and issued, four independent checks must agree,
evaluated in order and stopping at the first failure:

1. student exists in the tenant
2. no financial hold for the category (certificates or documents)
3. no academic hold
4. the action's own requirement: an active enrollment for declarations, a
   concluded or concludable course/class for transcripts and certificates

Nothing is written by the pipeline. The first failing reason reaches the
caller verbatim so staff can act on it.
"""

import logging
from functools import partial

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.context import AcademicType, TenantContext
from academic_records.core.errors import (
    EligibilityError,
    NotFoundError,
    RecordsError,
    StoreError,
)
from academic_records.core.pipeline import Check, CheckPredicate, first_failure
from academic_records.domains.conclusion.service import ConclusionWorkflow
from academic_records.domains.holds.service import (
    AcademicHold,
    AcademicHoldError,
    AcademicHoldService,
    FinancialHold,
    FinancialHoldService,
)
from academic_records.infrastructure.database.models import AnnualEnrollment, Student
from academic_records.models.common import DocumentKind, EnrollmentStatus, HoldCategory
from academic_records.models.eligibility import EligibilityResult

logger = logging.getLogger(__name__)

DECLARATION_KINDS = (DocumentKind.ENROLLMENT_DECLARATION, DocumentKind.ATTENDANCE_DECLARATION)


class EligibilityValidator:
    """Runs the eligibility pipeline for a document action.

    Attributes:
        db: Async database session.
        financial_hold: Financial hold collaborator.
        academic_hold: Academic hold collaborator.
        conclusions: Conclusion workflow whose requirement check is reused.
    """

    def __init__(
        self,
        db: AsyncSession,
        financial_hold: FinancialHold | None = None,
        academic_hold: AcademicHold | None = None,
        conclusions: ConclusionWorkflow | None = None,
    ) -> None:
        self.db = db
        self.financial_hold = financial_hold or FinancialHoldService(db)
        self.academic_hold = academic_hold or AcademicHoldService(db)
        self.conclusions = conclusions or ConclusionWorkflow(db)

    async def validate(
        self,
        action: DocumentKind,
        student_id: str,
        context: TenantContext,
        *,
        academic_year_id: str | None = None,
        discipline_id: str | None = None,
        course_id: str | None = None,
        class_id: str | None = None,
    ) -> None:
        """Raise unless every check passes.

        Args:
            action: Document kind being issued.
            student_id: Student identifier.
            context: Tenant and actor.
            academic_year_id: Academic year the action refers to.
            discipline_id: Discipline the action refers to.
            course_id: Course of a certificate or transcript.
            class_id: Class of a certificate or transcript.

        Raises:
            ValidationError: If the institution academic type is unset.
            NotFoundError: If the student is not in the tenant.
            EligibilityError: With the first failing reason.
            StoreError: If the store fails while checking.
        """
        failure = await first_failure(
            self.build_checks(
                action,
                student_id,
                context,
                academic_year_id=academic_year_id,
                discipline_id=discipline_id,
                course_id=course_id,
                class_id=class_id,
            )
        )
        if failure is not None:
            logger.warning(
                "Blocked %s: student=%s, tenant=%s, check=%s, reason=%s",
                action.value,
                student_id,
                context.tenant_id,
                failure.check.name,
                failure.reason,
            )
            raise failure.to_error()

    async def evaluate(
        self,
        action: DocumentKind,
        student_id: str,
        context: TenantContext,
        *,
        academic_year_id: str | None = None,
        discipline_id: str | None = None,
        course_id: str | None = None,
        class_id: str | None = None,
    ) -> EligibilityResult:
        """Run the pipeline and report the outcome instead of raising."""
        failure = await first_failure(
            self.build_checks(
                action,
                student_id,
                context,
                academic_year_id=academic_year_id,
                discipline_id=discipline_id,
                course_id=course_id,
                class_id=class_id,
            )
        )
        if failure is None:
            return EligibilityResult(allowed=True)
        return EligibilityResult(allowed=False, reason=failure.reason, check=failure.check.name)

    def build_checks(
        self,
        action: DocumentKind,
        student_id: str,
        context: TenantContext,
        *,
        academic_year_id: str | None = None,
        discipline_id: str | None = None,
        course_id: str | None = None,
        class_id: str | None = None,
    ) -> list[Check]:
        """Build the ordered checks for an action.

        Raises:
            ValidationError: If the institution academic type is unset.
        """
        academic_type = context.require_academic_type()
        tenant_id = context.tenant_id
        category = (
            HoldCategory.CERTIFICATES
            if action == DocumentKind.CERTIFICATE
            else HoldCategory.DOCUMENTS
        )

        if action in DECLARATION_KINDS:
            requirement = partial(self._enrollment_reason, student_id, tenant_id, academic_year_id)
        else:
            requirement = partial(
                self._conclusion_reason, student_id, context, course_id, class_id
            )

        return [
            Check(
                "student",
                _translated("student", partial(self._student_reason, student_id, tenant_id)),
                error=NotFoundError,
            ),
            Check(
                "financial_hold",
                _translated(
                    "financial_hold",
                    partial(self._financial_reason, student_id, tenant_id, category),
                ),
            ),
            Check(
                "academic_hold",
                _translated(
                    "academic_hold",
                    partial(
                        self._academic_reason,
                        student_id,
                        tenant_id,
                        academic_type,
                        discipline_id,
                        academic_year_id,
                    ),
                ),
            ),
            Check("requirement", _translated("requirement", requirement)),
        ]

    # =========================================================================
    # Checks
    # =========================================================================

    async def _student_reason(self, student_id: str, tenant_id: str) -> str | None:
        found = await self.db.scalar(
            select(Student.id).where(Student.id == student_id, Student.tenant_id == tenant_id)
        )
        if found is None:
            return "Student not found or does not belong to this institution."
        return None

    async def _financial_reason(
        self,
        student_id: str,
        tenant_id: str,
        category: HoldCategory,
    ) -> str | None:
        result = await self.financial_hold.check(student_id, tenant_id, category)
        if result.blocked:
            return result.reason or "Operation blocked by a financial hold."
        return None

    async def _academic_reason(
        self,
        student_id: str,
        tenant_id: str,
        academic_type: AcademicType,
        discipline_id: str | None,
        academic_year_id: str | None,
    ) -> str | None:
        try:
            await self.academic_hold.check(
                student_id,
                tenant_id,
                academic_type,
                discipline_id=discipline_id,
                academic_year_id=academic_year_id,
            )
        except AcademicHoldError as e:
            return e.message
        return None

    async def _enrollment_reason(
        self,
        student_id: str,
        tenant_id: str,
        academic_year_id: str | None,
    ) -> str | None:
        stmt = select(AnnualEnrollment.id).where(
            AnnualEnrollment.tenant_id == tenant_id,
            AnnualEnrollment.student_id == student_id,
            AnnualEnrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        if academic_year_id is not None:
            stmt = stmt.where(AnnualEnrollment.academic_year_id == academic_year_id)

        if await self.db.scalar(stmt.limit(1)) is None:
            return "Student has no active enrollment. Declarations require an active enrollment."
        return None

    async def _conclusion_reason(
        self,
        student_id: str,
        context: TenantContext,
        course_id: str | None,
        class_id: str | None,
    ) -> str | None:
        if await self.conclusions.is_concluded(
            student_id, context, course_id=course_id, class_id=class_id
        ):
            return None

        if course_id is None and class_id is None:
            enrollment = await self._latest_enrollment(student_id, context.tenant_id)
            if enrollment is None:
                return "Student has no enrollment to evaluate conclusion requirements."
            course_id = enrollment.course_id
            class_id = enrollment.class_id
            if context.is_higher:
                class_id = None

        report = await self.conclusions.can_conclude(
            student_id, context, course_id=course_id, class_id=class_id
        )
        if not report.valid:
            return report.first_error or "Conclusion requirements are not met."
        return None

    async def _latest_enrollment(self, student_id: str, tenant_id: str) -> AnnualEnrollment | None:
        stmt = (
            select(AnnualEnrollment)
            .where(
                AnnualEnrollment.tenant_id == tenant_id,
                AnnualEnrollment.student_id == student_id,
            )
            .order_by(AnnualEnrollment.created_at.desc())
            .limit(1)
        )
        return await self.db.scalar(stmt)


def _translated(name: str, predicate: CheckPredicate) -> CheckPredicate:
    """Re-raise collaborator failures as exactly one taxonomy error."""

    async def evaluate() -> str | None:
        try:
            return await predicate()
        except RecordsError:
            raise
        except SQLAlchemyError as e:
            raise StoreError(f"Eligibility check '{name}' failed", e) from e
        except Exception as e:
            logger.error("Eligibility check %s failed: %s", name, str(e))
            raise EligibilityError(str(e), check=name, original_error=e) from e

    return evaluate
