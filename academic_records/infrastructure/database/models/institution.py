# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Institution, student and academic structure models.

These tables are owned by other parts of the platform. The records core
reads them to validate eligibility and to compose documents; it only writes
``AnnualEnrollment.status`` (conclusion cascade).
"""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from academic_records.infrastructure.database.models.base import (
    Base,
    IdMixin,
    TenantMixin,
    TimestampMixin,
)
from academic_records.models.common import (
    AcademicYearStatus,
    DisciplineEnrollmentStatus,
    EnrollmentStatus,
    InstallmentStatus,
)
from academic_records.utils.datetime import utc_now


class Tenant(IdMixin, TimestampMixin, Base):
    """Institution. ``academic_type`` is SECONDARY, HIGHER or unset."""

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    academic_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class HoldPolicy(Base):
    """Per-tenant financial hold switches. No row means nothing is blocked."""

    __tablename__ = "hold_policies"

    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tenants.id", ondelete="CASCADE"), primary_key=True
    )
    block_enrollment_on_debt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    block_documents_on_debt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    block_certificates_on_debt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enrollment_block_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    documents_block_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    certificates_block_message: Mapped[str | None] = mapped_column(Text, nullable=True)


class Student(IdMixin, TenantMixin, TimestampMixin, Base):
    """Enrolled student."""

    __tablename__ = "students"

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    student_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    public_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    identity_document: Mapped[str | None] = mapped_column(String(50), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AcademicYear(IdMixin, TenantMixin, Base):
    """Academic year. Closing it produces the immutable history snapshot."""

    __tablename__ = "academic_years"

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AcademicYearStatus.OPEN.value
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Course(IdMixin, TenantMixin, Base):
    """Higher-education course (or optional secondary track)."""

    __tablename__ = "courses"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    total_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class SchoolClass(IdMixin, TenantMixin, Base):
    """Secondary-education class (grade)."""

    __tablename__ = "school_classes"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    total_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Discipline(IdMixin, TenantMixin, Base):
    """Subject. ``course_id`` is set for course curricula (higher education)."""

    __tablename__ = "disciplines"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    course_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="SET NULL"), nullable=True
    )
    workload_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AnnualEnrollment(IdMixin, TenantMixin, TimestampMixin, Base):
    """Per-year registration of a student into a course or class."""

    __tablename__ = "annual_enrollments"
    __table_args__ = (
        Index("ix_annual_enrollments_student_status", "tenant_id", "student_id", "status"),
    )

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    academic_year_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("academic_years.id", ondelete="SET NULL"), nullable=True
    )
    course_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="SET NULL"), nullable=True
    )
    class_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("school_classes.id", ondelete="SET NULL"), nullable=True
    )
    year_label: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EnrollmentStatus.ACTIVE.value
    )


class DisciplineEnrollment(IdMixin, TenantMixin, Base):
    """Registration of a student in one discipline under an annual enrollment."""

    __tablename__ = "discipline_enrollments"

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    discipline_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("disciplines.id", ondelete="CASCADE"), nullable=False
    )
    annual_enrollment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("annual_enrollments.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DisciplineEnrollmentStatus.ENROLLED.value
    )


class HistoryEntry(IdMixin, TenantMixin, Base):
    """Immutable per-subject snapshot written when an academic year closes."""

    __tablename__ = "history_entries"
    __table_args__ = (
        Index("ix_history_entries_student", "tenant_id", "student_id"),
    )

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    academic_year_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False
    )
    discipline_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("disciplines.id", ondelete="RESTRICT"), nullable=False
    )
    course_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    class_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    workload_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attendance_percent: Mapped[float | None] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=True
    )
    final_grade: Mapped[float | None] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)
    outcome: Mapped[str] = mapped_column(String(30), nullable=False)
    generated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )


class TuitionInstallment(IdMixin, TenantMixin, Base):
    """Tuition installment. Overdue unpaid installments raise financial holds."""

    __tablename__ = "tuition_installments"

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[float] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=False)
    fine: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    interest: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InstallmentStatus.PENDING.value
    )
