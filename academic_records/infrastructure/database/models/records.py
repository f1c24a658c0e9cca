# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conclusion, graduation, certificate and equivalency records.

Conclusion records are official facts: once written they are never updated
except for the single VALIDATED to CONCLUDED transition, and never deleted.
Equivalency records freeze once deferred.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from academic_records.infrastructure.database.models.base import (
    Base,
    IdMixin,
    TenantMixin,
    TimestampMixin,
)
from academic_records.models.common import ConclusionStatus, ConclusionType
from academic_records.utils.datetime import utc_now


class ConclusionRecord(IdMixin, TenantMixin, TimestampMixin, Base):
    """Consolidated completion of a course (HIGHER) or class (SECONDARY)."""

    __tablename__ = "conclusion_records"
    __table_args__ = (
        Index("ix_conclusion_records_student", "tenant_id", "student_id"),
    )

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False
    )
    course_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="RESTRICT"), nullable=True
    )
    class_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("school_classes.id", ondelete="RESTRICT"), nullable=True
    )
    conclusion_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ConclusionType.CONCLUDED.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ConclusionStatus.VALIDATED.value
    )

    # Metrics computed once from the historical record
    completed_disciplines: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mean_attendance: Mapped[float | None] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=True
    )
    mean_grade: Mapped[float | None] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)

    started_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    registered_by: Mapped[str] = mapped_column(String(36), nullable=False)
    validated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    concluded_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    concluded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    official_act_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @property
    def is_concluded(self) -> bool:
        """Check if the record reached its terminal state."""
        return self.status == ConclusionStatus.CONCLUDED.value


class GraduationRecord(IdMixin, TenantMixin, Base):
    """Degree record of a concluded higher-education course."""

    __tablename__ = "graduation_records"
    __table_args__ = (
        UniqueConstraint("tenant_id", "graduation_number", name="uq_graduation_number"),
    )

    conclusion_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conclusion_records.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    graduation_number: Mapped[str] = mapped_column(String(100), nullable=False)
    graduated_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    degree_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ceremony_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    registered_by: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )


class CertificateRecord(IdMixin, TenantMixin, Base):
    """Completion certificate record of a concluded secondary class."""

    __tablename__ = "certificate_records"
    __table_args__ = (
        UniqueConstraint("tenant_id", "certificate_number", name="uq_certificate_number"),
    )

    conclusion_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("conclusion_records.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    certificate_number: Mapped[str] = mapped_column(String(100), nullable=False)
    issued_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    book_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    page_reference: Mapped[str | None] = mapped_column(String(50), nullable=True)
    registered_by: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )


class EquivalencyRecord(IdMixin, TenantMixin, TimestampMixin, Base):
    """Credit-transfer adjudication. Terminal and immutable once deferred."""

    __tablename__ = "equivalency_records"
    __table_args__ = (
        Index(
            "uq_equivalency_deferred_destination",
            "tenant_id",
            "student_id",
            "destination_discipline_id",
            unique=True,
            postgresql_where=text("deferred"),
            sqlite_where=text("deferred = 1"),
        ),
    )

    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False
    )
    origin_discipline_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("disciplines.id", ondelete="SET NULL"), nullable=True
    )
    origin_discipline_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    origin_institution: Mapped[str | None] = mapped_column(String(255), nullable=True)
    origin_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    destination_discipline_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("disciplines.id", ondelete="RESTRICT"), nullable=False
    )
    destination_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    origin_grade: Mapped[float | None] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=True
    )
    criterion: Mapped[str] = mapped_column(String(30), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    deferred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deferred_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    deferred_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    requested_by: Mapped[str] = mapped_column(String(36), nullable=False)
