# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the academic records schema."""

from academic_records.infrastructure.database.models.audit import AuditLog
from academic_records.infrastructure.database.models.base import (
    Base,
    IdMixin,
    JSONType,
    TenantMixin,
    TimestampMixin,
    new_id,
)
from academic_records.infrastructure.database.models.documents import (
    DocumentSequence,
    IssuedDocument,
)
from academic_records.infrastructure.database.models.institution import (
    AcademicYear,
    AnnualEnrollment,
    Course,
    Discipline,
    DisciplineEnrollment,
    HistoryEntry,
    HoldPolicy,
    SchoolClass,
    Student,
    Tenant,
    TuitionInstallment,
)
from academic_records.infrastructure.database.models.records import (
    CertificateRecord,
    ConclusionRecord,
    EquivalencyRecord,
    GraduationRecord,
)

__all__ = [
    "AcademicYear",
    "AnnualEnrollment",
    "AuditLog",
    "Base",
    "CertificateRecord",
    "ConclusionRecord",
    "Course",
    "Discipline",
    "DisciplineEnrollment",
    "DocumentSequence",
    "EquivalencyRecord",
    "GraduationRecord",
    "HistoryEntry",
    "HoldPolicy",
    "IdMixin",
    "IssuedDocument",
    "JSONType",
    "SchoolClass",
    "Student",
    "Tenant",
    "TenantMixin",
    "TimestampMixin",
    "TuitionInstallment",
    "new_id",
]
