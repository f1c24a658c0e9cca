# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enumerations shared by the ORM layer and the API models."""

from enum import Enum


class AcademicYearStatus(str, Enum):
    """Academic year lifecycle. History snapshots exist only for CLOSED years."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class EnrollmentStatus(str, Enum):
    """Annual enrollment status. CONCLUDED only via course conclusion."""

    ACTIVE = "ACTIVE"
    CONCLUDED = "CONCLUDED"


class DisciplineEnrollmentStatus(str, Enum):
    """Per-discipline registration status under an annual enrollment."""

    ENROLLED = "ENROLLED"
    ATTENDING = "ATTENDING"
    COMPLETED = "COMPLETED"
    DROPPED = "DROPPED"


class HistoryOutcome(str, Enum):
    """Final outcome of a subject in the historical record."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    FAILED_ATTENDANCE = "FAILED_ATTENDANCE"
    EQUIVALENT = "EQUIVALENT"


class InstallmentStatus(str, Enum):
    """Tuition installment payment status."""

    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class ConclusionStatus(str, Enum):
    """Conclusion record status. CONCLUDED is terminal."""

    VALIDATED = "VALIDATED"
    CONCLUDED = "CONCLUDED"


class ConclusionType(str, Enum):
    """How the student completed the course or class."""

    CONCLUDED = "CONCLUDED"
    GRADUATED = "GRADUATED"
    CERTIFIED = "CERTIFIED"


class EquivalencyCriterion(str, Enum):
    """Basis on which an equivalency is adjudicated."""

    EQUIVALENCE = "EQUIVALENCE"
    PRIOR_LEARNING = "PRIOR_LEARNING"
    TRANSFER = "TRANSFER"


class DocumentKind(str, Enum):
    """Official document kinds."""

    ENROLLMENT_DECLARATION = "ENROLLMENT_DECLARATION"
    ATTENDANCE_DECLARATION = "ATTENDANCE_DECLARATION"
    TRANSCRIPT = "TRANSCRIPT"
    CERTIFICATE = "CERTIFICATE"


class DocumentSeries(str, Enum):
    """Numbering namespace within a tenant. Doubles as the number prefix."""

    DECL = "DECL"
    HIST = "HIST"
    CERT = "CERT"


class DocumentStatus(str, Enum):
    """Issued document status. VOID is terminal."""

    ACTIVE = "ACTIVE"
    VOID = "VOID"


class HoldCategory(str, Enum):
    """Operation categories a financial hold can block."""

    ENROLLMENT = "ENROLLMENT"
    DOCUMENTS = "DOCUMENTS"
    CERTIFICATES = "CERTIFICATES"


SERIES_BY_KIND: dict[DocumentKind, DocumentSeries] = {
    DocumentKind.ENROLLMENT_DECLARATION: DocumentSeries.DECL,
    DocumentKind.ATTENDANCE_DECLARATION: DocumentSeries.DECL,
    DocumentKind.TRANSCRIPT: DocumentSeries.HIST,
    DocumentKind.CERTIFICATE: DocumentSeries.CERT,
}
