# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic request/response models and shared enumerations."""

from academic_records.models.common import (
    SERIES_BY_KIND,
    AcademicYearStatus,
    ConclusionStatus,
    ConclusionType,
    DisciplineEnrollmentStatus,
    DocumentKind,
    DocumentSeries,
    DocumentStatus,
    EnrollmentStatus,
    EquivalencyCriterion,
    HistoryOutcome,
    HoldCategory,
    InstallmentStatus,
)
from academic_records.models.conclusion import (
    CertificateCreateRequest,
    CertificateResponse,
    ConclusionCreateRequest,
    ConclusionResponse,
    GraduationCreateRequest,
    GraduationResponse,
)
from academic_records.models.document import (
    AttendanceDeclarationRequest,
    CertificateRequest,
    ConclusionInfo,
    DocumentPayload,
    DocumentRequest,
    EnrollmentDeclarationRequest,
    EnrollmentInfo,
    InstitutionInfo,
    IntegrityReport,
    IssuedDocumentResponse,
    IssuedDocumentResult,
    StudentInfo,
    TranscriptRequest,
    VerificationResult,
)
from academic_records.models.eligibility import (
    EligibilityResult,
    HoldResult,
    RequirementItem,
    RequirementsReport,
)
from academic_records.models.equivalency import (
    EquivalencyCreateRequest,
    EquivalencyResponse,
    EquivalencyUpdateRequest,
)
from academic_records.models.history import HistoryRow

__all__ = [
    # Enumerations
    "AcademicYearStatus",
    "ConclusionStatus",
    "ConclusionType",
    "DisciplineEnrollmentStatus",
    "DocumentKind",
    "DocumentSeries",
    "DocumentStatus",
    "EnrollmentStatus",
    "EquivalencyCriterion",
    "HistoryOutcome",
    "HoldCategory",
    "InstallmentStatus",
    "SERIES_BY_KIND",
    # Conclusion
    "ConclusionCreateRequest",
    "ConclusionResponse",
    "GraduationCreateRequest",
    "GraduationResponse",
    "CertificateCreateRequest",
    "CertificateResponse",
    # Equivalency
    "EquivalencyCreateRequest",
    "EquivalencyUpdateRequest",
    "EquivalencyResponse",
    # Documents
    "EnrollmentDeclarationRequest",
    "AttendanceDeclarationRequest",
    "TranscriptRequest",
    "CertificateRequest",
    "DocumentRequest",
    "DocumentPayload",
    "InstitutionInfo",
    "StudentInfo",
    "EnrollmentInfo",
    "ConclusionInfo",
    "IssuedDocumentResult",
    "IssuedDocumentResponse",
    "VerificationResult",
    "IntegrityReport",
    # Eligibility and history
    "HoldResult",
    "RequirementItem",
    "RequirementsReport",
    "EligibilityResult",
    "HistoryRow",
]
