# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Official document schemas.

Issue requests are a tagged union on ``kind``; each variant carries only the
fields meaningful for that document.

Example:
    from pydantic import TypeAdapter

    request = TypeAdapter(DocumentRequest).validate_python({"kind": "TRANSCRIPT"})
    assert isinstance(request, TranscriptRequest)
"""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from academic_records.models.common import DocumentKind, DocumentStatus
from academic_records.models.history import HistoryRow


class EnrollmentDeclarationRequest(BaseModel):
    """Declaration that the student is currently enrolled."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal[DocumentKind.ENROLLMENT_DECLARATION] = DocumentKind.ENROLLMENT_DECLARATION
    purpose: str | None = Field(default=None, max_length=500)


class AttendanceDeclarationRequest(BaseModel):
    """Declaration that the student attends classes."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal[DocumentKind.ATTENDANCE_DECLARATION] = DocumentKind.ATTENDANCE_DECLARATION
    purpose: str | None = Field(default=None, max_length=500)
    discipline_id: str | None = None


class TranscriptRequest(BaseModel):
    """Transcript of the historical record."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal[DocumentKind.TRANSCRIPT] = DocumentKind.TRANSCRIPT
    academic_year_id: str | None = None


class CertificateRequest(BaseModel):
    """Completion certificate of a concluded course or class."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal[DocumentKind.CERTIFICATE] = DocumentKind.CERTIFICATE
    course_id: str | None = None
    class_id: str | None = None


DocumentRequest = Annotated[
    Union[
        EnrollmentDeclarationRequest,
        AttendanceDeclarationRequest,
        TranscriptRequest,
        CertificateRequest,
    ],
    Field(discriminator="kind"),
]


class InstitutionInfo(BaseModel):
    """Issuing institution block."""

    name: str
    tax_id: str | None = None
    address: str | None = None
    phone: str | None = None
    contact_email: str | None = None


class StudentInfo(BaseModel):
    """Student identity block."""

    id: str
    full_name: str
    student_number: str | None = None
    public_number: str | None = None
    identity_document: str | None = None
    birth_date: str | None = None


class EnrollmentInfo(BaseModel):
    """Current enrollment block of declarations."""

    enrollment_id: str
    status: str
    year_label: str | None = None
    academic_year: int | None = None
    course_name: str | None = None
    class_name: str | None = None
    disciplines: list[str] = Field(default_factory=list)


class ConclusionInfo(BaseModel):
    """Conclusion block of certificates."""

    conclusion_id: str
    program_name: str
    concluded_at: str | None = None
    completed_disciplines: int = 0
    total_hours: int = 0
    mean_attendance: float | None = None
    mean_grade: float | None = None
    official_act_number: str | None = None
    registration_number: str | None = Field(
        default=None,
        description="Graduation or certificate record number, when registered.",
    )


class DocumentPayload(BaseModel):
    """Composed document data, stored verbatim with the issued document.

    Re-rendering from the stored payload reproduces the document even if the
    source records change afterwards.
    """

    kind: DocumentKind
    number: str
    verification_code: str
    issued_at: str
    institution: InstitutionInfo
    student: StudentInfo
    purpose: str | None = None
    enrollment: EnrollmentInfo | None = None
    history: list[HistoryRow] = Field(default_factory=list)
    conclusion: ConclusionInfo | None = None
    total_hours: int = 0
    mean_grade: float | None = None


class IssuedDocumentResult(BaseModel):
    """Rendered artifact plus the identifiers staff hand to the student."""

    id: str
    number: str
    verification_code: str
    content: bytes = Field(repr=False)
    content_type: str = "application/pdf"


class IssuedDocumentResponse(BaseModel):
    """Issued document metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    kind: DocumentKind
    number: str
    verification_code: str
    integrity_hash: str
    status: DocumentStatus
    issued_by: str
    issued_at: datetime
    voided_by: str | None
    voided_at: datetime | None
    void_reason: str | None


class VerificationResult(BaseModel):
    """Public verification answer for a verification code."""

    valid: bool
    message: str
    number: str | None = None
    kind: DocumentKind | None = None
    status: DocumentStatus | None = None
    institution_name: str | None = None
    student_name: str | None = None
    issued_at: datetime | None = None


class IntegrityReport(BaseModel):
    """Result of recomputing a document's integrity hash."""

    document_id: str
    number: str
    stored_hash: str
    computed_hash: str

    @property
    def intact(self) -> bool:
        """Check if the stored hash matches the recomputed one."""
        return self.stored_hash == self.computed_hash
