# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for DocumentIssuanceService."""

from datetime import datetime, timezone

import pymupdf
import pytest
from sqlalchemy import func, select

from academic_records.core.context import AcademicType
from academic_records.core.errors import (
    ConflictError,
    EligibilityError,
    ForbiddenError,
    NotFoundError,
)
from academic_records.domains.audit import AuditService
from academic_records.domains.conclusion import ConclusionWorkflow
from academic_records.domains.documents import (
    DocumentIssuanceService,
    DocumentRenderer,
    DocumentRenderError,
    compute_integrity_hash,
)
from academic_records.domains.documents import service as issuance
from academic_records.domains.numbering import NumberGenerator
from academic_records.infrastructure.database.models import IssuedDocument, new_id
from academic_records.models.common import DocumentKind, DocumentSeries, DocumentStatus
from academic_records.models.conclusion import ConclusionCreateRequest, GraduationCreateRequest
from academic_records.models.document import (
    AttendanceDeclarationRequest,
    CertificateRequest,
    EnrollmentDeclarationRequest,
    TranscriptRequest,
)

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


def pdf_text(content: bytes) -> str:
    with pymupdf.open(stream=content, filetype="pdf") as doc:
        return "\n".join(page.get_text() for page in doc)


async def stored_documents(db, tenant_id: str) -> int:
    return await db.scalar(
        select(func.count())
        .select_from(IssuedDocument)
        .where(IssuedDocument.tenant_id == tenant_id)
    )


async def stored_payload(db, document_id: str) -> dict:
    return await db.scalar(select(IssuedDocument.payload).where(IssuedDocument.id == document_id))


class TestIssue:
    """Tests for issuing documents."""

    async def test_declarations_are_numbered_in_sequence(self, db, higher, fixed_clock) -> None:
        """Test that three declarations get consecutive numbers."""
        service = DocumentIssuanceService(db, clock=fixed_clock)

        issued = [
            await service.issue(EnrollmentDeclarationRequest(), higher.student_id, higher.context)
            for _ in range(3)
        ]

        assert [doc.number for doc in issued] == [
            "DECL-2026-000001",
            "DECL-2026-000002",
            "DECL-2026-000003",
        ]
        assert len({doc.verification_code for doc in issued}) == 3
        assert await stored_documents(db, higher.tenant_id) == 3

    async def test_declaration_content(self, db, higher, fixed_clock) -> None:
        """Test the stored payload and rendered PDF of an enrollment declaration."""
        service = DocumentIssuanceService(db, clock=fixed_clock)

        issued = await service.issue(
            EnrollmentDeclarationRequest(purpose="Scholarship application"),
            higher.student_id,
            higher.context,
        )

        assert issued.content.startswith(b"%PDF")
        assert issued.content_type == "application/pdf"
        text = pdf_text(issued.content)
        assert "ENROLLMENT DECLARATION" in text
        assert issued.number in text

        payload = await stored_payload(db, issued.id)
        assert payload["kind"] == "ENROLLMENT_DECLARATION"
        assert payload["issued_at"] == "2026-03-16T10:30:00+00:00"
        assert payload["purpose"] == "Scholarship application"
        assert payload["institution"]["name"] == "Northfield College"
        assert payload["enrollment"]["course_name"] == "Computer Science"
        assert payload["enrollment"]["academic_year"] == 2025
        assert payload["enrollment"]["disciplines"] == ["Algorithms", "Calculus"]

    async def test_attendance_declaration_for_one_discipline(
        self, db, higher, fixed_clock
    ) -> None:
        """Test that an attendance declaration can name a single discipline."""
        service = DocumentIssuanceService(db, clock=fixed_clock)

        issued = await service.issue(
            AttendanceDeclarationRequest(discipline_id=higher.discipline_ids["Calculus"]),
            higher.student_id,
            higher.context,
        )

        payload = await stored_payload(db, issued.id)
        assert issued.number == "DECL-2026-000001"
        assert payload["enrollment"]["disciplines"] == ["Calculus"]

    async def test_attendance_for_unregistered_discipline(self, db, higher, fixed_clock) -> None:
        """Test that the academic hold blocks an unregistered discipline."""
        service = DocumentIssuanceService(db, clock=fixed_clock)

        with pytest.raises(EligibilityError) as exc_info:
            await service.issue(
                AttendanceDeclarationRequest(discipline_id=new_id()),
                higher.student_id,
                higher.context,
            )

        assert exc_info.value.check == "academic_hold"
        assert exc_info.value.message == "Student is not registered in this discipline."

    async def test_transcript_from_history(self, db, higher, fixed_clock) -> None:
        """Test that a transcript lists the closed-year history."""
        service = DocumentIssuanceService(db, clock=fixed_clock)

        issued = await service.issue(TranscriptRequest(), higher.student_id, higher.context)

        assert issued.number == "HIST-2026-000001"
        payload = await stored_payload(db, issued.id)
        assert [row["discipline_name"] for row in payload["history"]] == [
            "Algorithms",
            "Calculus",
        ]
        assert payload["total_hours"] == 120
        assert payload["mean_grade"] == 15.0
        assert "Algorithms" in pdf_text(issued.content)

    async def test_certificate_with_conclusion_block(self, db, higher, fixed_clock) -> None:
        """Test that a certificate carries the conclusion and its graduation number."""
        conclusions = ConclusionWorkflow(db, clock=fixed_clock)
        conclusion = await conclusions.create(
            ConclusionCreateRequest(student_id=higher.student_id, course_id=higher.course_id),
            higher.context,
        )
        await conclusions.conclude(conclusion.id, higher.context, official_act_number="ACT-12")
        await conclusions.register_graduation(
            conclusion.id,
            GraduationCreateRequest(
                graduation_number="GR-0001",
                graduated_on=datetime(2026, 3, 1, tzinfo=timezone.utc),
            ),
            higher.context,
        )

        issued = await DocumentIssuanceService(db, clock=fixed_clock).issue(
            CertificateRequest(course_id=higher.course_id), higher.student_id, higher.context
        )

        assert issued.number == "CERT-2026-000001"
        payload = await stored_payload(db, issued.id)
        assert payload["conclusion"]["conclusion_id"] == conclusion.id
        assert payload["conclusion"]["program_name"] == "Computer Science"
        assert payload["conclusion"]["registration_number"] == "GR-0001"
        assert payload["conclusion"]["official_act_number"] == "ACT-12"
        assert payload["total_hours"] == 120
        text = pdf_text(issued.content)
        assert "CERTIFICATE OF COMPLETION" in text
        assert "Registration no.: GR-0001" in text

    async def test_integrity_hash_is_recomputable(self, db, higher, fixed_clock) -> None:
        """Test that the stored hash matches tenant, number and code."""
        service = DocumentIssuanceService(db, clock=fixed_clock)
        issued = await service.issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )

        document = await service.get(issued.id, higher.context)
        report = await service.check_integrity(issued.id, higher.context)

        assert document.integrity_hash == compute_integrity_hash(
            higher.tenant_id, issued.number, issued.verification_code
        )
        assert report.intact
        assert document.status == DocumentStatus.ACTIVE
        assert document.issued_by == higher.context.actor_id

    async def test_issue_is_audited(self, db, higher, fixed_clock) -> None:
        """Test that issuance writes one audit entry."""
        issued = await DocumentIssuanceService(db, clock=fixed_clock).issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )

        entries = await AuditService(db).list_for_entity(
            higher.tenant_id, "issued_document", issued.id
        )

        assert [entry.action for entry in entries] == ["document.issued"]

    async def test_unknown_student(self, db, higher, fixed_clock) -> None:
        """Test that a student outside the tenant is not found."""
        with pytest.raises(NotFoundError):
            await DocumentIssuanceService(db, clock=fixed_clock).issue(
                EnrollmentDeclarationRequest(), new_id(), higher.context
            )

        assert await stored_documents(db, higher.tenant_id) == 0


class TestVerificationCodes:
    """Tests for verification code uniqueness across issued documents."""

    async def test_taken_code_is_redrawn(self, db, higher, fixed_clock, monkeypatch) -> None:
        """Test that a code already in use is replaced and the number is kept."""
        codes = iter(["DEADBEEF", "DEADBEEF", "CAFEF00D"])
        monkeypatch.setattr(issuance, "generate_verification_code", lambda: next(codes))
        service = DocumentIssuanceService(db, clock=fixed_clock)

        first = await service.issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )
        second = await service.issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )

        assert first.verification_code == "DEADBEEF"
        assert second.verification_code == "CAFEF00D"
        assert second.number == "DECL-2026-000002"
        assert (await service.verify("CAFEF00D")).number == "DECL-2026-000002"
        assert await stored_documents(db, higher.tenant_id) == 2

    async def test_exhausted_codes_release_number(
        self, db, higher, fixed_clock, monkeypatch
    ) -> None:
        """Test that running out of unused codes leaves no row and no number."""
        monkeypatch.setattr(issuance, "generate_verification_code", lambda: "DEADBEEF")
        service = DocumentIssuanceService(db, clock=fixed_clock)
        await service.issue(EnrollmentDeclarationRequest(), higher.student_id, higher.context)

        with pytest.raises(ConflictError) as exc_info:
            await service.issue(EnrollmentDeclarationRequest(), higher.student_id, higher.context)

        assert "verification code" in exc_info.value.message
        assert await stored_documents(db, higher.tenant_id) == 1
        numbers = NumberGenerator(db, clock=fixed_clock)
        assert await numbers.current(higher.tenant_id, DocumentSeries.DECL) == 1


class TestIssueFailures:
    """Tests for issuance that must leave nothing behind."""

    async def test_unmet_requirements_block_certificate(
        self, db, make_scenario, fixed_clock
    ) -> None:
        """Test that an incomplete student gets no certificate and no number."""
        scenario = await make_scenario(AcademicType.SECONDARY, complete=False)

        with pytest.raises(EligibilityError) as exc_info:
            await DocumentIssuanceService(db, clock=fixed_clock).issue(
                CertificateRequest(), scenario.student_id, scenario.context
            )

        assert exc_info.value.check == "requirement"
        assert "Missing 1 mandatory discipline(s): Physics" in exc_info.value.message
        assert await stored_documents(db, scenario.tenant_id) == 0
        numbers = NumberGenerator(db, clock=fixed_clock)
        assert await numbers.current(scenario.tenant_id, DocumentSeries.CERT) == 0

    async def test_render_failure_releases_number(self, db, higher, fixed_clock) -> None:
        """Test that a rendering failure rolls back the allocated number."""
        broken = DocumentIssuanceService(
            db, renderer=DocumentRenderer(texts={"labels": {}}), clock=fixed_clock
        )

        with pytest.raises(DocumentRenderError):
            await broken.issue(EnrollmentDeclarationRequest(), higher.student_id, higher.context)

        assert await stored_documents(db, higher.tenant_id) == 0
        issued = await DocumentIssuanceService(db, clock=fixed_clock).issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )
        assert issued.number == "DECL-2026-000001"

    async def test_financial_hold_custom_message(
        self, db, higher, add_overdue_debt, fixed_clock
    ) -> None:
        """Test that the institution's hold message reaches the caller verbatim."""
        await add_overdue_debt(higher, message="Please visit the bursar's office.")

        with pytest.raises(EligibilityError) as exc_info:
            await DocumentIssuanceService(db, clock=fixed_clock).issue(
                TranscriptRequest(), higher.student_id, higher.context
            )

        assert exc_info.value.check == "financial_hold"
        assert exc_info.value.message == "Please visit the bursar's office."
        assert await stored_documents(db, higher.tenant_id) == 0

    async def test_financial_hold_standard_message(
        self, db, higher, add_overdue_debt, fixed_clock
    ) -> None:
        """Test the standard message when the institution sets none."""
        await add_overdue_debt(higher)

        with pytest.raises(EligibilityError) as exc_info:
            await DocumentIssuanceService(db, clock=fixed_clock).issue(
                EnrollmentDeclarationRequest(), higher.student_id, higher.context
            )

        assert exc_info.value.message.startswith(
            "Document issuance blocked due to outstanding tuition."
        )


class TestVerifyAndVoid:
    """Tests for public verification and voiding."""

    async def test_verify_active_document(self, db, higher, fixed_clock) -> None:
        """Test that an active document verifies with a masked name."""
        service = DocumentIssuanceService(db, clock=fixed_clock)
        issued = await service.issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )

        result = await service.verify(f"  {issued.verification_code.lower()} ")

        assert result.valid is True
        assert result.number == issued.number
        assert result.kind == DocumentKind.ENROLLMENT_DECLARATION
        assert result.institution_name == "Northfield College"
        assert result.student_name == "Maria Clara ***"

    async def test_verify_without_code(self, db) -> None:
        """Test that an empty code is refused without a lookup."""
        result = await DocumentIssuanceService(db).verify("   ")

        assert result.valid is False
        assert result.message == "Verification code not provided."

    async def test_verify_unknown_code(self, db) -> None:
        """Test that an unknown code is reported invalid."""
        result = await DocumentIssuanceService(db).verify("00000000")

        assert result.valid is False
        assert result.message == "Document is invalid or has been voided."
        assert result.student_name is None

    async def test_void_is_terminal(self, db, higher, fixed_clock) -> None:
        """Test that a voided document fails verification and cannot be re-rendered."""
        service = DocumentIssuanceService(db, clock=fixed_clock)
        issued = await service.issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )

        voided = await service.void(issued.id, "Issued with a typo", higher.context)

        assert voided.status == DocumentStatus.VOID
        assert voided.void_reason == "Issued with a typo"
        assert voided.voided_by == higher.context.actor_id
        assert (await service.verify(issued.verification_code)).valid is False

        with pytest.raises(ForbiddenError) as exc_info:
            await service.render_existing(issued.id, higher.context)
        assert str(exc_info.value) == "Voided documents cannot be downloaded."

        with pytest.raises(ForbiddenError) as exc_info:
            await service.void(issued.id, None, higher.context)
        assert str(exc_info.value) == "Document has already been voided."

        entries = await AuditService(db).list_for_entity(
            higher.tenant_id, "issued_document", issued.id
        )
        assert [entry.action for entry in entries] == ["document.issued", "document.voided"]

    async def test_void_without_reason_uses_default(self, db, higher, fixed_clock) -> None:
        """Test the default void reason."""
        service = DocumentIssuanceService(db, clock=fixed_clock)
        issued = await service.issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )

        voided = await service.void(issued.id, "  ", higher.context)

        assert voided.void_reason == "Voided on request"

    async def test_render_existing_from_payload(self, db, higher, fixed_clock) -> None:
        """Test that an active document re-renders from its stored payload."""
        service = DocumentIssuanceService(db, clock=fixed_clock)
        issued = await service.issue(TranscriptRequest(), higher.student_id, higher.context)

        content = await service.render_existing(issued.id, higher.context)

        text = pdf_text(content)
        assert issued.number in text
        assert "Calculus" in text


class TestListAndIsolation:
    """Tests for listing and tenant isolation."""

    async def test_list_documents_by_kind(self, db, higher, fixed_clock) -> None:
        """Test filtering the document list by kind."""
        service = DocumentIssuanceService(db, clock=fixed_clock)
        declaration = await service.issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )
        transcript = await service.issue(TranscriptRequest(), higher.student_id, higher.context)

        everything = await service.list_documents(higher.context, student_id=higher.student_id)
        transcripts = await service.list_documents(higher.context, kind=DocumentKind.TRANSCRIPT)

        assert {doc.id for doc in everything} == {declaration.id, transcript.id}
        assert [doc.id for doc in transcripts] == [transcript.id]

    async def test_other_tenant_cannot_reach_document(
        self, db, higher, make_scenario, fixed_clock
    ) -> None:
        """Test that documents are invisible to another tenant."""
        other = await make_scenario(AcademicType.HIGHER, tenant_name="Southfield College")
        service = DocumentIssuanceService(db, clock=fixed_clock)
        issued = await service.issue(
            EnrollmentDeclarationRequest(), higher.student_id, higher.context
        )

        with pytest.raises(NotFoundError):
            await service.get(issued.id, other.context)
        with pytest.raises(NotFoundError):
            await service.void(issued.id, "Not ours", other.context)
        assert await service.list_documents(other.context) == []

        other_issued = await service.issue(
            EnrollmentDeclarationRequest(), other.student_id, other.context
        )
        assert other_issued.number == "DECL-2026-000001"
