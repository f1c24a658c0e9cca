# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Official document issuance.

This module provides the DocumentIssuanceService class for:
- Issuing numbered, hashed documents (declarations, transcripts, certificates)
- Voiding an issued document
- Public verification by verification code
- Re-rendering and integrity checks of stored documents

Issuance is one unit of work: eligibility, number allocation, composition,
rendering and persistence either all happen or none does. A failed step
leaves no number allocated and no row written.
"""

import hashlib
import logging
import secrets
from datetime import datetime
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.context import TenantContext
from academic_records.core.errors import ConflictError, ForbiddenError, NotFoundError
from academic_records.core.guards import ImmutabilityGuard
from academic_records.domains.audit.service import AuditService
from academic_records.domains.documents.composer import DocumentComposer
from academic_records.domains.documents.renderer import PDF_CONTENT_TYPE, DocumentRenderer
from academic_records.domains.eligibility.service import EligibilityValidator
from academic_records.domains.immutability import RECORD_GUARD
from academic_records.domains.numbering.service import NumberGenerator
from academic_records.infrastructure.database.connection import unit_of_work
from academic_records.infrastructure.database.models import IssuedDocument, Tenant
from academic_records.models.common import SERIES_BY_KIND, DocumentKind, DocumentStatus
from academic_records.models.document import (
    AttendanceDeclarationRequest,
    CertificateRequest,
    DocumentPayload,
    DocumentRequest,
    IntegrityReport,
    IssuedDocumentResponse,
    IssuedDocumentResult,
    TranscriptRequest,
    VerificationResult,
)
from academic_records.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

ENTITY = "issued_document"
DEFAULT_VOID_REASON = "Voided on request"
VERIFICATION_CODE_ATTEMPTS = 8


def generate_verification_code() -> str:
    """Generate an 8-character uppercase hexadecimal verification code."""
    return secrets.token_hex(4).upper()


def compute_integrity_hash(tenant_id: str, number: str, verification_code: str) -> str:
    """Compute the SHA-256 integrity hash of a document, hex-encoded."""
    return hashlib.sha256(f"{tenant_id}-{number}-{verification_code}".encode("utf-8")).hexdigest()


def partial_name(full_name: str) -> str:
    """Mask a student name for public verification.

    Keeps the first two words; longer names end with `` ***``.
    """
    words = full_name.split()
    if not words:
        return "***"
    masked = " ".join(words[:2])
    if len(words) > 2:
        masked += " ***"
    return masked


class DocumentIssuanceService:
    """Service for issuing and managing official documents.

    Attributes:
        db: Async database session.
        validator: Eligibility pipeline run before anything is written.
        numbers: Number generator sharing the issuing transaction.
        composer: Payload composer.
        renderer: PDF renderer.
    """

    def __init__(
        self,
        db: AsyncSession,
        validator: EligibilityValidator | None = None,
        numbers: NumberGenerator | None = None,
        composer: DocumentComposer | None = None,
        renderer: DocumentRenderer | None = None,
        guard: ImmutabilityGuard = RECORD_GUARD,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the issuance service.

        Args:
            db: Async database session.
            validator: Eligibility pipeline.
            numbers: Number generator; defaults to one bound to ``db`` and ``clock``.
            composer: Payload composer.
            renderer: PDF renderer; defaults to the configured one.
            guard: Immutability guard consulted before voiding.
            clock: Source of the current time.
        """
        self.db = db
        self.validator = validator or EligibilityValidator(db)
        self.numbers = numbers or NumberGenerator(db, clock=clock)
        self.composer = composer or DocumentComposer(db)
        self.renderer = renderer or DocumentRenderer.from_settings()
        self.audit = AuditService(db)
        self._guard = guard
        self._clock = clock

    async def issue(
        self,
        request: DocumentRequest,
        student_id: str,
        context: TenantContext,
    ) -> IssuedDocumentResult:
        """Issue an official document.

        Args:
            request: Document request variant.
            student_id: Student identifier.
            context: Tenant and actor.

        Returns:
            The rendered document with its number and verification code.

        Raises:
            ValidationError: If the institution academic type is unset.
            NotFoundError: If the student is not in the tenant.
            EligibilityError: With the first failing eligibility reason.
            DocumentRenderError: If the document cannot be rendered.
            ConflictError: If the number collides on insert, or no unused
                verification code is found.
            StoreError: If the store fails.
        """
        kind = request.kind
        series = SERIES_BY_KIND[kind]

        async with unit_of_work(self.db, "Failed to issue document"):
            await self.validator.validate(
                kind, student_id, context, **_eligibility_scope(request)
            )

            number = await self.numbers.next(context.tenant_id, series)
            verification_code = await self._unused_verification_code()
            issued_at = self._clock()

            payload = await self.composer.compose(
                request,
                student_id,
                context,
                number=number,
                verification_code=verification_code,
                issued_at=issued_at,
            )
            content = self.renderer.render(payload)

            document = IssuedDocument(
                tenant_id=context.tenant_id,
                student_id=student_id,
                kind=kind.value,
                series=series.value,
                number=number,
                verification_code=verification_code,
                integrity_hash=compute_integrity_hash(
                    context.tenant_id, number, verification_code
                ),
                payload=payload.model_dump(mode="json"),
                status=DocumentStatus.ACTIVE.value,
                issued_by=context.actor_id,
                issued_at=issued_at,
            )
            self.db.add(document)
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise ConflictError(f"Document number {number} is already in use.", e) from e

            await self.audit.record(
                context,
                action="document.issued",
                entity_type=ENTITY,
                entity_id=document.id,
                description=f"{kind.value} {number}",
                details={"student_id": student_id, "number": number, "kind": kind.value},
            )

        logger.info(
            "Issued document: number=%s, kind=%s, student=%s, tenant=%s, by=%s",
            number,
            kind.value,
            student_id,
            context.tenant_id,
            context.actor_id,
        )
        return IssuedDocumentResult(
            id=document.id,
            number=number,
            verification_code=verification_code,
            content=content,
            content_type=PDF_CONTENT_TYPE,
        )

    async def void(
        self,
        document_id: str,
        reason: str | None,
        context: TenantContext,
    ) -> IssuedDocumentResponse:
        """Void an issued document. Terminal.

        Args:
            document_id: Document identifier.
            reason: Why the document is voided.
            context: Tenant and actor.

        Returns:
            The voided document.

        Raises:
            NotFoundError: If the document is not in the tenant.
            ForbiddenError: If it is already voided.
        """
        reason = (reason or "").strip() or DEFAULT_VOID_REASON

        async with unit_of_work(self.db, "Failed to void document"):
            document = await self._get_document(document_id, context.tenant_id)
            self._guard.ensure_mutable(document, "void")

            result = await self.db.execute(
                update(IssuedDocument)
                .where(
                    IssuedDocument.id == document.id,
                    IssuedDocument.tenant_id == context.tenant_id,
                    IssuedDocument.status == DocumentStatus.ACTIVE.value,
                )
                .values(
                    status=DocumentStatus.VOID.value,
                    voided_by=context.actor_id,
                    voided_at=self._clock(),
                    void_reason=reason,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ForbiddenError("Document has already been voided.")

            await self.audit.record(
                context,
                action="document.voided",
                entity_type=ENTITY,
                entity_id=document.id,
                description=reason,
                details={"number": document.number},
            )

        await self.db.refresh(document)
        logger.info("Voided document %s by %s: %s", document.number, context.actor_id, reason)
        return IssuedDocumentResponse.model_validate(document)

    async def verify(self, verification_code: str | None) -> VerificationResult:
        """Publicly verify a document by its verification code.

        Only ACTIVE documents verify. The answer reveals the institution,
        a masked student name, the issue date and the kind.
        """
        code = (verification_code or "").strip().upper()
        if not code:
            return VerificationResult(valid=False, message="Verification code not provided.")

        row = (
            await self.db.execute(
                select(IssuedDocument, Tenant.name)
                .join(Tenant, Tenant.id == IssuedDocument.tenant_id)
                .where(
                    IssuedDocument.verification_code == code,
                    IssuedDocument.status == DocumentStatus.ACTIVE.value,
                )
            )
        ).first()
        if row is None:
            logger.info("Verification failed for code %s", code)
            return VerificationResult(
                valid=False, message="Document is invalid or has been voided."
            )

        document, institution_name = row
        student_name = (document.payload.get("student") or {}).get("full_name") or ""
        return VerificationResult(
            valid=True,
            message="Document is valid.",
            number=document.number,
            kind=DocumentKind(document.kind),
            status=DocumentStatus(document.status),
            institution_name=institution_name,
            student_name=partial_name(student_name),
            issued_at=ensure_utc(document.issued_at),
        )

    async def render_existing(self, document_id: str, context: TenantContext) -> bytes:
        """Re-render a stored document from its embedded payload.

        Raises:
            NotFoundError: If the document is not in the tenant.
            ForbiddenError: If the document has been voided.
        """
        document = await self._get_document(document_id, context.tenant_id)
        if document.is_void:
            raise ForbiddenError("Voided documents cannot be downloaded.")
        payload = DocumentPayload.model_validate(document.payload)
        return self.renderer.render(payload)

    async def check_integrity(self, document_id: str, context: TenantContext) -> IntegrityReport:
        """Recompute a document's integrity hash.

        Raises:
            NotFoundError: If the document is not in the tenant.
        """
        document = await self._get_document(document_id, context.tenant_id)
        report = IntegrityReport(
            document_id=document.id,
            number=document.number,
            stored_hash=document.integrity_hash,
            computed_hash=compute_integrity_hash(
                document.tenant_id, document.number, document.verification_code
            ),
        )
        if not report.intact:
            logger.warning("Integrity mismatch for document %s", document.number)
        return report

    async def get(self, document_id: str, context: TenantContext) -> IssuedDocumentResponse:
        """Get an issued document by ID.

        Raises:
            NotFoundError: If the document is not in the tenant.
        """
        document = await self._get_document(document_id, context.tenant_id)
        return IssuedDocumentResponse.model_validate(document)

    async def list_documents(
        self,
        context: TenantContext,
        student_id: str | None = None,
        kind: DocumentKind | None = None,
    ) -> list[IssuedDocumentResponse]:
        """List the tenant's issued documents, newest first."""
        stmt = select(IssuedDocument).where(IssuedDocument.tenant_id == context.tenant_id)
        if student_id:
            stmt = stmt.where(IssuedDocument.student_id == student_id)
        if kind:
            stmt = stmt.where(IssuedDocument.kind == kind.value)

        result = await self.db.execute(
            stmt.order_by(IssuedDocument.issued_at.desc(), IssuedDocument.number.desc())
        )
        return [IssuedDocumentResponse.model_validate(d) for d in result.scalars().all()]

    async def _unused_verification_code(self) -> str:
        """Draw verification codes until one is not held by any document.

        Codes are unique across tenants. A draw that is already taken is
        discarded and the allocated number is kept.

        Raises:
            ConflictError: If every attempt draws a code already in use.
        """
        for attempt in range(1, VERIFICATION_CODE_ATTEMPTS + 1):
            code = generate_verification_code()
            taken = await self.db.scalar(
                select(IssuedDocument.id).where(IssuedDocument.verification_code == code)
            )
            if taken is None:
                return code
            logger.warning("Verification code collision on attempt %d", attempt)

        raise ConflictError("Could not generate an unused verification code.")

    async def _get_document(self, document_id: str, tenant_id: str) -> IssuedDocument:
        document = await self.db.scalar(
            select(IssuedDocument).where(
                IssuedDocument.id == document_id,
                IssuedDocument.tenant_id == tenant_id,
            )
        )
        if document is None:
            raise NotFoundError("Document not found.")
        return document


def _eligibility_scope(request: DocumentRequest) -> dict[str, str | None]:
    """Map a request variant to the eligibility arguments it carries."""
    if isinstance(request, AttendanceDeclarationRequest):
        return {"discipline_id": request.discipline_id}
    if isinstance(request, TranscriptRequest):
        return {"academic_year_id": request.academic_year_id}
    if isinstance(request, CertificateRequest):
        return {"course_id": request.course_id, "class_id": request.class_id}
    return {}
