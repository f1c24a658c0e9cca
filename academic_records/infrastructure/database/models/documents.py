# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Issued official documents and their numbering counters."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from academic_records.infrastructure.database.models.base import (
    Base,
    IdMixin,
    JSONType,
    TenantMixin,
)
from academic_records.models.common import DocumentStatus
from academic_records.utils.datetime import utc_now


class DocumentSequence(Base):
    """Monotonic counter per (tenant, series).

    Incremented in place inside the issuing transaction, so concurrent
    issuers serialize on the row lock and a rollback releases the value.
    """

    __tablename__ = "document_sequences"

    tenant_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    series: Mapped[str] = mapped_column(String(10), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class IssuedDocument(IdMixin, TenantMixin, Base):
    """Numbered, hashed official document with its composed payload."""

    __tablename__ = "issued_documents"
    __table_args__ = (
        UniqueConstraint("tenant_id", "series", "number", name="uq_issued_document_number"),
        Index("ix_issued_documents_student", "tenant_id", "student_id"),
    )

    student_id: Mapped[str] = mapped_column(String(36), nullable=False)
    kind: Mapped[str] = mapped_column(String(40), nullable=False)
    series: Mapped[str] = mapped_column(String(10), nullable=False)
    number: Mapped[str] = mapped_column(String(40), nullable=False)
    verification_code: Mapped[str] = mapped_column(
        String(8), nullable=False, unique=True, index=True
    )
    integrity_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=DocumentStatus.ACTIVE.value
    )
    issued_by: Mapped[str] = mapped_column(String(36), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    voided_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_void(self) -> bool:
        """Check if the document has been voided."""
        return self.status == DocumentStatus.VOID.value
