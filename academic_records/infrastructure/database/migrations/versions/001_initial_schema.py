# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial academic records schema.

Revision ID: 001_records_initial
Revises: None
Create Date: 2025-11-03
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_records_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _tenant() -> sa.Column:
    return sa.Column("tenant_id", sa.String(36), nullable=False, index=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create academic records tables."""
    # =========================================================================
    # INSTITUTION AND ACADEMIC STRUCTURE
    # =========================================================================

    op.create_table(
        "tenants",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("academic_type", sa.String(20), nullable=True),
        sa.Column("tax_id", sa.String(50), nullable=True),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("logo_url", sa.Text, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "hold_policies",
        sa.Column(
            "tenant_id",
            sa.String(36),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "block_enrollment_on_debt", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "block_documents_on_debt", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "block_certificates_on_debt", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("enrollment_block_message", sa.Text, nullable=True),
        sa.Column("documents_block_message", sa.Text, nullable=True),
        sa.Column("certificates_block_message", sa.Text, nullable=True),
    )

    op.create_table(
        "students",
        _id(),
        _tenant(),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("student_number", sa.String(50), nullable=True),
        sa.Column("public_number", sa.String(50), nullable=True),
        sa.Column("identity_document", sa.String(50), nullable=True),
        sa.Column("birth_date", sa.Date, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "academic_years",
        _id(),
        _tenant(),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="OPEN"),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "courses",
        _id(),
        _tenant(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=True),
        sa.Column("total_hours", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "school_classes",
        _id(),
        _tenant(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50), nullable=True),
        sa.Column("total_hours", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "disciplines",
        _id(),
        _tenant(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column(
            "course_id",
            sa.String(36),
            sa.ForeignKey("courses.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("workload_hours", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_mandatory", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "annual_enrollments",
        _id(),
        _tenant(),
        sa.Column(
            "student_id",
            sa.String(36),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "academic_year_id",
            sa.String(36),
            sa.ForeignKey("academic_years.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "course_id",
            sa.String(36),
            sa.ForeignKey("courses.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "class_id",
            sa.String(36),
            sa.ForeignKey("school_classes.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("year_label", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        *_timestamps(),
    )
    op.create_index(
        "ix_annual_enrollments_student_status",
        "annual_enrollments",
        ["tenant_id", "student_id", "status"],
    )

    op.create_table(
        "discipline_enrollments",
        _id(),
        _tenant(),
        sa.Column(
            "student_id",
            sa.String(36),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "discipline_id",
            sa.String(36),
            sa.ForeignKey("disciplines.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "annual_enrollment_id",
            sa.String(36),
            sa.ForeignKey("annual_enrollments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="ENROLLED"),
    )

    op.create_table(
        "history_entries",
        _id(),
        _tenant(),
        sa.Column(
            "student_id",
            sa.String(36),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "academic_year_id",
            sa.String(36),
            sa.ForeignKey("academic_years.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "discipline_id",
            sa.String(36),
            sa.ForeignKey("disciplines.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("course_id", sa.String(36), nullable=True),
        sa.Column("class_id", sa.String(36), nullable=True),
        sa.Column("workload_hours", sa.Integer, nullable=False, server_default="0"),
        sa.Column("attendance_percent", sa.Numeric(5, 2), nullable=True),
        sa.Column("final_grade", sa.Numeric(5, 2), nullable=True),
        sa.Column("outcome", sa.String(30), nullable=False),
        sa.Column("generated_by", sa.String(36), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_history_entries_student", "history_entries", ["tenant_id", "student_id"])

    op.create_table(
        "tuition_installments",
        _id(),
        _tenant(),
        sa.Column(
            "student_id",
            sa.String(36),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("due_date", sa.Date, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("fine", sa.Numeric(12, 2), nullable=True),
        sa.Column("interest", sa.Numeric(12, 2), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
    )

    # =========================================================================
    # CONCLUSION AND EQUIVALENCY RECORDS
    # =========================================================================

    op.create_table(
        "conclusion_records",
        _id(),
        _tenant(),
        sa.Column(
            "student_id",
            sa.String(36),
            sa.ForeignKey("students.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "course_id",
            sa.String(36),
            sa.ForeignKey("courses.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column(
            "class_id",
            sa.String(36),
            sa.ForeignKey("school_classes.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("conclusion_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="VALIDATED"),
        sa.Column("completed_disciplines", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_hours", sa.Integer, nullable=False, server_default="0"),
        sa.Column("mean_attendance", sa.Numeric(5, 2), nullable=True),
        sa.Column("mean_grade", sa.Numeric(5, 2), nullable=True),
        sa.Column("started_on", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_on", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("registered_by", sa.String(36), nullable=False),
        sa.Column("validated_by", sa.String(36), nullable=True),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("concluded_by", sa.String(36), nullable=True),
        sa.Column("concluded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("official_act_number", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_conclusion_records_student", "conclusion_records", ["tenant_id", "student_id"]
    )

    op.create_table(
        "graduation_records",
        _id(),
        _tenant(),
        sa.Column(
            "conclusion_id",
            sa.String(36),
            sa.ForeignKey("conclusion_records.id", ondelete="RESTRICT"),
            nullable=False,
            unique=True,
        ),
        sa.Column("graduation_number", sa.String(100), nullable=False),
        sa.Column("graduated_on", sa.DateTime(timezone=True), nullable=False),
        sa.Column("degree_title", sa.String(255), nullable=True),
        sa.Column("ceremony_notes", sa.Text, nullable=True),
        sa.Column("registered_by", sa.String(36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("tenant_id", "graduation_number", name="uq_graduation_number"),
    )

    op.create_table(
        "certificate_records",
        _id(),
        _tenant(),
        sa.Column(
            "conclusion_id",
            sa.String(36),
            sa.ForeignKey("conclusion_records.id", ondelete="RESTRICT"),
            nullable=False,
            unique=True,
        ),
        sa.Column("certificate_number", sa.String(100), nullable=False),
        sa.Column("issued_on", sa.DateTime(timezone=True), nullable=False),
        sa.Column("book_reference", sa.String(100), nullable=True),
        sa.Column("page_reference", sa.String(50), nullable=True),
        sa.Column("registered_by", sa.String(36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("tenant_id", "certificate_number", name="uq_certificate_number"),
    )

    op.create_table(
        "equivalency_records",
        _id(),
        _tenant(),
        sa.Column(
            "student_id",
            sa.String(36),
            sa.ForeignKey("students.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "origin_discipline_id",
            sa.String(36),
            sa.ForeignKey("disciplines.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("origin_discipline_name", sa.String(255), nullable=True),
        sa.Column("origin_institution", sa.String(255), nullable=True),
        sa.Column("origin_hours", sa.Integer, nullable=False),
        sa.Column(
            "destination_discipline_id",
            sa.String(36),
            sa.ForeignKey("disciplines.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("destination_hours", sa.Integer, nullable=False),
        sa.Column("origin_grade", sa.Numeric(5, 2), nullable=True),
        sa.Column("criterion", sa.String(30), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("deferred", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("deferred_by", sa.String(36), nullable=True),
        sa.Column("deferred_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requested_by", sa.String(36), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "uq_equivalency_deferred_destination",
        "equivalency_records",
        ["tenant_id", "student_id", "destination_discipline_id"],
        unique=True,
        postgresql_where=sa.text("deferred"),
        sqlite_where=sa.text("deferred = 1"),
    )

    # =========================================================================
    # OFFICIAL DOCUMENTS
    # =========================================================================

    op.create_table(
        "document_sequences",
        sa.Column("tenant_id", sa.String(36), primary_key=True),
        sa.Column("series", sa.String(10), primary_key=True),
        sa.Column("last_value", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "issued_documents",
        _id(),
        _tenant(),
        sa.Column("student_id", sa.String(36), nullable=False),
        sa.Column("kind", sa.String(40), nullable=False),
        sa.Column("series", sa.String(10), nullable=False),
        sa.Column("number", sa.String(40), nullable=False),
        sa.Column("verification_code", sa.String(8), nullable=False, unique=True, index=True),
        sa.Column("integrity_hash", sa.String(64), nullable=False),
        sa.Column("payload", JSON_TYPE, nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="ACTIVE"),
        sa.Column("issued_by", sa.String(36), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("voided_by", sa.String(36), nullable=True),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("void_reason", sa.Text, nullable=True),
        sa.UniqueConstraint("tenant_id", "series", "number", name="uq_issued_document_number"),
    )
    op.create_index("ix_issued_documents_student", "issued_documents", ["tenant_id", "student_id"])

    # =========================================================================
    # AUDIT
    # =========================================================================

    op.create_table(
        "audit_logs",
        _id(),
        _tenant(),
        sa.Column("actor_id", sa.String(36), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("details", JSON_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["tenant_id", "entity_type", "entity_id"])


def downgrade() -> None:
    """Drop academic records tables."""
    for table in [
        "audit_logs",
        "issued_documents",
        "document_sequences",
        "equivalency_records",
        "certificate_records",
        "graduation_records",
        "conclusion_records",
        "tuition_installments",
        "history_entries",
        "discipline_enrollments",
        "annual_enrollments",
        "disciplines",
        "school_classes",
        "courses",
        "academic_years",
        "students",
        "hold_policies",
        "tenants",
    ]:
        op.drop_table(table)
