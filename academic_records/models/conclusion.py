# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conclusion, graduation and certificate schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from academic_records.models.common import ConclusionStatus, ConclusionType


class ConclusionCreateRequest(BaseModel):
    """Request to register a course or class conclusion.

    HIGHER institutions send ``course_id`` only. SECONDARY institutions send
    ``class_id`` and may add ``course_id``.
    """

    model_config = ConfigDict(extra="forbid")

    student_id: str
    course_id: str | None = None
    class_id: str | None = None
    conclusion_type: ConclusionType = ConclusionType.CONCLUDED
    started_on: datetime | None = None
    completed_on: datetime | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ConclusionResponse(BaseModel):
    """Conclusion record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    student_id: str
    course_id: str | None
    class_id: str | None
    conclusion_type: ConclusionType
    status: ConclusionStatus
    completed_disciplines: int
    total_hours: int
    mean_attendance: float | None
    mean_grade: float | None
    started_on: datetime | None
    completed_on: datetime | None
    notes: str | None
    registered_by: str
    validated_by: str | None
    validated_at: datetime | None
    concluded_by: str | None
    concluded_at: datetime | None
    official_act_number: str | None
    created_at: datetime


class GraduationCreateRequest(BaseModel):
    """Degree registration for a concluded higher-education course."""

    model_config = ConfigDict(extra="forbid")

    graduation_number: str = Field(min_length=1, max_length=100)
    graduated_on: datetime
    degree_title: str | None = Field(default=None, max_length=255)
    ceremony_notes: str | None = None


class GraduationResponse(BaseModel):
    """Graduation record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    conclusion_id: str
    graduation_number: str
    graduated_on: datetime
    degree_title: str | None
    ceremony_notes: str | None
    registered_by: str


class CertificateCreateRequest(BaseModel):
    """Certificate registration for a concluded secondary class."""

    model_config = ConfigDict(extra="forbid")

    certificate_number: str = Field(min_length=1, max_length=100)
    issued_on: datetime
    book_reference: str | None = Field(default=None, max_length=100)
    page_reference: str | None = Field(default=None, max_length=50)


class CertificateResponse(BaseModel):
    """Certificate record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    conclusion_id: str
    certificate_number: str
    issued_on: datetime
    book_reference: str | None
    page_reference: str | None
    registered_by: str
