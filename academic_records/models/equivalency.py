# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Equivalency schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from academic_records.models.common import EquivalencyCriterion


class EquivalencyCreateRequest(BaseModel):
    """Request to adjudicate an equivalency.

    The origin subject is either an internal discipline (``origin_discipline_id``)
    or a free-text external name (``origin_discipline_name``).
    """

    model_config = ConfigDict(extra="forbid")

    student_id: str
    origin_discipline_id: str | None = None
    origin_discipline_name: str | None = Field(default=None, max_length=255)
    origin_institution: str | None = Field(default=None, max_length=255)
    origin_hours: int = Field(gt=0)
    destination_discipline_id: str
    destination_hours: int = Field(ge=0)
    origin_grade: float | None = Field(default=None, ge=0)
    criterion: EquivalencyCriterion = EquivalencyCriterion.EQUIVALENCE
    notes: str | None = None


class EquivalencyUpdateRequest(BaseModel):
    """Changes to a pending equivalency.

    Student and destination subject are identity fields and cannot change.
    """

    model_config = ConfigDict(extra="forbid")

    origin_discipline_name: str | None = Field(default=None, max_length=255)
    origin_institution: str | None = Field(default=None, max_length=255)
    origin_hours: int | None = Field(default=None, gt=0)
    destination_hours: int | None = Field(default=None, ge=0)
    origin_grade: float | None = Field(default=None, ge=0)
    criterion: EquivalencyCriterion | None = None
    notes: str | None = None


class EquivalencyResponse(BaseModel):
    """Equivalency record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    student_id: str
    origin_discipline_id: str | None
    origin_discipline_name: str | None
    origin_institution: str | None
    origin_hours: int
    destination_discipline_id: str
    destination_hours: int
    origin_grade: float | None
    criterion: EquivalencyCriterion
    notes: str | None
    deferred: bool
    deferred_by: str | None
    deferred_at: datetime | None
    requested_by: str
    created_at: datetime
