# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Credit equivalency workflow.

This module provides the EquivalencyWorkflow class for:
- Requesting an equivalency (pending, ``deferred=false``)
- Editing or withdrawing it while pending
- Deferring it (terminal approval) or rejecting it

A deferred equivalency is immutable. It never rewrites graded history; the
historical record lists it as an additional EQUIVALENT row.
"""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.config.settings import RecordsSettings, get_settings
from academic_records.core.context import AcademicType, TenantContext
from academic_records.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from academic_records.core.guards import ImmutabilityGuard
from academic_records.domains.audit.service import AuditService
from academic_records.domains.immutability import RECORD_GUARD
from academic_records.infrastructure.database.connection import unit_of_work
from academic_records.infrastructure.database.models import (
    Discipline,
    EquivalencyRecord,
    Student,
)
from academic_records.models.equivalency import (
    EquivalencyCreateRequest,
    EquivalencyResponse,
    EquivalencyUpdateRequest,
)
from academic_records.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ENTITY = "equivalency"
DEFERRED_NOTE_TAG = "[DEFERRED]"
_FROZEN_MESSAGE = "Deferred equivalency cannot be modified or deleted."


def validate_hours(
    origin_hours: int,
    destination_hours: int,
    academic_type: AcademicType,
    min_ratio: float = 0.8,
) -> None:
    """Validate destination against origin workload.

    Destination hours never exceed origin hours. Higher education also
    requires at least ``min_ratio`` of the origin hours.

    Raises:
        ValidationError: With ``field="destination_hours"``.
    """
    if destination_hours > origin_hours:
        raise ValidationError(
            f"Destination workload ({destination_hours}h) cannot exceed "
            f"origin workload ({origin_hours}h).",
            field="destination_hours",
        )

    if academic_type == AcademicType.HIGHER:
        minimum = origin_hours * min_ratio
        if destination_hours < minimum - 1e-9:
            raise ValidationError(
                f"Destination workload must be ≥{min_ratio:.0%} of the origin workload "
                f"({minimum:g}h required, {destination_hours}h given).",
                field="destination_hours",
            )


def append_deferral_note(existing: str | None, note: str | None) -> str:
    """Append the deferral note after any existing observation text."""
    entry = f"{DEFERRED_NOTE_TAG}: {note}" if note else DEFERRED_NOTE_TAG
    if existing:
        return f"{existing}\n\n{entry}"
    return entry


class EquivalencyWorkflow:
    """State machine for credit equivalencies.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: RecordsSettings | None = None,
        guard: ImmutabilityGuard = RECORD_GUARD,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings().records
        self.audit = AuditService(db)
        self._guard = guard
        self._clock = clock

    async def create(
        self,
        request: EquivalencyCreateRequest,
        context: TenantContext,
    ) -> EquivalencyResponse:
        """Request an equivalency.

        Args:
            request: Equivalency data.
            context: Tenant and actor.

        Returns:
            The pending equivalency.

        Raises:
            ValidationError: If the origin is missing or the hours are invalid.
            NotFoundError: If the student or a discipline is not in the tenant.
            ConflictError: If a deferred equivalency already covers the
                destination discipline for this student.
        """
        academic_type = context.require_academic_type()
        if not request.origin_discipline_id and not request.origin_discipline_name:
            raise ValidationError(
                "Origin discipline is required (internal discipline or external name).",
                field="origin_discipline_name",
            )
        validate_hours(
            request.origin_hours,
            request.destination_hours,
            academic_type,
            self.settings.higher_min_hours_ratio,
        )

        async with unit_of_work(self.db, "Failed to create equivalency"):
            await self._get_student(request.student_id, context.tenant_id)
            await self._get_discipline(request.destination_discipline_id, context.tenant_id)

            origin_name = request.origin_discipline_name
            if request.origin_discipline_id:
                origin = await self._get_discipline(request.origin_discipline_id, context.tenant_id)
                origin_name = origin_name or origin.name

            if await self._deferred_for(
                request.student_id, request.destination_discipline_id, context.tenant_id
            ):
                raise ConflictError(
                    "A deferred equivalency already exists for this student and discipline."
                )

            record = EquivalencyRecord(
                tenant_id=context.tenant_id,
                student_id=request.student_id,
                origin_discipline_id=request.origin_discipline_id,
                origin_discipline_name=origin_name,
                origin_institution=request.origin_institution,
                origin_hours=request.origin_hours,
                destination_discipline_id=request.destination_discipline_id,
                destination_hours=request.destination_hours,
                origin_grade=request.origin_grade,
                criterion=request.criterion.value,
                notes=request.notes,
                deferred=False,
                requested_by=context.actor_id,
            )
            self.db.add(record)
            await self.db.flush()

            await self.audit.record(
                context,
                action="equivalency.created",
                entity_type=ENTITY,
                entity_id=record.id,
                details={
                    "student_id": record.student_id,
                    "destination_discipline_id": record.destination_discipline_id,
                    "origin_hours": record.origin_hours,
                    "destination_hours": record.destination_hours,
                },
            )

        logger.info(
            "Created equivalency: id=%s, student=%s, destination=%s, by=%s",
            record.id,
            record.student_id,
            record.destination_discipline_id,
            context.actor_id,
        )
        return EquivalencyResponse.model_validate(record)

    async def update(
        self,
        equivalency_id: str,
        request: EquivalencyUpdateRequest,
        context: TenantContext,
    ) -> EquivalencyResponse:
        """Edit a pending equivalency.

        Raises:
            NotFoundError: If the equivalency is not in the tenant.
            ForbiddenError: If it has been deferred.
            ValidationError: If the new hours are invalid.
        """
        academic_type = context.require_academic_type()
        changes = request.model_dump(exclude_unset=True)

        async with unit_of_work(self.db, "Failed to update equivalency"):
            record = await self._get_record(equivalency_id, context.tenant_id)
            self._guard.ensure_mutable(record, "update")

            for required in ("origin_hours", "destination_hours", "criterion"):
                if required in changes and changes[required] is None:
                    del changes[required]
            if "origin_hours" in changes or "destination_hours" in changes:
                validate_hours(
                    changes.get("origin_hours", record.origin_hours),
                    changes.get("destination_hours", record.destination_hours),
                    academic_type,
                    self.settings.higher_min_hours_ratio,
                )
            if "criterion" in changes:
                changes["criterion"] = changes["criterion"].value

            if changes:
                result = await self.db.execute(
                    update(EquivalencyRecord)
                    .where(
                        EquivalencyRecord.id == record.id,
                        EquivalencyRecord.tenant_id == context.tenant_id,
                        EquivalencyRecord.deferred.is_(False),
                    )
                    .values(**changes, updated_at=self._clock())
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise ForbiddenError(_FROZEN_MESSAGE)

                await self.audit.record(
                    context,
                    action="equivalency.updated",
                    entity_type=ENTITY,
                    entity_id=record.id,
                    details={"fields": sorted(changes)},
                )

        await self.db.refresh(record)
        logger.info("Updated equivalency %s by %s", record.id, context.actor_id)
        return EquivalencyResponse.model_validate(record)

    async def defer(
        self,
        equivalency_id: str,
        context: TenantContext,
        note: str | None = None,
    ) -> EquivalencyResponse:
        """Defer (approve) a pending equivalency. Terminal.

        Args:
            equivalency_id: Equivalency identifier.
            context: Tenant and actor.
            note: Observation appended after the existing notes.

        Returns:
            The deferred equivalency.

        Raises:
            NotFoundError: If the equivalency is not in the tenant.
            ForbiddenError: If it is already deferred.
            ConflictError: If another deferred equivalency covers the
                destination discipline for this student.
        """
        context.require_academic_type()

        async with unit_of_work(self.db, "Failed to defer equivalency"):
            record = await self._get_record(equivalency_id, context.tenant_id)
            self._guard.ensure_mutable(record, "defer")

            if await self._deferred_for(
                record.student_id,
                record.destination_discipline_id,
                context.tenant_id,
                exclude_id=record.id,
            ):
                raise ConflictError(
                    "A deferred equivalency already exists for this student and discipline."
                )

            now = self._clock()
            try:
                result = await self.db.execute(
                    update(EquivalencyRecord)
                    .where(
                        EquivalencyRecord.id == record.id,
                        EquivalencyRecord.tenant_id == context.tenant_id,
                        EquivalencyRecord.deferred.is_(False),
                    )
                    .values(
                        deferred=True,
                        deferred_by=context.actor_id,
                        deferred_at=now,
                        notes=append_deferral_note(record.notes, note),
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
            except IntegrityError as e:
                raise ConflictError(
                    "A deferred equivalency already exists for this student and discipline.",
                    e,
                ) from e
            if result.rowcount != 1:
                raise ForbiddenError("Equivalency has already been deferred.")

            await self.audit.record(
                context,
                action="equivalency.deferred",
                entity_type=ENTITY,
                entity_id=record.id,
                description=note,
            )

        await self.db.refresh(record)
        logger.info(
            "Deferred equivalency: id=%s, student=%s, by=%s",
            record.id,
            record.student_id,
            context.actor_id,
        )
        return EquivalencyResponse.model_validate(record)

    async def reject(
        self,
        equivalency_id: str,
        reason: str,
        context: TenantContext,
    ) -> None:
        """Reject a pending equivalency, removing it.

        Raises:
            ValidationError: If no reason is given.
            NotFoundError: If the equivalency is not in the tenant.
            ForbiddenError: If it has been deferred.
        """
        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required.", field="reason")
        await self._remove(equivalency_id, context, "equivalency.rejected", reason.strip())

    async def delete(self, equivalency_id: str, context: TenantContext) -> None:
        """Withdraw a pending equivalency.

        Raises:
            NotFoundError: If the equivalency is not in the tenant.
            ForbiddenError: If it has been deferred.
        """
        await self._remove(equivalency_id, context, "equivalency.withdrawn", None)

    async def get(self, equivalency_id: str, context: TenantContext) -> EquivalencyResponse:
        """Get an equivalency by ID.

        Raises:
            NotFoundError: If the equivalency is not in the tenant.
        """
        record = await self._get_record(equivalency_id, context.tenant_id)
        return EquivalencyResponse.model_validate(record)

    async def list_equivalencies(
        self,
        context: TenantContext,
        student_id: str | None = None,
        deferred: bool | None = None,
        destination_discipline_id: str | None = None,
    ) -> list[EquivalencyResponse]:
        """List the tenant's equivalencies, newest first."""
        stmt = select(EquivalencyRecord).where(EquivalencyRecord.tenant_id == context.tenant_id)
        if student_id:
            stmt = stmt.where(EquivalencyRecord.student_id == student_id)
        if deferred is not None:
            stmt = stmt.where(EquivalencyRecord.deferred.is_(deferred))
        if destination_discipline_id:
            stmt = stmt.where(
                EquivalencyRecord.destination_discipline_id == destination_discipline_id
            )

        result = await self.db.execute(stmt.order_by(EquivalencyRecord.created_at.desc()))
        return [EquivalencyResponse.model_validate(r) for r in result.scalars().all()]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _remove(
        self,
        equivalency_id: str,
        context: TenantContext,
        action: str,
        reason: str | None,
    ) -> None:
        async with unit_of_work(self.db, "Failed to remove equivalency"):
            record = await self._get_record(equivalency_id, context.tenant_id)
            self._guard.ensure_mutable(record, "delete")

            snapshot = {
                "student_id": record.student_id,
                "destination_discipline_id": record.destination_discipline_id,
                "origin_discipline_name": record.origin_discipline_name,
                "origin_hours": record.origin_hours,
                "destination_hours": record.destination_hours,
            }
            result = await self.db.execute(
                delete(EquivalencyRecord)
                .where(
                    EquivalencyRecord.id == record.id,
                    EquivalencyRecord.tenant_id == context.tenant_id,
                    EquivalencyRecord.deferred.is_(False),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ForbiddenError(_FROZEN_MESSAGE)

            await self.audit.record(
                context,
                action=action,
                entity_type=ENTITY,
                entity_id=equivalency_id,
                description=reason,
                details=snapshot,
            )

        self.db.expunge(record)
        logger.info("Removed equivalency %s (%s) by %s", equivalency_id, action, context.actor_id)

    async def _get_record(self, equivalency_id: str, tenant_id: str) -> EquivalencyRecord:
        record = await self.db.scalar(
            select(EquivalencyRecord).where(
                EquivalencyRecord.id == equivalency_id,
                EquivalencyRecord.tenant_id == tenant_id,
            )
        )
        if record is None:
            raise NotFoundError("Equivalency not found.")
        return record

    async def _get_student(self, student_id: str, tenant_id: str) -> Student:
        student = await self.db.scalar(
            select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id)
        )
        if student is None:
            raise NotFoundError("Student not found.")
        return student

    async def _get_discipline(self, discipline_id: str, tenant_id: str) -> Discipline:
        discipline = await self.db.scalar(
            select(Discipline).where(
                Discipline.id == discipline_id,
                Discipline.tenant_id == tenant_id,
            )
        )
        if discipline is None:
            raise NotFoundError("Discipline not found.")
        return discipline

    async def _deferred_for(
        self,
        student_id: str,
        destination_discipline_id: str,
        tenant_id: str,
        exclude_id: str | None = None,
    ) -> bool:
        stmt = select(EquivalencyRecord.id).where(
            EquivalencyRecord.tenant_id == tenant_id,
            EquivalencyRecord.student_id == student_id,
            EquivalencyRecord.destination_discipline_id == destination_discipline_id,
            EquivalencyRecord.deferred.is_(True),
        )
        if exclude_id is not None:
            stmt = stmt.where(EquivalencyRecord.id != exclude_id)
        return await self.db.scalar(stmt.limit(1)) is not None
