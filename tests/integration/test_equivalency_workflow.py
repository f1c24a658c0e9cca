# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for EquivalencyWorkflow."""

import pytest
import pytest_asyncio

from academic_records.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from academic_records.domains.audit import AuditService
from academic_records.domains.equivalency import EquivalencyWorkflow
from academic_records.domains.history import HistoricalRecordService
from academic_records.infrastructure.database.models import Discipline, new_id
from academic_records.models.common import EquivalencyCriterion, HistoryOutcome
from academic_records.models.equivalency import (
    EquivalencyCreateRequest,
    EquivalencyUpdateRequest,
)

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest_asyncio.fixture(scope="function")
async def elective(seeder, higher) -> str:
    """Optional discipline of the higher-education course."""
    discipline = Discipline(
        id=new_id(),
        tenant_id=higher.tenant_id,
        name="Databases",
        course_id=higher.course_id,
        workload_hours=80,
        is_mandatory=False,
    )
    await seeder.add(discipline)
    return discipline.id


def request_for(student_id: str, destination_id: str, **kwargs) -> EquivalencyCreateRequest:
    values = {
        "student_id": student_id,
        "origin_discipline_name": "Database Systems I",
        "origin_institution": "State University",
        "origin_hours": 100,
        "destination_discipline_id": destination_id,
        "destination_hours": 80,
        "origin_grade": 15.0,
    }
    values.update(kwargs)
    return EquivalencyCreateRequest(**values)


class TestCreate:
    """Tests for requesting an equivalency."""

    @pytest.mark.parametrize("destination_hours", [75, 79])
    async def test_higher_below_minimum_ratio(
        self, db, higher, elective, destination_hours: int
    ) -> None:
        """Test that higher education refuses less than 80% of the origin hours."""
        with pytest.raises(ValidationError) as exc_info:
            await EquivalencyWorkflow(db).create(
                request_for(higher.student_id, elective, destination_hours=destination_hours),
                higher.context,
            )

        assert exc_info.value.field == "destination_hours"
        assert "≥80%" in exc_info.value.message

    async def test_higher_at_minimum_ratio(self, db, higher, elective) -> None:
        """Test that exactly 80% is accepted as a pending request."""
        equivalency = await EquivalencyWorkflow(db).create(
            request_for(higher.student_id, elective), higher.context
        )

        assert equivalency.deferred is False
        assert equivalency.destination_hours == 80
        assert equivalency.requested_by == higher.context.actor_id
        assert equivalency.criterion == EquivalencyCriterion.EQUIVALENCE

    async def test_secondary_has_no_minimum_ratio(self, db, secondary) -> None:
        """Test that secondary education only caps the destination hours."""
        equivalency = await EquivalencyWorkflow(db).create(
            request_for(
                secondary.student_id,
                secondary.discipline_ids["Physics"],
                origin_hours=100,
                destination_hours=20,
            ),
            secondary.context,
        )

        assert equivalency.destination_hours == 20

    async def test_destination_above_origin(self, db, secondary) -> None:
        """Test that the destination can never exceed the origin."""
        with pytest.raises(ValidationError) as exc_info:
            await EquivalencyWorkflow(db).create(
                request_for(
                    secondary.student_id,
                    secondary.discipline_ids["Physics"],
                    origin_hours=40,
                    destination_hours=50,
                ),
                secondary.context,
            )

        assert exc_info.value.field == "destination_hours"

    async def test_origin_is_required(self, db, higher, elective) -> None:
        """Test that an origin discipline or name is required."""
        with pytest.raises(ValidationError) as exc_info:
            await EquivalencyWorkflow(db).create(
                request_for(higher.student_id, elective, origin_discipline_name=None),
                higher.context,
            )

        assert exc_info.value.field == "origin_discipline_name"

    async def test_internal_origin_fills_name(self, db, higher, elective) -> None:
        """Test that an internal origin discipline provides the origin name."""
        equivalency = await EquivalencyWorkflow(db).create(
            request_for(
                higher.student_id,
                elective,
                origin_discipline_name=None,
                origin_discipline_id=higher.discipline_ids["Algorithms"],
                origin_hours=60,
                destination_hours=60,
            ),
            higher.context,
        )

        assert equivalency.origin_discipline_name == "Algorithms"

    async def test_unknown_destination(self, db, higher) -> None:
        """Test that a destination outside the tenant is not found."""
        with pytest.raises(NotFoundError):
            await EquivalencyWorkflow(db).create(
                request_for(higher.student_id, new_id()), higher.context
            )


class TestPendingChanges:
    """Tests for edits and removals while pending."""

    async def test_update_pending(self, db, higher, elective) -> None:
        """Test that pending equivalencies can be edited."""
        workflow = EquivalencyWorkflow(db)
        created = await workflow.create(request_for(higher.student_id, elective), higher.context)

        updated = await workflow.update(
            created.id,
            EquivalencyUpdateRequest(destination_hours=90, notes="Syllabus received"),
            higher.context,
        )

        assert updated.destination_hours == 90
        assert updated.notes == "Syllabus received"
        assert updated.origin_hours == 100

    async def test_update_revalidates_hours(self, db, higher, elective) -> None:
        """Test that edited hours obey the minimum ratio."""
        workflow = EquivalencyWorkflow(db)
        created = await workflow.create(request_for(higher.student_id, elective), higher.context)

        with pytest.raises(ValidationError):
            await workflow.update(
                created.id, EquivalencyUpdateRequest(origin_hours=120), higher.context
            )

        assert (await workflow.get(created.id, higher.context)).origin_hours == 100

    async def test_reject_requires_reason(self, db, higher, elective) -> None:
        """Test that rejection needs a reason."""
        workflow = EquivalencyWorkflow(db)
        created = await workflow.create(request_for(higher.student_id, elective), higher.context)

        with pytest.raises(ValidationError) as exc_info:
            await workflow.reject(created.id, "  ", higher.context)

        assert exc_info.value.field == "reason"

    async def test_reject_removes_and_audits(self, db, higher, elective) -> None:
        """Test that a rejected request is removed with an audit entry."""
        workflow = EquivalencyWorkflow(db)
        created = await workflow.create(request_for(higher.student_id, elective), higher.context)

        await workflow.reject(created.id, "Syllabus does not match", higher.context)

        with pytest.raises(NotFoundError):
            await workflow.get(created.id, higher.context)
        entries = await AuditService(db).list_for_entity(
            higher.tenant_id, "equivalency", created.id
        )
        assert [e.action for e in entries] == ["equivalency.created", "equivalency.rejected"]
        assert entries[-1].description == "Syllabus does not match"

    async def test_delete_pending(self, db, higher, elective) -> None:
        """Test withdrawing a pending request."""
        workflow = EquivalencyWorkflow(db)
        created = await workflow.create(request_for(higher.student_id, elective), higher.context)

        await workflow.delete(created.id, higher.context)

        assert await workflow.list_equivalencies(higher.context, student_id=higher.student_id) == []


class TestDeferral:
    """Tests for deferring an equivalency."""

    async def test_defer_appends_note(self, db, higher, elective, fixed_clock) -> None:
        """Test that deferral freezes the record and appends the note."""
        workflow = EquivalencyWorkflow(db, clock=fixed_clock)
        created = await workflow.create(
            request_for(higher.student_id, elective, notes="Syllabus received"), higher.context
        )

        deferred = await workflow.defer(created.id, higher.context, note="Approved by board")

        assert deferred.deferred is True
        assert deferred.deferred_by == higher.context.actor_id
        assert deferred.deferred_at is not None
        assert deferred.notes == "Syllabus received\n\n[DEFERRED]: Approved by board"

    async def test_deferred_record_is_frozen(self, db, higher, elective) -> None:
        """Test that a deferred equivalency refuses every change."""
        workflow = EquivalencyWorkflow(db)
        created = await workflow.create(request_for(higher.student_id, elective), higher.context)
        await workflow.defer(created.id, higher.context)

        with pytest.raises(ForbiddenError) as exc_info:
            await workflow.update(created.id, EquivalencyUpdateRequest(notes="x"), higher.context)
        assert str(exc_info.value) == "Deferred equivalency cannot be modified or deleted."

        with pytest.raises(ForbiddenError):
            await workflow.delete(created.id, higher.context)
        with pytest.raises(ForbiddenError):
            await workflow.reject(created.id, "Changed our minds", higher.context)
        with pytest.raises(ForbiddenError) as exc_info:
            await workflow.defer(created.id, higher.context)
        assert str(exc_info.value) == "Equivalency has already been deferred."

        stored = await workflow.get(created.id, higher.context)
        assert stored.deferred is True

    async def test_second_deferral_for_destination_conflicts(self, db, higher, elective) -> None:
        """Test that only one deferred equivalency may exist per destination."""
        workflow = EquivalencyWorkflow(db)
        first = await workflow.create(request_for(higher.student_id, elective), higher.context)
        second = await workflow.create(
            request_for(higher.student_id, elective, origin_institution="City College"),
            higher.context,
        )
        await workflow.defer(first.id, higher.context)

        with pytest.raises(ConflictError):
            await workflow.defer(second.id, higher.context)
        with pytest.raises(ConflictError):
            await workflow.create(request_for(higher.student_id, elective), higher.context)

        pending = await workflow.list_equivalencies(higher.context, deferred=False)
        assert [e.id for e in pending] == [second.id]

    async def test_history_lists_equivalent_row(self, db, higher, elective) -> None:
        """Test that a deferred equivalency adds an EQUIVALENT history row."""
        workflow = EquivalencyWorkflow(db)
        created = await workflow.create(request_for(higher.student_id, elective), higher.context)
        await workflow.defer(created.id, higher.context)

        rows = await HistoricalRecordService(db).rows(higher.student_id, higher.tenant_id)

        graded = [row for row in rows if not row.from_equivalency]
        equivalent = [row for row in rows if row.from_equivalency]
        assert [row.discipline_name for row in graded] == ["Algorithms", "Calculus"]
        assert all(row.outcome == HistoryOutcome.PASSED for row in graded)
        assert len(equivalent) == 1
        assert equivalent[0].outcome == HistoryOutcome.EQUIVALENT
        assert equivalent[0].discipline_name == "Databases"
        assert equivalent[0].workload_hours == 80
        assert equivalent[0].origin_institution == "State University"

    async def test_pending_request_is_not_in_history(self, db, higher, elective) -> None:
        """Test that only deferred equivalencies reach the history."""
        await EquivalencyWorkflow(db).create(
            request_for(higher.student_id, elective), higher.context
        )

        rows = await HistoricalRecordService(db).rows(higher.student_id, higher.tenant_id)

        assert not any(row.from_equivalency for row in rows)
