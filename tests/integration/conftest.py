# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database-backed tests.

Tests run against a throwaway SQLite file by default. Set TEST_DATABASE_URL
to an async PostgreSQL URL to run the same tests against PostgreSQL.

Seed rows are written through their own sessions, so the session handed to
the services under test starts with an empty identity map.
"""

import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from academic_records.core.config.settings import DatabaseSettings, Settings
from academic_records.core.context import AcademicType, TenantContext
from academic_records.infrastructure.database.connection import (
    close_database,
    get_engine,
    get_sessionmaker,
    init_database,
)
from academic_records.infrastructure.database.models import (
    AcademicYear,
    AnnualEnrollment,
    Base,
    Course,
    Discipline,
    DisciplineEnrollment,
    HistoryEntry,
    HoldPolicy,
    SchoolClass,
    Student,
    Tenant,
    TuitionInstallment,
    new_id,
)
from academic_records.models.common import (
    AcademicYearStatus,
    DisciplineEnrollmentStatus,
    EnrollmentStatus,
    HistoryOutcome,
    InstallmentStatus,
)

ACTOR_ID = "550e8400-e29b-41d4-a716-446655440099"


# =============================================================================
# Engine and Sessions
# =============================================================================


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Get the database URL for tests."""
    return os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'records.db'}")


@pytest_asyncio.fixture(scope="function")
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Initialize the records database with a fresh schema."""
    await init_database(Settings(db=DatabaseSettings(dsn=database_url)))
    engine = get_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await close_database()


@pytest.fixture
def sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessionmaker bound to the test engine."""
    return get_sessionmaker()


@pytest_asyncio.fixture(scope="function")
async def db(sessionmaker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Session handed to the services under test."""
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# =============================================================================
# Seeding
# =============================================================================


class Seeder:
    """Writes fixture rows, each batch in its own committed session."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    async def add(self, *rows: Base) -> None:
        async with self._sessionmaker() as session:
            session.add_all(rows)
            await session.commit()


@pytest.fixture
def seeder(sessionmaker: async_sessionmaker[AsyncSession]) -> Seeder:
    """Provide a row seeder."""
    return Seeder(sessionmaker)


@dataclass
class Scenario:
    """Identifiers of a seeded institution with one enrolled student."""

    context: TenantContext
    student_id: str
    academic_year_id: str
    enrollment_id: str
    course_id: str | None = None
    class_id: str | None = None
    discipline_ids: dict[str, str] = field(default_factory=dict)

    @property
    def tenant_id(self) -> str:
        return self.context.tenant_id


ScenarioFactory = Callable[..., Awaitable[Scenario]]


@pytest.fixture
def make_scenario(seeder: Seeder) -> ScenarioFactory:
    """Factory seeding an institution with one student and a closed year.

    HIGHER scenarios enroll the student in a 120h course with two 60h
    disciplines. SECONDARY scenarios enroll the student in a 100h class with
    two 50h disciplines. With ``complete`` the historical record holds a
    passing row for every discipline; otherwise the last one is missing.
    """

    async def factory(
        academic_type: AcademicType,
        *,
        complete: bool = True,
        tenant_name: str = "Northfield College",
        year_status: AcademicYearStatus = AcademicYearStatus.CLOSED,
    ) -> Scenario:
        tenant = Tenant(
            id=new_id(),
            name=tenant_name,
            academic_type=academic_type.value,
            tax_id="12.345.678/0001-90",
            address="1 College Road",
        )
        student = Student(
            id=new_id(),
            tenant_id=tenant.id,
            full_name="Maria Clara Souza Lima",
            student_number="2024001",
        )
        year = AcademicYear(
            id=new_id(),
            tenant_id=tenant.id,
            year=2025,
            status=year_status.value,
        )
        await seeder.add(tenant, student, year)

        course_id = None
        class_id = None
        if academic_type == AcademicType.HIGHER:
            course = Course(
                id=new_id(), tenant_id=tenant.id, name="Computer Science", total_hours=120
            )
            await seeder.add(course)
            course_id = course.id
            specs = [("Algorithms", 60, 90.0, 14.0), ("Calculus", 60, 80.0, 16.0)]
        else:
            school_class = SchoolClass(
                id=new_id(), tenant_id=tenant.id, name="Class 9A", total_hours=100
            )
            await seeder.add(school_class)
            class_id = school_class.id
            specs = [("Mathematics", 50, 90.0, 14.0), ("Physics", 50, 80.0, 16.0)]

        disciplines = [
            Discipline(
                id=new_id(),
                tenant_id=tenant.id,
                name=name,
                course_id=course_id,
                workload_hours=hours,
            )
            for name, hours, _, _ in specs
        ]
        enrollment = AnnualEnrollment(
            id=new_id(),
            tenant_id=tenant.id,
            student_id=student.id,
            academic_year_id=year.id,
            course_id=course_id,
            class_id=class_id,
            year_label="1st year",
            status=EnrollmentStatus.ACTIVE.value,
        )
        await seeder.add(*disciplines, enrollment)

        registrations = [
            DisciplineEnrollment(
                id=new_id(),
                tenant_id=tenant.id,
                student_id=student.id,
                discipline_id=discipline.id,
                annual_enrollment_id=enrollment.id,
                status=DisciplineEnrollmentStatus.ATTENDING.value,
            )
            for discipline in disciplines
        ]
        recorded = specs if complete else specs[:-1]
        history = [
            HistoryEntry(
                id=new_id(),
                tenant_id=tenant.id,
                student_id=student.id,
                academic_year_id=year.id,
                discipline_id=discipline.id,
                course_id=course_id,
                class_id=class_id,
                workload_hours=hours,
                attendance_percent=attendance,
                final_grade=grade,
                outcome=HistoryOutcome.PASSED.value,
            )
            for discipline, (_, hours, attendance, grade) in zip(disciplines, recorded)
        ]
        await seeder.add(*registrations, *history)

        return Scenario(
            context=TenantContext(
                tenant_id=tenant.id,
                academic_type=academic_type,
                actor_id=ACTOR_ID,
                actor_roles=("SECRETARY",),
            ),
            student_id=student.id,
            academic_year_id=year.id,
            enrollment_id=enrollment.id,
            course_id=course_id,
            class_id=class_id,
            discipline_ids={discipline.name: discipline.id for discipline in disciplines},
        )

    return factory


@pytest_asyncio.fixture(scope="function")
async def higher(make_scenario: ScenarioFactory) -> Scenario:
    """Higher-education student who meets every conclusion requirement."""
    return await make_scenario(AcademicType.HIGHER)


@pytest_asyncio.fixture(scope="function")
async def secondary(make_scenario: ScenarioFactory) -> Scenario:
    """Secondary-education student who meets every conclusion requirement."""
    return await make_scenario(AcademicType.SECONDARY)


@pytest.fixture
def add_overdue_debt(seeder: Seeder) -> Callable[..., Awaitable[None]]:
    """Factory enabling a document hold and adding one overdue installment."""

    async def factory(scenario: Scenario, message: str | None = None) -> None:
        await seeder.add(
            HoldPolicy(
                tenant_id=scenario.tenant_id,
                block_documents_on_debt=True,
                block_certificates_on_debt=True,
                documents_block_message=message,
                certificates_block_message=message,
            ),
            TuitionInstallment(
                id=new_id(),
                tenant_id=scenario.tenant_id,
                student_id=scenario.student_id,
                due_date=date(2025, 1, 10),
                amount=450.0,
                status=InstallmentStatus.PENDING.value,
            ),
        )

    return factory
