# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests (SQLite by default, TEST_DATABASE_URL to override)
"""

from collections.abc import Generator
from datetime import datetime, timezone

import pytest

from academic_records.core.config.settings import clear_settings_cache
from academic_records.core.context import AcademicType, TenantContext

FIXED_NOW = datetime(2026, 3, 16, 10, 30, tzinfo=timezone.utc)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as a database-backed test"
    )


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Drop cached settings around each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def fixed_clock():
    """Clock frozen in March 2026."""
    return lambda: FIXED_NOW


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_tenant_id() -> str:
    """Provide a sample tenant ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def sample_student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def higher_context(sample_tenant_id: str) -> TenantContext:
    """Provide a higher-education tenant context."""
    return TenantContext(
        tenant_id=sample_tenant_id,
        academic_type=AcademicType.HIGHER,
        actor_id="550e8400-e29b-41d4-a716-446655440099",
        actor_roles=("SECRETARY",),
    )


@pytest.fixture
def secondary_context(sample_tenant_id: str) -> TenantContext:
    """Provide a secondary-education tenant context."""
    return TenantContext(
        tenant_id=sample_tenant_id,
        academic_type=AcademicType.SECONDARY,
        actor_id="550e8400-e29b-41d4-a716-446655440099",
        actor_roles=("SECRETARY",),
    )
