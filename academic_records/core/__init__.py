# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core building blocks shared by the workflows.

- context: TenantContext and AcademicType
- errors: error taxonomy
- pipeline: ordered check pipelines
- guards: central immutability guard
"""

from academic_records.core.context import AcademicType, TenantContext
from academic_records.core.errors import (
    ConflictError,
    EligibilityError,
    ForbiddenError,
    NotFoundError,
    RecordsError,
    StoreError,
    ValidationError,
)
from academic_records.core.guards import ImmutabilityGuard
from academic_records.core.pipeline import Check, CheckFailure, first_failure, run_checks

__all__ = [
    "AcademicType",
    "TenantContext",
    "RecordsError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ForbiddenError",
    "EligibilityError",
    "StoreError",
    "ImmutabilityGuard",
    "Check",
    "CheckFailure",
    "first_failure",
    "run_checks",
]
