# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Financial and academic hold domain package."""

from academic_records.domains.holds.service import (
    AcademicHold,
    AcademicHoldError,
    AcademicHoldService,
    FinancialHold,
    FinancialHoldService,
)

__all__ = [
    "AcademicHold",
    "AcademicHoldError",
    "AcademicHoldService",
    "FinancialHold",
    "FinancialHoldService",
]
