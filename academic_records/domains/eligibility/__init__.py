# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Eligibility domain package."""

from academic_records.domains.eligibility.service import (
    DECLARATION_KINDS,
    EligibilityValidator,
)

__all__ = [
    "DECLARATION_KINDS",
    "EligibilityValidator",
]
