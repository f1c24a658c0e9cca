# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Credit equivalency domain package."""

from academic_records.domains.equivalency.service import (
    EquivalencyWorkflow,
    append_deferral_note,
    validate_hours,
)

__all__ = [
    "EquivalencyWorkflow",
    "append_deferral_note",
    "validate_hours",
]
