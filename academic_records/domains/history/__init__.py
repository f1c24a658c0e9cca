# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Historical record domain package."""

from academic_records.domains.history.service import (
    HistoricalRecord,
    HistoricalRecordService,
    filter_scope,
)

__all__ = [
    "HistoricalRecord",
    "HistoricalRecordService",
    "filter_scope",
]
