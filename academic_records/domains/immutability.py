# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Immutability rules for official records.

``RECORD_GUARD`` is the single guard every mutating entry point consults
before writing a conclusion, equivalency or issued document. The guard only
reads the loaded row; services follow it with a conditional write whose row
count decides concurrent races.
"""

from academic_records.core.guards import ImmutabilityGuard, Mutation
from academic_records.infrastructure.database.models import (
    ConclusionRecord,
    EquivalencyRecord,
    IssuedDocument,
)
from academic_records.models.common import ConclusionStatus

IMMUTABLE_RECORD = "immutable record"


def _conclusion_reason(record: ConclusionRecord, mutation: Mutation) -> str | None:
    if mutation == "conclude":
        if record.status == ConclusionStatus.VALIDATED.value:
            return None
        return "Only VALIDATED conclusions can be concluded."
    # Any other write is refused, VALIDATED included
    return IMMUTABLE_RECORD


def _equivalency_reason(record: EquivalencyRecord, mutation: Mutation) -> str | None:
    if not record.deferred:
        return None
    if mutation == "defer":
        return "Equivalency has already been deferred."
    return "Deferred equivalency cannot be modified or deleted."


def _document_reason(record: IssuedDocument, mutation: Mutation) -> str | None:
    if record.is_void:
        return "Document has already been voided."
    return None


RECORD_GUARD = ImmutabilityGuard()
RECORD_GUARD.register(ConclusionRecord, _conclusion_reason)
RECORD_GUARD.register(EquivalencyRecord, _equivalency_reason)
RECORD_GUARD.register(IssuedDocument, _document_reason)
