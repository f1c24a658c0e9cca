# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Official documents domain package.

This package provides document issuance:
- Payload composition from live data or the historical snapshot
- PDF rendering from YAML wording
- Numbering, hashing, voiding and public verification
"""

from academic_records.domains.documents.composer import DocumentComposer
from academic_records.domains.documents.renderer import DocumentRenderer, DocumentRenderError
from academic_records.domains.documents.service import (
    DocumentIssuanceService,
    compute_integrity_hash,
    generate_verification_code,
    partial_name,
)

__all__ = [
    "DocumentComposer",
    "DocumentIssuanceService",
    "DocumentRenderError",
    "DocumentRenderer",
    "compute_integrity_hash",
    "generate_verification_code",
    "partial_name",
]
