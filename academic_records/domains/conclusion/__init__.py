# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conclusion domain package.

This package provides the course/class conclusion workflow:
- Scope variants per academic type
- Requirement checks shared with document eligibility
- VALIDATED -> CONCLUDED transition with enrollment cascade
- Graduation and certificate records
"""

from academic_records.domains.conclusion.requirements import (
    ConclusionRequirements,
    ConclusionRequirementsService,
)
from academic_records.domains.conclusion.scope import (
    ConclusionScope,
    HigherConclusionScope,
    SecondaryConclusionScope,
    conclusion_scope,
)
from academic_records.domains.conclusion.service import ConclusionMetrics, ConclusionWorkflow

__all__ = [
    "ConclusionMetrics",
    "ConclusionRequirements",
    "ConclusionRequirementsService",
    "ConclusionScope",
    "ConclusionWorkflow",
    "HigherConclusionScope",
    "SecondaryConclusionScope",
    "conclusion_scope",
]
