# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tenant context supplied by the trusted session layer.

The session layer (outside this package) builds a TenantContext from the
authenticated token. Services never read tenant identity or academic type
from request payloads.

Example:
    ctx = TenantContext(
        tenant_id="8c0e...",
        academic_type=AcademicType.HIGHER,
        actor_id="a1b2...",
        actor_roles=("SECRETARY",),
    )
    await ConclusionWorkflow(db).conclude(conclusion_id, ctx)
"""

from dataclasses import dataclass, field
from enum import Enum

from academic_records.core.errors import ValidationError


class AcademicType(str, Enum):
    """Institution classification driving which fields and ratios apply."""

    SECONDARY = "SECONDARY"
    HIGHER = "HIGHER"


@dataclass(frozen=True)
class TenantContext:
    """Identity of the institution and actor behind a request.

    Attributes:
        tenant_id: Institution identifier.
        academic_type: Institution classification, None when not configured.
        actor_id: User performing the action.
        actor_roles: Roles granted to the actor.
    """

    tenant_id: str
    academic_type: AcademicType | None
    actor_id: str
    actor_roles: tuple[str, ...] = field(default_factory=tuple)

    def require_academic_type(self) -> AcademicType:
        """Return the academic type or fail when the institution has none.

        Raises:
            ValidationError: If the institution academic type is not set.
        """
        if self.academic_type is None:
            raise ValidationError(
                "Institution academic type is not identified. Sign in again.",
                field="academic_type",
            )
        return self.academic_type

    @property
    def is_higher(self) -> bool:
        """Check if the institution is higher education."""
        return self.academic_type == AcademicType.HIGHER

    @property
    def is_secondary(self) -> bool:
        """Check if the institution is secondary education."""
        return self.academic_type == AcademicType.SECONDARY
