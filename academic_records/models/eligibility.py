# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Hold, requirement and eligibility results."""

from pydantic import BaseModel, Field


class HoldResult(BaseModel):
    """Outcome of a financial hold check."""

    blocked: bool
    reason: str | None = None
    overdue_installments: int = 0
    overdue_amount: float = 0.0


class RequirementItem(BaseModel):
    """One line of the conclusion checklist."""

    name: str
    met: bool
    detail: str | None = None


class RequirementsReport(BaseModel):
    """Result of a conclusion requirements check.

    ``errors`` is ordered; the first entry is the reason surfaced to staff
    when an action is refused.
    """

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    checklist: list[RequirementItem] = Field(default_factory=list)

    @property
    def first_error(self) -> str | None:
        """Return the first listed error, if any."""
        return self.errors[0] if self.errors else None


class EligibilityResult(BaseModel):
    """Non-raising outcome of the eligibility pipeline."""

    allowed: bool
    reason: str | None = None
    check: str | None = Field(
        default=None,
        description="Name of the first failing check.",
    )
