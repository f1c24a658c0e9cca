# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Central immutability guard.

Every mutating entry point for an official record consults one guard before
writing. Rules are registered per model class and return the reason the
record is frozen, or None when the write may proceed.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Literal

from academic_records.core.errors import ForbiddenError

logger = logging.getLogger(__name__)

Mutation = Literal["update", "delete", "void", "conclude", "defer"]
FrozenReason = Callable[[Any, Mutation], str | None]


@dataclass(frozen=True)
class ImmutabilityRule:
    """Freezing rule for one model class."""

    model: type
    reason: FrozenReason


class ImmutabilityGuard:
    """Registry of freezing rules.

    Example:
        guard = ImmutabilityGuard()
        guard.register(ConclusionRecord, lambda record, op: "immutable record")
        guard.ensure_mutable(record, "update")  # raises ForbiddenError
    """

    def __init__(self) -> None:
        self._rules: dict[type, ImmutabilityRule] = {}

    def register(self, model: type, reason: FrozenReason) -> None:
        """Register the freezing rule for ``model``."""
        self._rules[model] = ImmutabilityRule(model=model, reason=reason)

    def frozen_reason(self, record: Any, mutation: Mutation) -> str | None:
        """Return why ``record`` cannot take ``mutation``, or None."""
        for cls in type(record).__mro__:
            rule = self._rules.get(cls)
            if rule is not None:
                return rule.reason(record, mutation)
        return None

    def ensure_mutable(self, record: Any, mutation: Mutation) -> None:
        """Raise when ``record`` is frozen for ``mutation``.

        Raises:
            ForbiddenError: If a registered rule freezes the record.
        """
        reason = self.frozen_reason(record, mutation)
        if reason is not None:
            logger.warning(
                "Blocked %s on immutable %s %s",
                mutation,
                type(record).__name__,
                getattr(record, "id", None),
            )
            raise ForbiddenError(reason)
