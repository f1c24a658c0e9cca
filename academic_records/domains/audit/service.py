# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit trail service.

Entries are added to the caller's session and flushed, never committed here,
so an audit row exists exactly when the action it describes commits.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.context import TenantContext
from academic_records.infrastructure.database.models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Writes and reads audit entries for official records.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record(
        self,
        context: TenantContext,
        action: str,
        entity_type: str,
        entity_id: str,
        description: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Add an audit entry within the current unit of work.

        Args:
            context: Tenant and actor performing the action.
            action: Action name (e.g. ``conclusion.concluded``).
            entity_type: Record type affected.
            entity_id: Record identifier.
            description: Human-readable summary.
            details: Structured extra data.

        Returns:
            The pending audit entry.
        """
        entry = AuditLog(
            tenant_id=context.tenant_id,
            actor_id=context.actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
        )
        self.db.add(entry)
        await self.db.flush()

        logger.debug(
            "Audit %s on %s %s by %s",
            action,
            entity_type,
            entity_id,
            context.actor_id,
        )
        return entry

    async def list_for_entity(
        self,
        tenant_id: str,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditLog]:
        """Return the audit entries of one record, oldest first."""
        stmt = (
            select(AuditLog)
            .where(
                AuditLog.tenant_id == tenant_id,
                AuditLog.entity_type == entity_type,
                AuditLog.entity_id == entity_id,
            )
            .order_by(AuditLog.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
