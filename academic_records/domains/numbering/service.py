# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Collision-free official document numbering.

Numbers look like ``DECL-2026-000042``: series prefix, issue year and a
six-digit sequence that never resets and never repeats within a
(tenant, series).

The sequence lives in one ``document_sequences`` row per (tenant, series),
incremented in place with ``UPDATE ... RETURNING`` inside the caller's
transaction. The row lock is held until the caller commits the document
that uses the number, so concurrent issuers serialize and a rollback gives
the value back. Tenants never share a row and never contend.

Example:
    generator = NumberGenerator(session)
    number = await generator.next(ctx.tenant_id, DocumentSeries.DECL)
    session.add(IssuedDocument(number=number, ...))
    await session.commit()
"""

import logging
import re
from datetime import datetime
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academic_records.core.errors import StoreError
from academic_records.infrastructure.database.models import DocumentSequence, IssuedDocument
from academic_records.models.common import DocumentSeries
from academic_records.utils.datetime import utc_now

logger = logging.getLogger(__name__)

SEQUENCE_DIGITS = 6
_SUFFIX_PATTERN = re.compile(r"-(\d+)$")


def format_number(series: DocumentSeries | str, year: int, value: int) -> str:
    """Format a document number.

    Args:
        series: Series whose value doubles as the prefix.
        year: Issue year.
        value: Sequence value, starting at 1.

    Returns:
        Number such as ``HIST-2026-000007``.
    """
    prefix = DocumentSeries(series).value
    return f"{prefix}-{year}-{value:0{SEQUENCE_DIGITS}d}"


def parse_sequence(number: str) -> int | None:
    """Return the trailing numeric suffix of a number, or None if malformed."""
    match = _SUFFIX_PATTERN.search(number.strip())
    if match is None:
        return None
    return int(match.group(1))


class NumberGenerator:
    """Allocates the next number of a (tenant, series).

    Attributes:
        db: Async database session owning the issuing transaction.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the generator.

        Args:
            db: Async database session. The allocation joins its transaction.
            clock: Source of the current time; its year goes into the number.
        """
        self.db = db
        self._clock = clock

    async def next(self, tenant_id: str, series: DocumentSeries | str) -> str:
        """Allocate the next number.

        The value stays reserved only if the caller commits; on rollback it
        is released together with the dependent write.

        Args:
            tenant_id: Tenant owning the series.
            series: Numbering series.

        Returns:
            The formatted number.

        Raises:
            StoreError: If the store is unavailable or the statement fails.
        """
        series = DocumentSeries(series)

        try:
            await self._ensure_sequence(tenant_id, series)
            stmt = (
                update(DocumentSequence)
                .where(
                    DocumentSequence.tenant_id == tenant_id,
                    DocumentSequence.series == series.value,
                )
                .values(last_value=DocumentSequence.last_value + 1)
                .returning(DocumentSequence.last_value)
                .execution_options(synchronize_session=False)
            )
            value = (await self.db.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            logger.error(
                "Number allocation failed: tenant=%s, series=%s, error=%s",
                tenant_id,
                series.value,
                str(e),
            )
            raise StoreError("Failed to allocate document number", e) from e

        number = format_number(series, self._clock().year, value)
        logger.debug("Allocated %s for tenant %s", number, tenant_id)
        return number

    async def current(self, tenant_id: str, series: DocumentSeries | str) -> int:
        """Return the last allocated value of a series (0 if none)."""
        series = DocumentSeries(series)
        try:
            value = await self.db.scalar(
                select(DocumentSequence.last_value).where(
                    DocumentSequence.tenant_id == tenant_id,
                    DocumentSequence.series == series.value,
                )
            )
            if value is None:
                value = await self._highest_issued(tenant_id, series)
        except SQLAlchemyError as e:
            raise StoreError("Failed to read document sequence", e) from e
        return value

    async def _ensure_sequence(self, tenant_id: str, series: DocumentSeries) -> None:
        """Create the counter row on first use.

        The row is seeded with the highest suffix already issued in the
        series, so numbers issued before the counter existed are never
        handed out again.
        """
        existing = await self.db.scalar(
            select(DocumentSequence.last_value).where(
                DocumentSequence.tenant_id == tenant_id,
                DocumentSequence.series == series.value,
            )
        )
        if existing is not None:
            return

        seed = await self._highest_issued(tenant_id, series)
        dialect = self.db.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = (
            insert(DocumentSequence)
            .values(tenant_id=tenant_id, series=series.value, last_value=seed)
            .on_conflict_do_nothing(index_elements=["tenant_id", "series"])
        )
        await self.db.execute(stmt)

        logger.info(
            "Created document sequence: tenant=%s, series=%s, seed=%d",
            tenant_id,
            series.value,
            seed,
        )

    async def _highest_issued(self, tenant_id: str, series: DocumentSeries) -> int:
        """Return max(parsed suffix) over every number issued in the series."""
        result = await self.db.execute(
            select(IssuedDocument.number).where(
                IssuedDocument.tenant_id == tenant_id,
                IssuedDocument.series == series.value,
            )
        )
        suffixes = [parse_sequence(number) for number in result.scalars().all()]
        return max((value for value in suffixes if value is not None), default=0)
