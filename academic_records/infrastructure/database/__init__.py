# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the records store.

Example:
    from academic_records.infrastructure.database import init_database, get_session

    await init_database(settings)
    async with get_session() as session:
        await DocumentIssuanceService(session).issue(request, student_id, ctx)
"""

from academic_records.infrastructure.database.connection import (
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
    unit_of_work,
)

__all__ = [
    "check_database_connection",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
    "unit_of_work",
]
