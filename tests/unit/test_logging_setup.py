# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for structured logging setup."""

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from academic_records.core.config.settings import DatabaseSettings, Settings
from academic_records.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """Undo the global logging configuration after the test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
    clear_context()
    structlog.reset_defaults()


def production_settings() -> Settings:
    return Settings(
        environment="production",
        debug=False,
        log_level="INFO",
        db=DatabaseSettings(dsn="postgresql+asyncpg://records:secret@db/records"),
    )


def last_json_line(output: str) -> dict:
    return json.loads(output.strip().splitlines()[-1])


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_sets_levels(self, restore_logging) -> None:
        """Test the package and third-party logger levels."""
        setup_logging(production_settings())

        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("academic_records").level == logging.INFO
        assert logging.getLogger("sqlalchemy").level == logging.WARNING

    def test_stdlib_records_render_as_json(self, restore_logging, capsys) -> None:
        """Test that service log calls with %-arguments render as JSON in production."""
        setup_logging(production_settings())

        logging.getLogger("academic_records.domains.numbering").info(
            "Allocated %s", "DECL-2026-000001"
        )

        entry = last_json_line(capsys.readouterr().out)
        assert entry["event"] == "Allocated DECL-2026-000001"
        assert entry["level"] == "info"
        assert entry["logger"] == "academic_records.domains.numbering"

    def test_bound_context_is_merged(self, restore_logging, capsys) -> None:
        """Test that bound fields appear on later log lines until cleared."""
        setup_logging(production_settings())

        bind_context(tenant_id="tenant-1", actor_id="actor-1")
        logging.getLogger("academic_records.test").info("Voided document")
        bound = last_json_line(capsys.readouterr().out)

        clear_context()
        logging.getLogger("academic_records.test").info("Voided document")
        cleared = last_json_line(capsys.readouterr().out)

        assert bound["tenant_id"] == "tenant-1"
        assert bound["actor_id"] == "actor-1"
        assert "tenant_id" not in cleared

    def test_structlog_logger_keyword_fields(self, restore_logging, capsys) -> None:
        """Test that structlog loggers render their keyword fields."""
        setup_logging(production_settings())

        get_logger("academic_records.test").info("Document issued", number="CERT-2026-000001")

        entry = last_json_line(capsys.readouterr().out)
        assert entry["event"] == "Document issued"
        assert entry["number"] == "CERT-2026-000001"
        assert entry["logger"] == "academic_records.test"

    def test_debug_filtered_at_info(self, restore_logging, capsys) -> None:
        """Test that records below the configured level are dropped."""
        setup_logging(production_settings())

        logging.getLogger("academic_records.test").debug("Loaded history rows")

        assert capsys.readouterr().out == ""
