# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package.

- Settings: Pydantic-based settings loaded from environment variables
- YAML loader: layered loading of document wording

Example:
    >>> from academic_records.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.environment
    'development'
"""

from academic_records.core.config.settings import (
    DatabaseSettings,
    DocumentSettings,
    RecordsSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from academic_records.core.config.yaml_loader import (
    YAMLLoadError,
    deep_merge,
    load_layered_yaml,
    load_yaml,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "RecordsSettings",
    "DocumentSettings",
    # YAML utilities
    "load_yaml",
    "load_layered_yaml",
    "deep_merge",
    "YAMLLoadError",
]
