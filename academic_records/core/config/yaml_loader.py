# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""YAML configuration loading.

Document wording (titles, body sentences, table headers) is kept in YAML so
institutions can override it without touching code. The packaged file is the
base layer; an optional institution file is merged on top of it.

Example:
    >>> from pathlib import Path
    >>> from academic_records.core.config.yaml_loader import load_layered_yaml
    >>> texts = load_layered_yaml(Path("templates.yaml"), Path("/etc/records/texts.yaml"))
"""

from pathlib import Path
from typing import Any

import yaml


class YAMLLoadError(Exception):
    """Raised when a YAML file cannot be loaded or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize YAMLLoadError.

        Args:
            path: Path to the YAML file that failed to load.
            reason: Description of why the file failed to load.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load YAML file '{path}': {reason}")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from disk.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed mapping. Empty dict for an empty file.

    Raises:
        YAMLLoadError: If the file is missing, unreadable, malformed,
            or its root is not a mapping.
    """
    if not path.is_file():
        raise YAMLLoadError(path, "File does not exist")

    try:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise YAMLLoadError(path, f"Cannot read file: {e}") from e
    except yaml.YAMLError as e:
        raise YAMLLoadError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise YAMLLoadError(path, f"YAML root must be a mapping, got {type(parsed).__name__}")

    return parsed


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Nested mappings merge key by key; any other value in ``override``
    replaces the base value. Neither argument is modified.
    """
    merged: dict[str, Any] = dict(base)

    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value

    return merged


def load_layered_yaml(base: Path, override: Path | None = None) -> dict[str, Any]:
    """Load ``base`` and merge an optional ``override`` file over it.

    Args:
        base: Packaged default file.
        override: Institution-specific file, or None.

    Returns:
        The merged mapping.
    """
    result = load_yaml(base)
    if override is not None:
        result = deep_merge(result, load_yaml(override))
    return result
