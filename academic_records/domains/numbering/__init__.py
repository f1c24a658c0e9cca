# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Document numbering domain package."""

from academic_records.domains.numbering.service import (
    NumberGenerator,
    format_number,
    parse_sequence,
)

__all__ = [
    "NumberGenerator",
    "format_number",
    "parse_sequence",
]
