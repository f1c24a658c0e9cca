"""Academic Records Core.

Official academic records for multi-tenant institutions: sequential document
numbering, course conclusion and graduation, and credit equivalency.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
