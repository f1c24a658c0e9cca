# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for academic records.

Domains:
    audit: Append-only audit trail.
    numbering: Per-tenant document number allocation.
    history: Read model of the closed-year historical record.
    holds: Financial and academic holds.
    eligibility: Ordered eligibility pipeline gating irreversible actions.
    conclusion: Course/class conclusion workflow.
    equivalency: Credit equivalency adjudication.
    documents: Official document composition, rendering and issuance.
"""
