# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for equivalency workload rules and deferral notes."""

import pytest

from academic_records.core.context import AcademicType
from academic_records.core.errors import ValidationError
from academic_records.domains.equivalency import append_deferral_note, validate_hours


class TestValidateHours:
    """Tests for validate_hours."""

    def test_higher_below_ratio_fails(self) -> None:
        """Test that 75h against a 100h origin is refused."""
        with pytest.raises(ValidationError) as exc_info:
            validate_hours(100, 75, AcademicType.HIGHER)

        assert exc_info.value.field == "destination_hours"
        assert "≥80%" in exc_info.value.message
        assert "80h required, 75h given" in exc_info.value.message

    def test_higher_at_ratio_passes(self) -> None:
        """Test that exactly 80% of the origin workload is accepted."""
        validate_hours(100, 80, AcademicType.HIGHER)

    def test_higher_custom_ratio(self) -> None:
        """Test a configured minimum ratio."""
        with pytest.raises(ValidationError):
            validate_hours(100, 85, AcademicType.HIGHER, min_ratio=0.9)

    def test_secondary_has_no_minimum(self) -> None:
        """Test that secondary education only caps the destination."""
        validate_hours(100, 10, AcademicType.SECONDARY)

    @pytest.mark.parametrize("academic_type", list(AcademicType))
    def test_destination_cannot_exceed_origin(self, academic_type: AcademicType) -> None:
        """Test that destination above origin is refused for every type."""
        with pytest.raises(ValidationError) as exc_info:
            validate_hours(60, 61, academic_type)

        assert exc_info.value.field == "destination_hours"
        assert "cannot exceed" in exc_info.value.message


class TestAppendDeferralNote:
    """Tests for append_deferral_note."""

    def test_note_without_existing_text(self) -> None:
        """Test a note on an empty observation."""
        assert append_deferral_note(None, "Approved by board") == "[DEFERRED]: Approved by board"

    def test_tag_only(self) -> None:
        """Test the bare tag when no note is given."""
        assert append_deferral_note(None, None) == "[DEFERRED]"

    def test_appends_after_existing_text(self) -> None:
        """Test that existing observations are kept."""
        result = append_deferral_note("Syllabus received", "ok")

        assert result == "Syllabus received\n\n[DEFERRED]: ok"
