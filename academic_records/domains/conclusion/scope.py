# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conclusion scope variants.

A conclusion covers a course in higher education or a class in secondary
education. Each variant only carries the fields valid for its academic type
and is validated on construction, so workflows never see an inconsistent
course/class pair.

Example:
    scope = conclusion_scope(ctx.require_academic_type(), course_id, class_id)
    if isinstance(scope, HigherConclusionScope):
        ...
"""

from dataclasses import dataclass
from typing import ClassVar, Union

from academic_records.core.context import AcademicType
from academic_records.core.errors import ValidationError


@dataclass(frozen=True)
class HigherConclusionScope:
    """Completion of a higher-education course."""

    academic_type: ClassVar[AcademicType] = AcademicType.HIGHER

    course_id: str

    def __post_init__(self) -> None:
        if not self.course_id:
            raise ValidationError(
                "course_id is required for higher education.",
                field="course_id",
            )

    @property
    def class_id(self) -> None:
        """Higher education scopes never reference a class."""
        return None


@dataclass(frozen=True)
class SecondaryConclusionScope:
    """Completion of a secondary-education class, optionally within a course."""

    academic_type: ClassVar[AcademicType] = AcademicType.SECONDARY

    class_id: str
    course_id: str | None = None

    def __post_init__(self) -> None:
        if not self.class_id:
            raise ValidationError(
                "class_id is required for secondary education.",
                field="class_id",
            )


ConclusionScope = Union[HigherConclusionScope, SecondaryConclusionScope]


def conclusion_scope(
    academic_type: AcademicType,
    course_id: str | None = None,
    class_id: str | None = None,
) -> ConclusionScope:
    """Build the scope variant for the institution's academic type.

    Args:
        academic_type: Institution academic type.
        course_id: Course identifier.
        class_id: Class identifier.

    Returns:
        The validated scope.

    Raises:
        ValidationError: With ``field`` naming the offending input.
    """
    if not course_id and not class_id:
        raise ValidationError(
            "A course or class is required to validate a conclusion.",
            field="class_id" if academic_type == AcademicType.SECONDARY else "course_id",
        )

    if academic_type == AcademicType.HIGHER:
        if class_id:
            raise ValidationError(
                'Field "class_id" is not valid for higher education. Use "course_id".',
                field="class_id",
            )
        return HigherConclusionScope(course_id=course_id or "")

    return SecondaryConclusionScope(class_id=class_id or "", course_id=course_id or None)
