from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .row_warning import RowWarning, WarningType

"""RosterEntry domain model.

A RosterEntry is one normalized row of an uploaded roster. It is created once
by the extractor, receives its validation errors exactly once (``with_errors``)
and is never changed afterwards. Instances are frozen; attaching errors or
warnings returns a new instance.
"""

__all__ = [
    "AssessmentStatus",
    "RosterEntry",
]


class AssessmentStatus(Enum):
    PASS = "PASS"
    FAIL = "FAIL"


@dataclass(frozen=True)
class RosterEntry:
    """Normalized roster row.

    Attributes:
        row_index: 0-based position in the uploaded data (stable for error reporting)
        student_name: Required; validated after extraction
        email: Optional, format-checked when present
        length: Course length in hours (non-negative) or None when absent/unparseable
        assessment_status: PASS / FAIL, or None when the cell matched neither
        course_id: Defaulted from the caller's context
        errors: Human-readable validation messages
        warnings: Non-fatal data quality signals
    """
    row_index: int
    student_name: str = ""
    email: str = ""
    phone: str = ""
    company: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    first_aid_level: str = ""
    cpr_level: str = ""
    instructor_name: str = ""
    length: float | None = None
    assessment_status: AssessmentStatus | None = None
    course_id: str = ""
    issue_date: str | None = None
    expiry_date: str | None = None
    errors: tuple[str, ...] = ()
    warnings: tuple[RowWarning, ...] = field(default=())

    @property
    def has_error(self) -> bool:
        # errors と常に一致 (フラグは保持しない)
        return len(self.errors) > 0

    @property
    def row_number(self) -> int:
        """1-based row number used in messages."""
        return self.row_index + 1

    def with_errors(self, errors: list[str] | tuple[str, ...]) -> RosterEntry:
        return replace(self, errors=tuple(errors))

    def with_warnings(self, warnings: list[RowWarning] | tuple[RowWarning, ...]) -> RosterEntry:
        if not warnings:
            return self
        return replace(self, warnings=self.warnings + tuple(warnings))

    def has_warning(self, warning_type: WarningType) -> bool:
        return any(w.warning_type is warning_type for w in self.warnings)

    def to_dict(self) -> dict[str, Any]:
        """Render using the camelCase keys of the upload output contract."""
        return {
            "rowIndex": self.row_index,
            "studentName": self.student_name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "city": self.city,
            "province": self.province,
            "postalCode": self.postal_code,
            "firstAidLevel": self.first_aid_level,
            "cprLevel": self.cpr_level,
            "instructorName": self.instructor_name,
            "length": self.length,
            "assessmentStatus": (
                self.assessment_status.value if self.assessment_status is not None else None
            ),
            "courseId": self.course_id,
            "issueDate": self.issue_date,
            "expiryDate": self.expiry_date,
            "hasError": self.has_error,
            "errors": list(self.errors),
            "warnings": [w.to_dict() for w in self.warnings],
        }
