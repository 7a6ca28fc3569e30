from __future__ import annotations

import re

from ..config.vocabulary import DEFAULT_VOCABULARY, Vocabulary
from ..models.config_models import ValidationPolicy
from ..models.roster_entry import RosterEntry
from ..models.row_warning import RowWarning, WarningType

"""Per-row field validation.

validate_entry returns the list of error messages for one entry (empty list =
valid). It is stateless and never raises. Messages use 1-based row numbers.

Rules:
- Student name must be non-empty after trimming.
- A non-empty email must look like local@domain.tld.
- Optionally (ValidationPolicy), an unparseable Length or an unrecognized
  Pass/Fail value is promoted from warning to error.
"""

__all__ = [
    "EMAIL_PATTERN",
    "validate_entry",
    "check_vocabulary",
]

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_DEFAULT_POLICY = ValidationPolicy()


def validate_entry(entry: RosterEntry, policy: ValidationPolicy | None = None) -> list[str]:
    policy = policy or _DEFAULT_POLICY
    row = entry.row_number
    errors: list[str] = []

    if not entry.student_name.strip():
        errors.append(f"Row {row}: Student name is required")

    email = entry.email.strip()
    if email and not EMAIL_PATTERN.match(email):
        errors.append(f"Row {row}: Invalid email format")

    if policy.flag_unparseable_length and entry.has_warning(WarningType.LENGTH_UNPARSEABLE):
        errors.append(f"Row {row}: Invalid length value")

    if policy.flag_unrecognized_status and entry.has_warning(WarningType.STATUS_UNRECOGNIZED):
        errors.append(f"Row {row}: Unrecognized pass/fail value")

    return errors


def check_vocabulary(entry: RosterEntry, vocabulary: Vocabulary | None = None) -> list[RowWarning]:
    """Soft-match certification levels against the controlled vocabulary.

    Blank levels are fine; unknown ones only produce warnings.
    """
    vocabulary = vocabulary or DEFAULT_VOCABULARY
    row = entry.row_number
    warnings: list[RowWarning] = []
    if entry.first_aid_level and not vocabulary.accepts_first_aid(entry.first_aid_level):
        warnings.append(RowWarning(
            row_index=entry.row_index,
            warning_type=WarningType.UNKNOWN_FIRST_AID_LEVEL,
            message=f"Row {row}: Unknown first aid level '{entry.first_aid_level}'",
        ))
    if entry.cpr_level and not vocabulary.accepts_cpr(entry.cpr_level):
        warnings.append(RowWarning(
            row_index=entry.row_index,
            warning_type=WarningType.UNKNOWN_CPR_LEVEL,
            message=f"Row {row}: Unknown CPR level '{entry.cpr_level}'",
        ))
    return warnings
