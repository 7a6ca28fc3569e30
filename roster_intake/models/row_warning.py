from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""RowWarning model: non-fatal, row-scoped data quality signals.

Warnings never flip ``RosterEntry.has_error``. A validation policy may promote
some warning types to errors (see processing.validator).
"""

__all__ = [
    "WarningType",
    "RowWarning",
]


class WarningType(Enum):
    LENGTH_UNPARSEABLE = "LENGTH_UNPARSEABLE"
    STATUS_UNRECOGNIZED = "STATUS_UNRECOGNIZED"
    UNKNOWN_FIRST_AID_LEVEL = "UNKNOWN_FIRST_AID_LEVEL"
    UNKNOWN_CPR_LEVEL = "UNKNOWN_CPR_LEVEL"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    DUPLICATE_NAME = "DUPLICATE_NAME"


@dataclass(frozen=True)
class RowWarning:
    row_index: int  # 0-based (RosterEntry.row_index と同じ)
    warning_type: WarningType
    message: str

    @property
    def row_number(self) -> int:
        return self.row_index + 1

    def to_dict(self) -> dict[str, object]:
        return {
            "rowIndex": self.row_index,
            "type": self.warning_type.value,
            "message": self.message,
        }
