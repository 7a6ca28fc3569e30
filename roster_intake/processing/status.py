from __future__ import annotations

from typing import Any

from ..models.roster_entry import AssessmentStatus

"""Pass/Fail normalization.

Best effort: anything other than PASS / FAIL (case-insensitive, trimmed)
resolves to None instead of raising. Whether that should flag the row is a
validation policy decision, not this module's.
"""

__all__ = [
    "resolve_status",
]

_STATUS_BY_TEXT = {s.value: s for s in AssessmentStatus}


def resolve_status(value: Any) -> AssessmentStatus | None:
    if value is None:
        return None
    text = str(value).strip().upper()
    return _STATUS_BY_TEXT.get(text)
