from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType

"""Controlled vocabularies for roster uploads.

All values are load-time constants (frozensets / tuples / read-only mappings).
Callers that need different level names build their own ``Vocabulary`` via the
config loader instead of mutating anything here.
"""

__all__ = [
    "REQUIRED_COLUMNS",
    "OPTIONAL_COLUMNS",
    "RECOGNIZED_COLUMNS",
    "FIRST_AID_LEVELS",
    "CPR_LEVELS",
    "COLUMN_SYNONYMS",
    "Vocabulary",
    "DEFAULT_VOCABULARY",
]

REQUIRED_COLUMNS: frozenset[str] = frozenset({"Student Name", "Email"})

OPTIONAL_COLUMNS: frozenset[str] = frozenset({
    "Phone",
    "Company",
    "Organization",
    "City",
    "Province",
    "State",
    "Postal Code",
    "Zip Code",
    "ZIP",
    "First Aid Level",
    "CPR Level",
    "Instructor",
    "Length",
    "Pass/Fail",
    "Issue Date",
    "Expiry Date",
})

RECOGNIZED_COLUMNS: frozenset[str] = REQUIRED_COLUMNS | OPTIONAL_COLUMNS

FIRST_AID_LEVELS: frozenset[str] = frozenset({
    "Standard First Aid",
    "Emergency First Aid",
    "Basic First Aid",
    "Wilderness First Aid",
    "Mental Health First Aid",
    "Occupational First Aid Level 1",
    "Occupational First Aid Level 2",
    "Occupational First Aid Level 3",
    "Emergency Medical Responder",
})

CPR_LEVELS: frozenset[str] = frozenset({
    "CPR A",
    "CPR C",
    "CPR Level A",
    "CPR Level C",
    "CPR BLS",
    "CPR/AED",
    "CPR HCP",
})

# 対象フィールド -> 受理ヘッダ (優先順)
COLUMN_SYNONYMS: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    "student_name": ("Student Name",),
    "email": ("Email",),
    "phone": ("Phone",),
    "company": ("Company", "Organization"),
    "city": ("City",),
    "province": ("Province", "State"),
    "postal_code": ("Postal Code", "Zip Code", "ZIP"),
    "first_aid_level": ("First Aid Level",),
    "cpr_level": ("CPR Level",),
    "instructor_name": ("Instructor",),
    "length": ("Length",),
    "assessment_status": ("Pass/Fail",),
    "issue_date": ("Issue Date",),
    "expiry_date": ("Expiry Date",),
})


def _fold(values: frozenset[str]) -> frozenset[str]:
    return frozenset(v.strip().casefold() for v in values)


@dataclass(frozen=True)
class Vocabulary:
    """Accepted certification level names used for soft matching."""
    first_aid_levels: frozenset[str] = FIRST_AID_LEVELS
    cpr_levels: frozenset[str] = CPR_LEVELS
    _folded_first_aid: frozenset[str] = field(init=False, repr=False, compare=False)
    _folded_cpr: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # 照合用の正規化集合は生成時に一度だけ作る
        object.__setattr__(self, "_folded_first_aid", _fold(self.first_aid_levels))
        object.__setattr__(self, "_folded_cpr", _fold(self.cpr_levels))

    def accepts_first_aid(self, level: str) -> bool:
        return level.strip().casefold() in self._folded_first_aid

    def accepts_cpr(self, level: str) -> bool:
        return level.strip().casefold() in self._folded_cpr


DEFAULT_VOCABULARY = Vocabulary()
