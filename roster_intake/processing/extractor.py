from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from ..config.vocabulary import COLUMN_SYNONYMS
from ..models.roster_entry import RosterEntry
from ..models.row_warning import RowWarning, WarningType
from .status import resolve_status

"""Row extractor: raw spreadsheet records -> RosterEntry.

Each raw record is a mapping of column header -> scalar cell value, as produced
by any decoder (pandas, csv.DictReader, JSON). Column resolution uses the
ordered synonym table in ``config.vocabulary``; the first non-empty value wins.

Malformed cells never abort a row: they degrade to empty strings / None. The
only signals are RowWarning entries for an unparseable Length and for a
Pass/Fail text that is neither PASS nor FAIL.
"""

__all__ = [
    "cell_text",
    "resolve_field",
    "parse_length",
    "derive_expiry_date",
    "extract_entry",
    "extract_entries",
]


def cell_text(value: Any) -> str:
    """Render a loosely-typed cell as trimmed text ("" for blanks).

    Whole floats lose their ``.0`` (postal codes / phone numbers read as
    numbers) and dates render as YYYY-MM-DD.
    """
    if value is None:
        return ""
    # NaN / NaT は自身と等しくない
    try:
        if value != value:
            return ""
    except TypeError:
        # pd.NA は bool 評価できない
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return str(value)
    return str(value).strip()


def resolve_field(record: Mapping[str, Any], headers: Sequence[str]) -> str:
    for header in headers:
        text = cell_text(record.get(header))
        if text:
            return text
    return ""


def parse_length(value: Any) -> float | None:
    """Parse a course length in hours; None when blank, non-numeric or negative."""
    text = cell_text(value)
    if not text:
        return None
    try:
        hours = float(text)
    except ValueError:
        return None
    if not math.isfinite(hours) or hours < 0:
        return None
    return hours


def derive_expiry_date(issue_date: str | None, validity_years: int | None) -> str | None:
    """Return issue_date + validity_years (ISO) or None when not derivable."""
    if not issue_date or not validity_years:
        return None
    try:
        issued = date.fromisoformat(issue_date)
    except ValueError:
        return None
    try:
        expires = issued.replace(year=issued.year + validity_years)
    except ValueError:
        # 2/29 発行 -> 非閏年は 2/28
        expires = issued.replace(year=issued.year + validity_years, day=28)
    return expires.isoformat()


def extract_entry(
    record: Mapping[str, Any],
    row_index: int,
    default_course_id: str,
    default_issue_date: str | None,
    *,
    validity_years: int | None = None,
) -> RosterEntry:
    def field(name: str) -> str:
        return resolve_field(record, COLUMN_SYNONYMS[name])

    warnings: list[RowWarning] = []
    row_number = row_index + 1

    raw_length = field("length")
    length = parse_length(raw_length)
    if raw_length and length is None:
        warnings.append(RowWarning(
            row_index=row_index,
            warning_type=WarningType.LENGTH_UNPARSEABLE,
            message=f"Row {row_number}: Length '{raw_length}' is not a non-negative number; ignored",
        ))

    raw_status = field("assessment_status")
    status = resolve_status(raw_status)
    if raw_status and status is None:
        warnings.append(RowWarning(
            row_index=row_index,
            warning_type=WarningType.STATUS_UNRECOGNIZED,
            message=f"Row {row_number}: Pass/Fail value '{raw_status}' is neither PASS nor FAIL",
        ))

    issue_date = field("issue_date") or default_issue_date
    expiry_date = field("expiry_date") or derive_expiry_date(issue_date, validity_years)

    return RosterEntry(
        row_index=row_index,
        student_name=field("student_name"),
        email=field("email"),
        phone=field("phone"),
        company=field("company"),
        city=field("city"),
        province=field("province"),
        postal_code=field("postal_code"),
        first_aid_level=field("first_aid_level"),
        cpr_level=field("cpr_level"),
        instructor_name=field("instructor_name"),
        length=length,
        assessment_status=status,
        course_id=default_course_id,
        issue_date=issue_date,
        expiry_date=expiry_date,
        warnings=tuple(warnings),
    )


def extract_entries(
    data: Sequence[Mapping[str, Any]],
    default_course_id: str,
    default_issue_date: str | None,
    *,
    validity_years: int | None = None,
) -> list[RosterEntry]:
    """Produce one RosterEntry per input record, preserving input order."""
    return [
        extract_entry(
            record,
            idx,
            default_course_id,
            default_issue_date,
            validity_years=validity_years,
        )
        for idx, record in enumerate(data)
    ]
