from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..config.vocabulary import Vocabulary
from ..models.config_models import ValidationPolicy
from ..models.processed_batch import ProcessedBatch
from ..models.roster_entry import RosterEntry
from ..models.row_warning import RowWarning, WarningType
from .extractor import extract_entries
from .validator import check_vocabulary, validate_entry

"""Batch aggregation and the end-to-end roster processing entry point.

process_roster_data runs the one-way transform
RAW_INPUT -> NORMALIZED -> VALIDATED -> AGGREGATED. There is no I/O and no
shared state; each call allocates its own entries and batch.
"""

__all__ = [
    "aggregate",
    "find_duplicates",
    "process_roster_data",
]

logger = logging.getLogger(__name__)


def aggregate(entries: Iterable[RosterEntry]) -> ProcessedBatch:
    """Count entries and entries with errors in a single pass."""
    collected: list[RosterEntry] = []
    error_count = 0
    for entry in entries:
        collected.append(entry)
        if entry.has_error:
            error_count += 1
    return ProcessedBatch(
        entries=tuple(collected),
        total_count=len(collected),
        error_count=error_count,
    )


def find_duplicates(entries: Sequence[RosterEntry]) -> list[RowWarning]:
    """Flag later rows repeating an earlier email (case-insensitive) or name.

    Duplicates are accepted; this only reports them.
    """
    seen_emails: dict[str, int] = {}
    seen_names: dict[str, int] = {}
    warnings: list[RowWarning] = []
    for entry in entries:
        email_key = entry.email.strip().casefold()
        if email_key:
            first = seen_emails.setdefault(email_key, entry.row_index)
            if first != entry.row_index:
                warnings.append(RowWarning(
                    row_index=entry.row_index,
                    warning_type=WarningType.DUPLICATE_EMAIL,
                    message=f"Row {entry.row_number}: Email '{entry.email}' also appears in row {first + 1}",
                ))
        name_key = " ".join(entry.student_name.split()).casefold()
        if name_key:
            first = seen_names.setdefault(name_key, entry.row_index)
            if first != entry.row_index:
                warnings.append(RowWarning(
                    row_index=entry.row_index,
                    warning_type=WarningType.DUPLICATE_NAME,
                    message=f"Row {entry.row_number}: Student '{entry.student_name}' also appears in row {first + 1}",
                ))
    return warnings


def _check_input_shape(data: Any) -> None:
    if not isinstance(data, (list, tuple)):
        raise TypeError(f"roster data must be a list of records, got {type(data).__name__}")
    for idx, record in enumerate(data):
        if not isinstance(record, Mapping):
            raise TypeError(
                f"roster record at index {idx} must be a mapping, got {type(record).__name__}"
            )


def process_roster_data(
    data: Sequence[Mapping[str, Any]],
    default_course_id: str,
    default_issue_date: str | None,
    *,
    policy: ValidationPolicy | None = None,
    vocabulary: Vocabulary | None = None,
    validity_years: int | None = None,
) -> ProcessedBatch:
    """Normalize, validate and aggregate one uploaded roster.

    Args:
        data: One mapping (column header -> cell) per spreadsheet row
        default_course_id: Course id stamped on every entry
        default_issue_date: Issue date used when a row has no Issue Date cell
        policy: Validation switches (lenient defaults when None)
        vocabulary: Level names for soft matching (built-in set when None)
        validity_years: When set, derive a missing expiry date from the issue date

    Returns:
        ProcessedBatch with entries in input order

    Raises:
        TypeError: data is not a list/tuple of mappings
    """
    _check_input_shape(data)
    policy = policy or ValidationPolicy()

    entries = extract_entries(
        data, default_course_id, default_issue_date, validity_years=validity_years
    )

    if policy.check_vocabulary:
        entries = [e.with_warnings(check_vocabulary(e, vocabulary)) for e in entries]

    if policy.detect_duplicates:
        by_row: dict[int, list[RowWarning]] = {}
        for w in find_duplicates(entries):
            by_row.setdefault(w.row_index, []).append(w)
        entries = [e.with_warnings(by_row.get(e.row_index, [])) for e in entries]

    validated = [e.with_errors(validate_entry(e, policy)) for e in entries]
    batch = aggregate(validated)
    logger.debug(
        "processed roster total=%d errors=%d warnings=%d",
        batch.total_count,
        batch.error_count,
        batch.warning_count,
    )
    return batch
