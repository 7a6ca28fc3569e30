from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

from ..db.batch_insert import BatchInsertError, BatchMetrics, batch_insert
from ..models.config_models import SubmissionConfig
from ..models.processed_batch import ProcessedBatch
from ..models.roster_entry import RosterEntry

"""Downstream submission of a validated batch as certificate requests.

All-or-nothing: a batch with any row error is refused before touching the
database. The batch_id is the caller-supplied handle for recognizing a
resubmitted batch; this module does not deduplicate on it.
"""

__all__ = [
    "CERTIFICATE_REQUEST_COLUMNS",
    "SubmissionError",
    "SubmissionResult",
    "default_batch_name",
    "build_certificate_requests",
    "submit_batch",
]

logger = logging.getLogger(__name__)

CERTIFICATE_REQUEST_COLUMNS: tuple[str, ...] = (
    "recipient_name",
    "email",
    "phone",
    "company",
    "city",
    "province",
    "postal_code",
    "course_id",
    "first_aid_level",
    "cpr_level",
    "length",
    "instructor_name",
    "assessment_status",
    "issue_date",
    "expiry_date",
    "status",
    "batch_id",
    "batch_name",
)

PENDING_STATUS = "PENDING"


class SubmissionError(Exception):
    pass


@dataclass(frozen=True)
class SubmissionResult:
    batch_id: str
    batch_name: str
    submitted_rows: int
    request_ids: list[Any] | None = None


def default_batch_name(prefix: str, source_name: str, today: date) -> str:
    stem = source_name.rsplit(".", 1)[0] if "." in source_name else source_name
    day = today.isoformat()
    return f"{prefix}-{stem}-{day}"


def _nullable(value: str | None) -> str | None:
    # 空文字は NULL として保存
    return value or None


def _request_row(entry: RosterEntry, batch_id: str, batch_name: str) -> dict[str, Any]:
    return {
        "recipient_name": entry.student_name.strip(),
        "email": _nullable(entry.email),
        "phone": _nullable(entry.phone),
        "company": _nullable(entry.company),
        "city": _nullable(entry.city),
        "province": _nullable(entry.province),
        "postal_code": _nullable(entry.postal_code),
        "course_id": _nullable(entry.course_id),
        "first_aid_level": _nullable(entry.first_aid_level),
        "cpr_level": _nullable(entry.cpr_level),
        "length": entry.length,
        "instructor_name": _nullable(entry.instructor_name),
        "assessment_status": (
            entry.assessment_status.value if entry.assessment_status is not None else None
        ),
        "issue_date": _nullable(entry.issue_date),
        "expiry_date": _nullable(entry.expiry_date),
        "status": PENDING_STATUS,
        "batch_id": batch_id,
        "batch_name": batch_name,
    }


def build_certificate_requests(
    batch: ProcessedBatch, *, batch_id: str, batch_name: str
) -> list[dict[str, Any]]:
    return [_request_row(e, batch_id, batch_name) for e in batch.valid_entries]


def submit_batch(
    cursor: Any,
    batch: ProcessedBatch,
    config: SubmissionConfig,
    *,
    source_name: str,
    today: date,
    batch_id: str | None = None,
    batch_name: str | None = None,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> SubmissionResult:
    """Insert every entry of a fully valid batch into the requests table.

    ``today`` is the run date in the configured timezone; it names the batch
    when no batch_name is given.

    Raises:
        SubmissionError: the batch is empty, has row errors, or the insert failed
    """
    if batch.total_count == 0:
        raise SubmissionError(f"{source_name}: nothing to submit (empty roster)")
    if batch.error_count > 0:
        raise SubmissionError(
            f"{source_name}: {batch.error_count} of {batch.total_count} rows have errors; batch not submitted"
        )

    batch_id = batch_id or str(uuid.uuid4())
    batch_name = batch_name or default_batch_name(config.batch_name_prefix, source_name, today)
    requests = build_certificate_requests(batch, batch_id=batch_id, batch_name=batch_name)
    rows = [[req[c] for c in CERTIFICATE_REQUEST_COLUMNS] for req in requests]

    try:
        result = batch_insert(
            cursor,
            config.table,
            CERTIFICATE_REQUEST_COLUMNS,
            rows,
            returning="id",
            page_size=config.page_size,
            metrics_callback=metrics_callback,
        )
    except BatchInsertError as e:
        raise SubmissionError(f"{source_name}: insert into {config.table} failed: {e}") from e

    logger.debug(
        "submitted batch_id=%s batch_name=%s rows=%d table=%s",
        batch_id,
        batch_name,
        result.inserted_rows,
        config.table,
    )
    return SubmissionResult(
        batch_id=batch_id,
        batch_name=batch_name,
        submitted_rows=result.inserted_rows,
        request_ids=result.returned_ids,
    )
