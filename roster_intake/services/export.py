from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from ..models.processed_batch import ProcessedBatch

"""Export of a processed batch.

- JSON in the upload output contract shape (processedData / totalCount / errorCount)
- Batch-upload CSV using the recognized roster headers, so the file can be
  corrected and uploaded again
"""

__all__ = [
    "BATCH_UPLOAD_HEADERS",
    "write_batch_json",
    "batch_upload_frame",
    "write_batch_upload_csv",
]

BATCH_UPLOAD_HEADERS: tuple[str, ...] = (
    "Student Name",
    "Email",
    "Phone",
    "Company",
    "City",
    "Province",
    "Postal Code",
    "First Aid Level",
    "CPR Level",
    "Instructor",
    "Length",
    "Pass/Fail",
    "Issue Date",
    "Expiry Date",
)


def write_batch_json(batch: ProcessedBatch, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(batch.to_dict(), ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    return path


def batch_upload_frame(batch: ProcessedBatch, *, include_errors: bool = False) -> pd.DataFrame:
    """Build the batch-upload table; optionally append an Errors column."""
    records = []
    for e in batch.entries:
        row = {
            "Student Name": e.student_name,
            "Email": e.email,
            "Phone": e.phone,
            "Company": e.company,
            "City": e.city,
            "Province": e.province,
            "Postal Code": e.postal_code,
            "First Aid Level": e.first_aid_level,
            "CPR Level": e.cpr_level,
            "Instructor": e.instructor_name,
            "Length": e.length,
            "Pass/Fail": e.assessment_status.value if e.assessment_status is not None else "",
            "Issue Date": e.issue_date or "",
            "Expiry Date": e.expiry_date or "",
        }
        if include_errors:
            row["Errors"] = "; ".join(e.errors)
        records.append(row)
    columns = list(BATCH_UPLOAD_HEADERS) + (["Errors"] if include_errors else [])
    return pd.DataFrame(records, columns=columns)


def write_batch_upload_csv(batch: ProcessedBatch, path: Path, *, include_errors: bool = False) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    batch_upload_frame(batch, include_errors=include_errors).to_csv(path, index=False)
    return path
