from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import FILE_LEVEL_ROW, ErrorRecord
from ..models.processed_batch import ProcessedBatch

"""Error log buffering (JSON Lines).

Records are buffered in memory and appended on flush() to
``<logs_dir>/roster-errors-YYYYMMDD-HHMMSS.log`` (UTC, decided on first access).
The file is only created when there is something to write.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "DEFAULT_LOGS_DIR",
]

DEFAULT_LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Serial use only."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._logs_dir = logs_dir or DEFAULT_LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"roster-errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> tuple[ErrorRecord, ...]:
        return tuple(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def record_file_error(self, file: str, error_type: str, message: str) -> None:
        self.append(ErrorRecord.create(file=file, row=FILE_LEVEL_ROW, error_type=error_type, message=message))

    def record_batch(self, file: str, batch: ProcessedBatch) -> None:
        """Append one record per row error and per row warning."""
        for entry in batch.entries:
            for message in entry.errors:
                self.append(ErrorRecord.create(
                    file=file,
                    row=entry.row_number,
                    error_type="ROW_VALIDATION_ERROR",
                    message=message,
                ))
            for warning in entry.warnings:
                self.append(ErrorRecord.create(
                    file=file,
                    row=warning.row_number,
                    error_type=f"ROW_WARNING_{warning.warning_type.value}",
                    message=warning.message,
                ))

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path or None when empty."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
