from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

"""Processing result models for a roster intake run.

FileStat carries per-file counts; IntakeResult aggregates a whole run and feeds
the SUMMARY line.
"""

__all__ = [
    "FileStatus",
    "FileStat",
    "IntakeResult",
]


class FileStatus(Enum):
    """Lifecycle of one roster file.

    State transitions: pending -> processing -> (accepted | rejected | failed)

    - ACCEPTED: every row valid (and submitted when a DB cursor was available)
    - REJECTED: readable, but at least one row carries validation errors
    - FAILED: the file could not be read or the submission failed
    """
    PENDING = "pending"
    PROCESSING = "processing"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class FileStat:
    file_name: str
    status: FileStatus
    total_rows: int = 0
    error_rows: int = 0
    warning_count: int = 0
    submitted_rows: int = 0
    elapsed_seconds: float = 0.0
    error: str | None = None  # 失敗理由 (failed のみ)


@dataclass(frozen=True)
class IntakeResult:
    """Aggregated results of one run across all roster files."""
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: tuple[FileStat, ...] = ()

    def _count(self, status: FileStatus) -> int:
        return sum(1 for s in self.file_stats if s.status is status)

    @property
    def total_files(self) -> int:
        return len(self.file_stats)

    @property
    def accepted_files(self) -> int:
        return self._count(FileStatus.ACCEPTED)

    @property
    def rejected_files(self) -> int:
        return self._count(FileStatus.REJECTED)

    @property
    def failed_files(self) -> int:
        return self._count(FileStatus.FAILED)

    @property
    def total_rows(self) -> int:
        return sum(s.total_rows for s in self.file_stats)

    @property
    def error_rows(self) -> int:
        return sum(s.error_rows for s in self.file_stats)

    @property
    def warning_count(self) -> int:
        return sum(s.warning_count for s in self.file_stats)

    @property
    def submitted_rows(self) -> int:
        return sum(s.submitted_rows for s in self.file_stats)
