from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .roster_entry import RosterEntry

"""ProcessedBatch: aggregated output of one roster processing invocation.

Owned exclusively by the caller for the duration of one upload session.
"""

__all__ = [
    "ProcessedBatch",
]


@dataclass(frozen=True)
class ProcessedBatch:
    entries: tuple[RosterEntry, ...]
    total_count: int
    error_count: int

    def __post_init__(self) -> None:
        if self.error_count > self.total_count:
            raise ValueError(
                f"error_count ({self.error_count}) exceeds total_count ({self.total_count})"
            )

    @property
    def warning_count(self) -> int:
        return sum(len(e.warnings) for e in self.entries)

    @property
    def valid_entries(self) -> tuple[RosterEntry, ...]:
        return tuple(e for e in self.entries if not e.has_error)

    @property
    def error_messages(self) -> list[str]:
        return [msg for e in self.entries for msg in e.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "processedData": [e.to_dict() for e in self.entries],
            "totalCount": self.total_count,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
        }
