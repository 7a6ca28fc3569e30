"""Domain models for the roster intake tool.

This package contains the dataclasses that flow through the roster pipeline
(entries, batches, warnings), the run configuration and the result models.
"""

from .config_models import DatabaseConfig, IntakeConfig, SubmissionConfig, ValidationPolicy
from .error_record import ErrorRecord
from .processed_batch import ProcessedBatch
from .processing_result import FileStat, FileStatus, IntakeResult
from .roster_entry import AssessmentStatus, RosterEntry
from .row_warning import RowWarning, WarningType

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "IntakeConfig",
    "SubmissionConfig",
    "ValidationPolicy",
    # Pipeline models
    "AssessmentStatus",
    "RosterEntry",
    "RowWarning",
    "WarningType",
    "ProcessedBatch",
    # Run results
    "ErrorRecord",
    "FileStat",
    "FileStatus",
    "IntakeResult",
]
