from __future__ import annotations

import logging
import time
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from ..config.loader import local_today, resolve_issue_date
from ..excel.reader import (
    SUPPORTED_SUFFIXES,
    RosterFileError,
    missing_required_columns,
    read_roster_file,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import IntakeConfig
from ..models.processing_result import FileStat, FileStatus, IntakeResult
from ..processing.aggregator import process_roster_data
from .export import write_batch_json
from .progress import ProgressTracker
from .submission import SubmissionError, submit_batch

"""Service orchestration for a roster intake run.

For every roster file in the source directory:
read -> process_roster_data -> error log -> (optional) submission.

Each file is independent. A file with any row error is rejected as a whole
(no partial submit); a file that cannot be read or submitted is marked failed
and the run continues with the next file. With a DB cursor each submission
runs in its own transaction.
"""

__all__ = [
    "ProcessingError",
    "scan_roster_files",
    "process_file",
    "process_all",
]

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal orchestration error (nothing could be processed)."""


def scan_roster_files(directory: Path) -> list[Path]:
    """List roster files (.xlsx / .xls / .csv) in directory, non-recursive, by name.

    Raises:
        ProcessingError: directory missing, not a directory or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        files = [
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES and not p.name.startswith("~$")
        ]
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e
    return sorted(files, key=lambda p: p.name)


def _rollback(cursor: Any, file_name: str, error_log: ErrorLogBuffer) -> None:
    try:
        cursor.execute("ROLLBACK")
    except Exception as e:
        # 元のエラーを上書きしない
        error_log.record_file_error(file_name, "TRANSACTION_ROLLBACK_ERROR", str(e))


def process_file(
    path: Path,
    config: IntakeConfig,
    cursor: Any = None,
    error_log: ErrorLogBuffer | None = None,
    *,
    issue_date: str | None = None,
    json_out: Path | None = None,
    run_date: date | None = None,
) -> FileStat:
    """Validate one roster file and submit it when fully valid.

    Args:
        path: Roster file
        config: Run configuration
        cursor: psycopg2 cursor; None = validation only
        error_log: Buffer receiving row / file records (a private one when None)
        issue_date: Default issue date (resolved from config when None)
        json_out: Directory receiving ``<file name>.json`` with the processed batch
        run_date: Day used in the default batch name (today in config.timezone when None)
    """
    error_log = error_log if error_log is not None else ErrorLogBuffer(Path(config.logs_directory))
    issue_date = issue_date or resolve_issue_date(config)
    started = time.perf_counter()
    name = path.name

    def elapsed() -> float:
        return time.perf_counter() - started

    try:
        sheet = read_roster_file(path, keep_na_strings=config.keep_na_strings)
    except RosterFileError as e:
        logger.error("file=%s read failed: %s", name, e)
        error_log.record_file_error(name, "FILE_READ_ERROR", str(e))
        return FileStat(file_name=name, status=FileStatus.FAILED, elapsed_seconds=elapsed(), error=str(e))

    missing = missing_required_columns(sheet.columns)
    if missing:
        logger.warning("file=%s missing columns %s", name, missing)
        error_log.record_file_error(name, "MISSING_COLUMNS", f"missing columns: {missing}")

    batch = process_roster_data(
        sheet.rows,
        config.default_course_id,
        issue_date,
        policy=config.policy,
        vocabulary=config.vocabulary,
        validity_years=config.validity_years or None,
    )
    error_log.record_batch(name, batch)
    for message in batch.error_messages:
        logger.warning("file=%s %s", name, message)
    logger.info(
        "file=%s rows=%d error_rows=%d warnings=%d",
        name,
        batch.total_count,
        batch.error_count,
        batch.warning_count,
    )

    def stat(status: FileStatus, submitted: int = 0, error: str | None = None) -> FileStat:
        return FileStat(
            file_name=name,
            status=status,
            total_rows=batch.total_count,
            error_rows=batch.error_count,
            warning_count=batch.warning_count,
            submitted_rows=submitted,
            elapsed_seconds=elapsed(),
            error=error,
        )

    if json_out is not None:
        # 拡張子込み: class.csv と class.xlsx を別ファイルに
        try:
            write_batch_json(batch, json_out / f"{name}.json")
        except OSError as e:
            logger.error("file=%s json export failed: %s", name, e)
            error_log.record_file_error(name, "JSON_EXPORT_ERROR", str(e))
            return stat(FileStatus.FAILED, error=str(e))

    if batch.error_count > 0:
        return stat(FileStatus.REJECTED)
    if cursor is None or batch.total_count == 0:
        return stat(FileStatus.ACCEPTED)

    try:
        cursor.execute("BEGIN")
        result = submit_batch(
            cursor,
            batch,
            config.submission,
            source_name=name,
            today=run_date or local_today(config),
        )
        cursor.execute("COMMIT")
    except SubmissionError as e:
        _rollback(cursor, name, error_log)
        logger.error("file=%s submission failed: %s", name, e)
        error_log.record_file_error(name, "SUBMISSION_ERROR", str(e))
        return stat(FileStatus.FAILED, error=str(e))
    except Exception as e:
        _rollback(cursor, name, error_log)
        logger.error("file=%s transaction failed: %s", name, e)
        error_log.record_file_error(name, "TRANSACTION_ERROR", str(e))
        return stat(FileStatus.FAILED, error=str(e))

    logger.info("file=%s submitted rows=%d batch=%s", name, result.submitted_rows, result.batch_name)
    return stat(FileStatus.ACCEPTED, submitted=result.submitted_rows)


def _flush_error_log(error_log: ErrorLogBuffer) -> None:
    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning("could not write error log: %s", e)
        return
    if log_path is not None:
        logger.info("error log written: %s", log_path)


def process_all(
    config: IntakeConfig,
    cursor: Any = None,
    *,
    json_out: Path | None = None,
) -> IntakeResult:
    """Process every roster file in the configured source directory.

    Raises:
        ProcessingError: the source directory cannot be scanned
    """
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer(Path(config.logs_directory))
    issue_date = resolve_issue_date(config)
    run_date = local_today(config)

    file_paths = scan_roster_files(Path(config.source_directory))
    stats: list[FileStat] = []

    try:
        with ProgressTracker(len(file_paths)) as progress:
            for path in file_paths:
                progress.start_file(path)
                file_stat = process_file(
                    path,
                    config,
                    cursor,
                    error_log,
                    issue_date=issue_date,
                    json_out=json_out,
                    run_date=run_date,
                )
                stats.append(file_stat)
                progress.finish_file(status=file_stat.status.value, rows=file_stat.total_rows)
    finally:
        # 途中で例外が出ても記録済みの行は残す
        _flush_error_log(error_log)

    end_time = datetime.now(UTC)
    return IntakeResult(
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=tuple(stats),
    )
