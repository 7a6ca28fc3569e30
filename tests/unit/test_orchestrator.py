from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

import roster_intake.db.batch_insert as bi
from roster_intake.config.loader import load_config
from roster_intake.logging.error_log import ErrorLogBuffer
from roster_intake.models.processing_result import FileStatus
from roster_intake.services import orchestrator
from roster_intake.services.orchestrator import (
    ProcessingError,
    process_all,
    process_file,
    scan_roster_files,
)
from roster_intake.services.submission import SubmissionError


class RecordingCursor:
    def __init__(self, fail_on: str | None = None) -> None:
        self.statements: list[str] = []
        self.inserted: list[tuple[Any, ...]] = []
        self.fail_on = fail_on

    def execute(self, statement: str) -> None:
        if statement == self.fail_on:
            raise RuntimeError(f"{statement} failed")
        self.statements.append(statement)


@pytest.fixture()
def fake_execute_values(monkeypatch):
    def _fake(cursor, query, rows, page_size=100, fetch=False):
        cursor.inserted.extend(rows)
        return [(i,) for i in range(len(rows))] if fetch else None

    monkeypatch.setattr(bi, "execute_values", _fake)


@pytest.fixture()
def config(write_config: Path):
    return load_config(write_config)


def test_scan_roster_files(temp_workdir: Path):
    data = temp_workdir / "data"
    for name in ("b.xlsx", "a.csv", "c.XLS", "notes.txt", "~$b.xlsx"):
        (data / name).write_text("x", encoding="utf-8")
    (data / "sub.csv").mkdir()
    assert [p.name for p in scan_roster_files(data)] == ["a.csv", "b.xlsx", "c.XLS"]


def test_scan_roster_files_errors(temp_workdir: Path):
    with pytest.raises(ProcessingError):
        scan_roster_files(temp_workdir / "missing")
    f = temp_workdir / "file.csv"
    f.write_text("x", encoding="utf-8")
    with pytest.raises(ProcessingError):
        scan_roster_files(f)


def test_valid_file_without_cursor_is_accepted(temp_workdir, config, make_roster_xlsx, valid_rows):
    path = make_roster_xlsx(temp_workdir / "data" / "ok.xlsx", valid_rows)
    buf = ErrorLogBuffer(temp_workdir / "logs")
    stat = process_file(path, config, None, buf)
    assert stat.status is FileStatus.ACCEPTED
    assert stat.total_rows == 2
    assert stat.error_rows == 0
    assert stat.submitted_rows == 0
    assert len(buf) == 0


def test_invalid_rows_reject_file(temp_workdir, config, make_roster_xlsx, invalid_rows, fake_execute_values):
    path = make_roster_xlsx(temp_workdir / "data" / "bad.xlsx", invalid_rows)
    cur = RecordingCursor()
    buf = ErrorLogBuffer(temp_workdir / "logs")
    stat = process_file(path, config, cur, buf)
    assert stat.status is FileStatus.REJECTED
    assert stat.error_rows == 1
    assert cur.statements == []
    assert cur.inserted == []
    assert {r.error_type for r in buf.records} == {"ROW_VALIDATION_ERROR"}


def test_unreadable_file_fails(temp_workdir, config):
    path = temp_workdir / "data" / "broken.xlsx"
    path.write_bytes(b"garbage")
    buf = ErrorLogBuffer(temp_workdir / "logs")
    stat = process_file(path, config, None, buf)
    assert stat.status is FileStatus.FAILED
    assert stat.error
    assert buf.records[0].error_type == "FILE_READ_ERROR"
    assert buf.records[0].row == -1


def test_missing_required_columns_recorded(temp_workdir, config):
    path = temp_workdir / "data" / "names.csv"
    path.write_text("Student Name\nJane\n", encoding="utf-8")
    buf = ErrorLogBuffer(temp_workdir / "logs")
    stat = process_file(path, config, None, buf)
    # Email 列が無いだけなら行は有効
    assert stat.status is FileStatus.ACCEPTED
    assert buf.records[0].error_type == "MISSING_COLUMNS"
    assert "Email" in buf.records[0].message


def test_valid_file_is_submitted_in_transaction(temp_workdir, config, make_roster_xlsx, valid_rows, fake_execute_values):
    path = make_roster_xlsx(temp_workdir / "data" / "ok.xlsx", valid_rows)
    cur = RecordingCursor()
    stat = process_file(path, config, cur, ErrorLogBuffer(temp_workdir / "logs"))
    assert stat.status is FileStatus.ACCEPTED
    assert stat.submitted_rows == 2
    assert cur.statements == ["BEGIN", "COMMIT"]
    assert len(cur.inserted) == 2


def test_submission_error_rolls_back(temp_workdir, config, make_roster_xlsx, valid_rows, monkeypatch):
    def _refuse(*args, **kwargs):
        raise SubmissionError("ok.xlsx: insert into certificate_requests failed: boom")

    monkeypatch.setattr(orchestrator, "submit_batch", _refuse)
    path = make_roster_xlsx(temp_workdir / "data" / "ok.xlsx", valid_rows)
    cur = RecordingCursor()
    buf = ErrorLogBuffer(temp_workdir / "logs")
    stat = process_file(path, config, cur, buf)
    assert stat.status is FileStatus.FAILED
    assert cur.statements == ["BEGIN", "ROLLBACK"]
    assert buf.records[-1].error_type == "SUBMISSION_ERROR"


def test_commit_failure_rolls_back(temp_workdir, config, make_roster_xlsx, valid_rows, fake_execute_values):
    path = make_roster_xlsx(temp_workdir / "data" / "ok.xlsx", valid_rows)
    cur = RecordingCursor(fail_on="COMMIT")
    buf = ErrorLogBuffer(temp_workdir / "logs")
    stat = process_file(path, config, cur, buf)
    assert stat.status is FileStatus.FAILED
    assert cur.statements == ["BEGIN", "ROLLBACK"]
    assert buf.records[-1].error_type == "TRANSACTION_ERROR"


def test_json_out(temp_workdir, config, make_roster_xlsx, valid_rows):
    path = make_roster_xlsx(temp_workdir / "data" / "ok.xlsx", valid_rows)
    process_file(path, config, None, json_out=temp_workdir / "out")
    data = json.loads((temp_workdir / "out" / "ok.xlsx.json").read_text(encoding="utf-8"))
    assert data["totalCount"] == 2
    assert data["processedData"][0]["courseId"] == "C1"
    assert data["processedData"][0]["issueDate"] == "2024-01-01"
    assert data["processedData"][0]["expiryDate"] == "2027-01-01"


def test_process_all_mixed(temp_workdir, config, make_roster_xlsx, valid_rows, invalid_rows):
    data = temp_workdir / "data"
    make_roster_xlsx(data / "a_ok.xlsx", valid_rows)
    make_roster_xlsx(data / "b_bad.xlsx", invalid_rows)
    (data / "c_broken.xlsx").write_bytes(b"garbage")

    result = process_all(config)
    assert [s.file_name for s in result.file_stats] == ["a_ok.xlsx", "b_bad.xlsx", "c_broken.xlsx"]
    assert result.accepted_files == 1
    assert result.rejected_files == 1
    assert result.failed_files == 1
    assert result.total_rows == 4
    assert result.error_rows == 1
    assert result.elapsed_seconds >= 0

    logs = list((temp_workdir / "logs").glob("roster-errors-*.log"))
    assert len(logs) == 1


def test_process_all_missing_directory(temp_workdir, config):
    from dataclasses import replace

    with pytest.raises(ProcessingError):
        process_all(replace(config, source_directory=str(temp_workdir / "nope")))


def test_json_out_keeps_same_stem_files_apart(temp_workdir, config, make_roster_xlsx, valid_rows):
    data = temp_workdir / "data"
    (data / "class.csv").write_text("Student Name,Email\nAnn,ann@example.com\n", encoding="utf-8")
    make_roster_xlsx(data / "class.xlsx", valid_rows)
    out = temp_workdir / "out"

    result = process_all(config, json_out=out)
    assert result.total_files == 2
    assert sorted(p.name for p in out.iterdir()) == ["class.csv.json", "class.xlsx.json"]
    csv_batch = json.loads((out / "class.csv.json").read_text(encoding="utf-8"))
    xlsx_batch = json.loads((out / "class.xlsx.json").read_text(encoding="utf-8"))
    assert csv_batch["totalCount"] == 1
    assert xlsx_batch["totalCount"] == 2


def test_json_export_failure_is_isolated_per_file(temp_workdir, config, make_roster_xlsx, valid_rows, invalid_rows):
    data = temp_workdir / "data"
    make_roster_xlsx(data / "a.xlsx", valid_rows)
    make_roster_xlsx(data / "b.xlsx", invalid_rows)
    not_a_dir = temp_workdir / "export.txt"
    not_a_dir.write_text("occupied", encoding="utf-8")

    result = process_all(config, json_out=not_a_dir)
    assert [s.file_name for s in result.file_stats] == ["a.xlsx", "b.xlsx"]
    assert result.failed_files == 2
    assert all(s.error for s in result.file_stats)

    (log_file,) = list((temp_workdir / "logs").glob("roster-errors-*.log"))
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    export_errors = [r for r in records if r["error_type"] == "JSON_EXPORT_ERROR"]
    assert [r["file"] for r in export_errors] == ["a.xlsx", "b.xlsx"]
    assert any(r["error_type"] == "ROW_VALIDATION_ERROR" for r in records)


def test_json_export_failure_skips_submission(temp_workdir, config, make_roster_xlsx, valid_rows, fake_execute_values):
    path = make_roster_xlsx(temp_workdir / "data" / "ok.xlsx", valid_rows)
    not_a_dir = temp_workdir / "export.txt"
    not_a_dir.write_text("occupied", encoding="utf-8")
    cur = RecordingCursor()
    stat = process_file(path, config, cur, ErrorLogBuffer(temp_workdir / "logs"), json_out=not_a_dir)
    assert stat.status is FileStatus.FAILED
    assert cur.statements == []
    assert cur.inserted == []


def test_error_log_flushed_when_run_aborts(temp_workdir, config, make_roster_xlsx, invalid_rows, monkeypatch):
    data = temp_workdir / "data"
    make_roster_xlsx(data / "a.xlsx", invalid_rows)
    make_roster_xlsx(data / "b.xlsx", invalid_rows)
    real_process_file = orchestrator.process_file

    def _second_file_explodes(path, *args, **kwargs):
        if path.name == "b.xlsx":
            raise RuntimeError("unexpected")
        return real_process_file(path, *args, **kwargs)

    monkeypatch.setattr(orchestrator, "process_file", _second_file_explodes)
    with pytest.raises(RuntimeError):
        process_all(config)
    (log_file,) = list((temp_workdir / "logs").glob("roster-errors-*.log"))
    assert '"file": "a.xlsx"' in log_file.read_text(encoding="utf-8")


def test_batch_name_uses_run_date(temp_workdir, config, make_roster_xlsx, valid_rows, fake_execute_values):
    from datetime import date

    path = make_roster_xlsx(temp_workdir / "data" / "ok.xlsx", valid_rows)
    cur = RecordingCursor()
    process_file(path, config, cur, ErrorLogBuffer(temp_workdir / "logs"), run_date=date(2024, 12, 31))
    # batch_name は最終列
    assert {row[-1] for row in cur.inserted} == {"roster-ok-2024-12-31"}
