# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from roster_intake.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
default_course_id: C1
default_issue_date: "2024-01-01"
timezone: UTC
validity_years: 3
logs_directory: ./logs
policy:
  flag_unparseable_length: false
  flag_unrecognized_status: false
  detect_duplicates: false
  check_vocabulary: true
submission:
  table: certificate_requests
  page_size: 100
  batch_name_prefix: roster
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "intake.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def make_roster_xlsx() -> Callable[[Path, list[dict[str, object]]], Path]:
    """Write roster records (header = dict keys) to an .xlsx file."""
    def _make(path: Path, rows: list[dict[str, object]], columns: list[str] | None = None) -> Path:
        df = pd.DataFrame(rows, columns=columns)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Roster", index=False)
        return path
    return _make


@pytest.fixture()
def valid_rows() -> list[dict[str, object]]:
    return [
        {
            "Student Name": "Jane Doe",
            "Email": "jane@example.com",
            "Phone": "555-0100",
            "Company": "Acme",
            "City": "Toronto",
            "Province": "ON",
            "Postal Code": "M5V 2T6",
            "First Aid Level": "Standard First Aid",
            "CPR Level": "CPR C",
            "Instructor": "Pat Lee",
            "Length": 16,
            "Pass/Fail": "Pass",
        },
        {
            "Student Name": "John Roe",
            "Email": "john@example.com",
            "Phone": "555-0101",
            "Company": "Acme",
            "City": "Ottawa",
            "Province": "ON",
            "Postal Code": "K1A 0B1",
            "First Aid Level": "Emergency First Aid",
            "CPR Level": "CPR A",
            "Instructor": "Pat Lee",
            "Length": 8,
            "Pass/Fail": "FAIL",
        },
    ]


@pytest.fixture()
def invalid_rows() -> list[dict[str, object]]:
    return [
        {"Student Name": "", "Email": "bad"},
        {"Student Name": "Jane Doe", "Email": "jane@x.com", "Pass/Fail": "pass"},
    ]
