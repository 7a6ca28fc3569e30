from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from ..config.vocabulary import REQUIRED_COLUMNS

"""Roster file reader (binary -> rows decoder).

Reads an uploaded roster (.xlsx / .xls / .csv) completely into memory with
pandas and hands the pipeline a plain list of records. The first row is the
header row; rows where every cell is blank are skipped; NaN becomes None.
"""

__all__ = [
    "SUPPORTED_SUFFIXES",
    "RosterFileError",
    "RosterSheet",
    "read_roster_file",
    "frame_to_records",
    "missing_required_columns",
]

SUPPORTED_SUFFIXES = (".xlsx", ".xls", ".csv")
CSV_ENCODINGS = ("utf-8-sig", "latin-1")


class RosterFileError(Exception):
    """Raised when a roster file is missing, unsupported or undecodable."""


@dataclass
class RosterSheet:
    source: str  # ファイル名 (シート指定時は "file:sheet")
    columns: list[str]
    rows: list[dict[str, Any]]


def _na_options(keep_na_strings: Iterable[str] | None) -> dict[str, Any]:
    """Build pandas NA options excluding keep_na_strings from the default NA set.

    e.g. keep_na_strings=["NA"] keeps a Province cell of "NA" as text.
    """
    if not keep_na_strings:
        return {}
    import pandas._libs.parsers as parsers

    custom_na = parsers.STR_NA_VALUES - set(keep_na_strings)
    return {"keep_default_na": False, "na_values": list(custom_na)}


def _read_csv(path: Path, na_opts: dict[str, Any]) -> pd.DataFrame:
    last_error: Exception | None = None
    for encoding in CSV_ENCODINGS:
        try:
            return pd.read_csv(path, encoding=encoding, dtype=object, **na_opts)
        except UnicodeDecodeError as e:
            last_error = e
            continue
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
    raise RosterFileError(f"could not decode {path.name}: {last_error}")


def frame_to_records(df: pd.DataFrame) -> tuple[list[str], list[dict[str, Any]]]:
    """Convert a header-applied DataFrame into (columns, records)."""
    columns = [str(c).strip() for c in df.columns]
    rows: list[dict[str, Any]] = []
    for raw in df.itertuples(index=False, name=None):
        values = [None if pd.isna(v) else v for v in raw]
        if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
            continue
        rows.append(dict(zip(columns, values, strict=False)))
    return columns, rows


def read_roster_file(
    path: Path,
    sheet_name: str | None = None,
    keep_na_strings: Iterable[str] | None = None,
) -> RosterSheet:
    """Read a roster file into header + records.

    Parameters
    ----------
    path: roster file (.xlsx / .xls / .csv)
    sheet_name: Excel sheet to read (None = first sheet). Ignored for CSV.
    keep_na_strings: strings pandas must not turn into NaN
    """
    if not path.exists():
        raise RosterFileError(f"roster file not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise RosterFileError(
            f"unsupported file type '{suffix}' for {path.name}; expected one of {SUPPORTED_SUFFIXES}"
        )

    na_opts = _na_options(keep_na_strings)
    source = path.name
    try:
        if suffix == ".csv":
            df = _read_csv(path, na_opts)
        else:
            target = 0 if sheet_name is None else sheet_name
            df = pd.read_excel(path, sheet_name=target, **na_opts)
            if sheet_name is not None:
                source = f"{path.name}:{sheet_name}"
    except RosterFileError:
        raise
    except Exception as e:
        raise RosterFileError(f"failed reading {path.name}: {e}") from e

    columns, rows = frame_to_records(df)
    return RosterSheet(source=source, columns=columns, rows=rows)


def missing_required_columns(columns: Iterable[str]) -> list[str]:
    return sorted(REQUIRED_COLUMNS - set(columns))
