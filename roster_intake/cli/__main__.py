from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..config.vocabulary import RECOGNIZED_COLUMNS
from ..excel.reader import RosterFileError, read_roster_file
from ..logging.init import enable_debug, log_summary, setup_logging
from ..models.config_models import IntakeConfig
from ..services.orchestrator import ProcessingError, process_all, scan_roster_files
from ..services.summary import render_summary_line

"""CLI entrypoint: ``roster-intake`` / ``python -m roster_intake.cli``.

Flow:
- Load .env (DB parameters), then the YAML config
- Validate every roster file in the source directory
- Submit fully valid rosters when a DB connection is available
- Print the SUMMARY line and exit with 0 / 2 / 1
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

logger = logging.getLogger(__name__)


def _resolve_dsn(cfg: IntakeConfig) -> str:
    """Connection string; environment (after .env) wins over config/database.

    1. DATABASE_URL / PGDSN
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. database section of the config file
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: IntakeConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a psycopg2 cursor; the orchestrator issues BEGIN / COMMIT per file."""
    conn = psycopg2.connect(_resolve_dsn(cfg))
    conn.autocommit = True  # BEGIN/COMMIT は orchestrator が明示実行
    try:
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="roster-intake",
        description="Validate roster uploads and submit them as certificate requests",
    )
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data", action="store_true", help="Print roster headers & first rows then exit"
    )
    p.add_argument("--dry-run", action="store_true", help="Validate only; never connect to the DB")
    p.add_argument("--json-out", type=Path, default=None, help="Write one processed-batch JSON per file here")
    p.add_argument("--course-id", default=None, help="Override default_course_id")
    p.add_argument("--issue-date", default=None, help="Override default_issue_date (YYYY-MM-DD)")
    return p.parse_args(argv)


def _apply_overrides(cfg: IntakeConfig, args: argparse.Namespace) -> IntakeConfig:
    changes: dict[str, Any] = {}
    if args.course_id:
        changes["default_course_id"] = args.course_id
    if args.issue_date:
        try:
            date.fromisoformat(args.issue_date)
        except ValueError as e:
            raise ConfigError(f"invalid --issue-date: {args.issue_date}") from e
        changes["default_issue_date"] = args.issue_date
    return replace(cfg, **changes) if changes else cfg


def _inspect_data(cfg: IntakeConfig) -> int:
    try:
        files = scan_roster_files(Path(cfg.source_directory))
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no roster files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            sheet = read_roster_file(f, keep_na_strings=cfg.keep_na_strings)
        except RosterFileError as e:
            print(f"  read_error: {e}")
            continue
        print(f"  cols={sheet.columns}")
        unknown = [c for c in sheet.columns if c not in RECOGNIZED_COLUMNS]
        if unknown:
            print(f"  unrecognized_cols={unknown}")
        sample = [
            {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in r.items()}
            for r in sheet.rows[:3]
        ]
        print("  sample_rows=", json.dumps(sample, ensure_ascii=False, default=str))
    return EXIT_SUCCESS_ALL


def _run(cfg: IntakeConfig, args: argparse.Namespace):
    """Run with a live cursor when possible, otherwise validation only."""
    if args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled -> validation only")
        return "validate", process_all(cfg, cursor=None, json_out=args.json_out)
    try:
        with _db_connection(cfg) as cur:
            return "live", process_all(cfg, cursor=cur, json_out=args.json_out)
    except psycopg2.Error as e:
        logger.info(f"DB connection failed -> validation only: {e}")
        return "validate", process_all(cfg, cursor=None, json_out=args.json_out)


def main(argv: list[str] | None = None) -> int:
    app_logger = setup_logging()

    # [] が渡された場合に sys.argv を読まない (pytest 引数混入防止)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        enable_debug()

    _load_env_file(Path(".env"), override=True)

    try:
        cfg = _apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        app_logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.exists():
        app_logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    app_logger.info(f"Processing rosters from: {directory}")

    if args.inspect_data:
        return _inspect_data(cfg)

    try:
        mode, result = _run(cfg, args)
    except ProcessingError as e:
        app_logger.error(f"processing: {e}")
        return EXIT_FATAL

    app_logger.info(f"mode={mode} submitted_rows={result.submitted_rows}")
    # log_summary が "SUMMARY " を付与する
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))

    if result.rejected_files or result.failed_files:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
