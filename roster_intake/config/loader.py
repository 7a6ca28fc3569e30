from __future__ import annotations

import json
from datetime import date, datetime, timezone, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DatabaseConfig,
    IntakeConfig,
    SubmissionConfig,
    ValidationPolicy,
)
from .vocabulary import CPR_LEVELS, FIRST_AID_LEVELS, Vocabulary

"""Config loader.

Responsibilities:
- Load YAML config (default config/intake.yml)
- Validate against the packaged JSON schema (unknown keys rejected)
- Apply defaults and build the frozen IntakeConfig
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ConfigError",
    "load_config",
    "get_tzinfo",
    "local_today",
    "resolve_issue_date",
]

DEFAULT_CONFIG_PATH = Path("config/intake.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _coerce_scalars(data: dict[str, Any]) -> dict[str, Any]:
    """Undo YAML implicit typing for keys that are strings by contract.

    An unquoted ``2024-01-01`` loads as a date and ``101`` as an int.
    """
    out = dict(data)
    issue = out.get("default_issue_date")
    if isinstance(issue, (date, datetime)):
        out["default_issue_date"] = issue.isoformat()[:10]
    course = out.get("default_course_id")
    if isinstance(course, int) and not isinstance(course, bool):
        out["default_course_id"] = str(course)
    return out


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not valid JSON, or the config data
            fails validation (missing required keys, wrong types, extra keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> IntakeConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    data = _coerce_scalars(data)
    _validate_config_schema(data)

    tz = data.get("timezone", "UTC")
    try:
        get_tzinfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone: {tz}") from e

    issue = data.get("default_issue_date")
    if issue is not None:
        try:
            date.fromisoformat(issue)
        except ValueError as e:
            raise ConfigError(f"invalid default_issue_date: {issue}") from e

    policy_raw = data.get("policy", {})
    vocab_raw = data.get("vocabulary", {})
    sub_raw = data.get("submission", {})
    db_raw = data.get("database", {})

    return IntakeConfig(
        source_directory=data["source_directory"],
        default_course_id=data["default_course_id"],
        default_issue_date=issue,
        timezone=tz,
        validity_years=data.get("validity_years", 3),
        logs_directory=data.get("logs_directory", "./logs"),
        keep_na_strings=tuple(data.get("keep_na_strings", [])),
        policy=ValidationPolicy(**policy_raw),
        vocabulary=Vocabulary(
            first_aid_levels=frozenset(vocab_raw.get("first_aid_levels", FIRST_AID_LEVELS)),
            cpr_levels=frozenset(vocab_raw.get("cpr_levels", CPR_LEVELS)),
        ),
        submission=SubmissionConfig(**sub_raw),
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
    )


def get_tzinfo(name: str) -> tzinfo:
    # UTC は tzdata 無しの環境でも解決できるように
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def local_today(config: IntakeConfig, now: datetime | None = None) -> date:
    """Today's date in the configured timezone."""
    tz = get_tzinfo(config.timezone)
    current = now or datetime.now(tz)
    if current.tzinfo is not None:
        current = current.astimezone(tz)
    return current.date()


def resolve_issue_date(config: IntakeConfig, now: datetime | None = None) -> str:
    """Configured default issue date, or today's date in the configured timezone."""
    if config.default_issue_date:
        return config.default_issue_date
    return local_today(config, now).isoformat()
