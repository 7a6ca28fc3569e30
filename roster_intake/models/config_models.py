from __future__ import annotations

from dataclasses import dataclass, field

from ..config.vocabulary import DEFAULT_VOCABULARY, Vocabulary

"""Config dataclasses for the roster intake tool.

Built by ``roster_intake.config.loader.load_config`` from the YAML file. All of
them are frozen so a loaded config can be shared across files of one run
without any cross-call coupling.
"""


@dataclass(frozen=True)
class ValidationPolicy:
    """Switches for the ambiguous data quality cases.

    Defaults keep the lenient behavior: an unparseable length or an
    unrecognized pass/fail value only produces a warning.
    """
    flag_unparseable_length: bool = False
    flag_unrecognized_status: bool = False
    detect_duplicates: bool = False
    check_vocabulary: bool = True


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback.

    Environment variables (DATABASE_URL / PGDSN / PG*) take precedence.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class SubmissionConfig:
    table: str = "certificate_requests"
    page_size: int = 500
    batch_name_prefix: str = "roster"


@dataclass(frozen=True)
class IntakeConfig:
    """Root configuration object for one intake run."""
    source_directory: str
    default_course_id: str
    default_issue_date: str | None = None  # None -> 実行日 (timezone 基準)
    timezone: str = "UTC"
    validity_years: int = 3
    logs_directory: str = "./logs"
    keep_na_strings: tuple[str, ...] = ()
    policy: ValidationPolicy = field(default_factory=ValidationPolicy)
    vocabulary: Vocabulary = DEFAULT_VOCABULARY
    submission: SubmissionConfig = field(default_factory=SubmissionConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
