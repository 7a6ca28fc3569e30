from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import psycopg2
from psycopg2 import sql
from psycopg2.extras import execute_values

"""Batched INSERT for validated roster rows.

Uses psycopg2.extras.execute_values. Identifiers are composed with
psycopg2.sql so table / column names are always quoted. Transaction
boundaries (BEGIN / COMMIT / ROLLBACK) belong to the caller.
"""

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "InsertResult",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing for a single execute_values call."""
    batch_size: int
    elapsed_seconds: float
    start_time: float
    end_time: float


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_ids: list[Any] | None = None


def _table_identifier(table: str) -> sql.Composable:
    # "schema.table" 形式も許可
    parts = table.split(".")
    return sql.SQL(".").join(sql.Identifier(p) for p in parts)


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    returning: str | None = None,
    page_size: int = 500,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Insert rows with execute_values.

    Parameters
    ----------
    cursor: psycopg2 cursor (transaction managed by caller)
    table: target table, optionally schema-qualified
    columns: column names, in the order of each row's values
    rows: value sequences
    returning: column to return (e.g. "id"); None = no RETURNING clause
    page_size: execute_values page size
    metrics_callback: receives BatchMetrics after the call (not called for empty rows)
    """
    rows_list = [tuple(r) for r in rows]
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_ids=[] if returning else None)

    query = sql.SQL("INSERT INTO {table} ({cols}) VALUES %s").format(
        table=_table_identifier(table),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
    )
    if returning:
        query = query + sql.SQL(" RETURNING {col}").format(col=sql.Identifier(returning))

    start_time = time.time()
    try:
        fetched = execute_values(
            cursor,
            query,
            rows_list,
            page_size=page_size,
            fetch=bool(returning),
        )
    except psycopg2.Error as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(BatchMetrics(
                batch_size=len(rows_list),
                elapsed_seconds=end_time - start_time,
                start_time=start_time,
                end_time=end_time,
            ))

    returned = [r[0] for r in fetched] if returning and fetched else ([] if returning else None)
    return InsertResult(inserted_rows=len(rows_list), returned_ids=returned)
