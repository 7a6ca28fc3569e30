from __future__ import annotations

from ..models.processing_result import IntakeResult

"""SUMMARY line rendering for an intake run."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: IntakeResult) -> str:
    """Render the SUMMARY line.

    Format:
    SUMMARY files={n} accepted={a} rejected={r} failed={f} rows={rows}
    error_rows={e} warnings={w} submitted={s} elapsed_sec={elapsed}

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> render_summary_line(IntakeResult(start_time=start, end_time=end, elapsed_seconds=2.0))
        'SUMMARY files=0 accepted=0 rejected=0 failed=0 rows=0 error_rows=0 warnings=0 submitted=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={result.total_files} "
        f"accepted={result.accepted_files} "
        f"rejected={result.rejected_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_rows} "
        f"error_rows={result.error_rows} "
        f"warnings={result.warning_count} "
        f"submitted={result.submitted_rows} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
