from __future__ import annotations

from ..models.import_result import ImportResult

"""SUMMARY line rendering for an import run.

Format:
SUMMARY records={total} success={success} failed={failed} rejected={rejected}
images={downloaded}/{fallback} elapsed_sec={elapsed} throughput_rps={throughput}
"""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # Format very small numbers to avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportResult, rejected: int = 0) -> str:
    """Render the SUMMARY line for a finished run.

    ``rejected`` is the number of rows the validator kept out of the run;
    ``records`` counts the rows read (imported attempts + rejected).

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ImportResult(
        ...     total=4, success=["a", "b", "c", "d"], failed=[],
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ...     images_downloaded=3, images_fallback=1,
        ... )
        >>> render_summary_line(result, rejected=1)
        'SUMMARY records=5 success=4 failed=0 rejected=1 images=3/1 elapsed_sec=2 throughput_rps=2'
    """
    elapsed_str = _format_number(result.elapsed_seconds)
    throughput_str = _format_number(result.throughput_records_per_sec)
    return (
        f"SUMMARY records={result.total + rejected} "
        f"success={len(result.success)} "
        f"failed={len(result.failed)} "
        f"rejected={rejected} "
        f"images={result.images_downloaded}/{result.images_fallback} "
        f"elapsed_sec={elapsed_str} "
        f"throughput_rps={throughput_str}"
    )
