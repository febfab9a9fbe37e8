"""Plain-text rendering of the metadata report."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from typing import TextIO

from ..common.schemas import ReportRow

HEADERS = ["Source ID", "App Name", "Count", "Expired", "Cache Duration"]
RATE_HEADER = "Rate"
PADDING = 2


def format_duration(value: timedelta) -> str:
    """Render whole seconds the way Go prints a ``time.Duration`` (``1h2m3s``, ``1m30s``, ``0s``)."""
    total = max(int(value.total_seconds()), 0)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def _cells(row: ReportRow, noise: bool) -> list[str]:
    cells = [
        row.source_id,
        row.app_name,
        str(row.count),
        str(row.expired),
        format_duration(row.cache_duration),
    ]
    if noise:
        cells.append(str(row.rate if row.rate is not None else 0))
    return cells


def format_table(rows: Sequence[ReportRow], *, noise: bool = False) -> list[str]:
    """Align every column but the last to its widest cell plus two spaces."""
    headers = HEADERS + [RATE_HEADER] if noise else list(HEADERS)
    lines = [headers] + [_cells(row, noise) for row in rows]
    widths = [max(len(line[index]) for line in lines) + PADDING for index in range(len(headers) - 1)]

    formatted = []
    for line in lines:
        aligned = "".join(cell.ljust(width) for cell, width in zip(line, widths))
        formatted.append(aligned + line[-1])
    return formatted


def render_report(rows: Sequence[ReportRow], username: str, out: TextIO, *, noise: bool = False) -> None:
    out.write(f"Retrieving log cache metadata as {username}...\n\n")
    for line in format_table(rows, noise=noise):
        out.write(line + "\n")
    out.flush()
