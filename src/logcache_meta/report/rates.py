"""Trailing-window ingestion samples."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

from ..common.schemas import ReportRow

SAMPLE_WINDOW = timedelta(minutes=1)


class EnvelopeReader(Protocol):
    def read_window(self, source_id: str, start: datetime, end: datetime) -> Sequence[Any]: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RateSampler:
    """Count the envelopes a source produced during the last minute.

    The sample is a raw count, not a per-second rate.
    """

    def __init__(self, reader: EnvelopeReader, clock: Callable[[], datetime] = _utc_now) -> None:
        self._reader = reader
        self._clock = clock

    def sample(self, source_id: str) -> int:
        end = self._clock()
        start = end - SAMPLE_WINDOW
        return len(self._reader.read_window(source_id, start, end))

    def annotate(self, rows: Sequence[ReportRow]) -> list[ReportRow]:
        return [row.with_rate(self.sample(row.source_id)) for row in rows]
