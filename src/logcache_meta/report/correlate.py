"""Join Log Cache metadata with app names and partition sources by scope."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

import structlog

from ..common.schemas import App, MetaInfo, ReportRow
from .scope import includes_applications, includes_platform

LOGGER = structlog.get_logger("logcache_meta.correlate")

MAX_SOURCES = 50

SOURCE_ID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")


def is_app_source_id(source_id: str) -> bool:
    return SOURCE_ID_PATTERN.search(source_id) is not None


def truncate(meta: Mapping[str, MetaInfo], limit: int = MAX_SOURCES) -> dict[str, MetaInfo]:
    """Keep at most ``limit`` sources.

    Which sources survive is arbitrary; sorting by id only makes the choice
    reproducible. The cap bounds the size of the inventory lookup.
    """
    kept = {source_id: meta[source_id] for source_id in sorted(meta)[:limit]}
    if len(kept) < len(meta):
        LOGGER.debug("Truncated Log Cache meta", total=len(meta), kept=len(kept))
    return kept


def source_ids_query(meta: Mapping[str, MetaInfo]) -> str:
    return ",".join(sorted(meta))


def correlate(meta: Mapping[str, MetaInfo], apps: Iterable[App], scope: str) -> list[ReportRow]:
    """Build report rows: named apps, then unnamed app-like ids, then platform ids.

    Named apps keep inventory order; the other two groups are sorted by id.
    An inventory match wins over the id pattern. ``meta`` is left untouched.
    """
    show_apps = includes_applications(scope)
    show_platform = includes_platform(scope)

    rows: list[ReportRow] = []
    consumed: set[str] = set()
    for app in apps:
        info = meta.get(app.guid)
        if info is None or app.guid in consumed:
            continue
        consumed.add(app.guid)
        if show_apps:
            rows.append(ReportRow.from_meta(app.guid, info, app.name))

    remaining = [source_id for source_id in sorted(meta) if source_id not in consumed]
    if show_apps:
        rows.extend(
            ReportRow.from_meta(source_id, meta[source_id])
            for source_id in remaining
            if is_app_source_id(source_id)
        )
    if show_platform:
        rows.extend(
            ReportRow.from_meta(source_id, meta[source_id])
            for source_id in remaining
            if not is_app_source_id(source_id)
        )
    return rows
