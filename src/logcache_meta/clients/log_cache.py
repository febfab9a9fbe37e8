"""Blocking client for the Log Cache HTTP gateway."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from ..common.errors import FetchError, PlatformConfigError
from ..common.schemas import MetaInfo, MetaResponse, NANOS_PER_SECOND, ReadResponse

LOGGER = structlog.get_logger("logcache_meta.log_cache")

READ_PAGE_LIMIT = 1000


def to_unix_nanos(value: datetime) -> int:
    seconds = int(value.timestamp())
    return seconds * NANOS_PER_SECOND + value.microsecond * 1000


class LogCacheClient:
    def __init__(
        self,
        endpoint: str,
        *,
        auth: Optional[httpx.Auth] = None,
        timeout: float = 10.0,
        verify: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self._client = httpx.Client(
            base_url=self.endpoint,
            auth=auth,
            timeout=timeout,
            verify=verify,
            transport=transport,
        )

    def __enter__(self) -> "LogCacheClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def meta(self) -> dict[str, MetaInfo]:
        """Return retention metadata for every source Log Cache holds."""
        try:
            response = self._client.get("/api/v1/meta")
            response.raise_for_status()
            payload = MetaResponse.model_validate(response.json())
        except (httpx.HTTPError, PlatformConfigError, ValidationError, ValueError) as exc:
            raise FetchError(f"Failed to read Meta information: {exc}") from exc
        LOGGER.debug("Fetched Log Cache meta", endpoint=self.endpoint, sources=len(payload.meta))
        return payload.meta

    def read(
        self,
        source_id: str,
        start_time: int,
        end_time: int,
        limit: int = READ_PAGE_LIMIT,
    ) -> list[dict[str, Any]]:
        """Read one page of envelopes for ``source_id`` in ``[start_time, end_time)`` (nanoseconds)."""
        params = {"start_time": start_time, "end_time": end_time, "limit": limit}
        response = self._client.get(f"/api/v1/read/{quote(source_id, safe='')}", params=params)
        response.raise_for_status()
        return ReadResponse.model_validate(response.json()).envelopes.batch

    def read_window(self, source_id: str, start: datetime, end: datetime) -> list[dict[str, Any]]:
        """Walk every page of envelopes for ``source_id`` between ``start`` and ``end``."""
        start_ns = to_unix_nanos(start)
        end_ns = to_unix_nanos(end)
        envelopes: list[dict[str, Any]] = []
        try:
            while start_ns < end_ns:
                batch = self.read(source_id, start_ns, end_ns, READ_PAGE_LIMIT)
                if not batch:
                    break
                envelopes.extend(batch)
                if len(batch) < READ_PAGE_LIMIT:
                    break
                newest = max(int(envelope.get("timestamp", 0)) for envelope in batch)
                if newest < start_ns:
                    break
                start_ns = newest + 1
        except (httpx.HTTPError, PlatformConfigError, ValidationError, ValueError) as exc:
            raise FetchError(f"Failed to read recent envelopes for {source_id}: {exc}") from exc
        LOGGER.debug("Read envelope window", source_id=source_id, envelopes=len(envelopes))
        return envelopes
