"""Wire and report models for Log Cache metadata."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

NANOS_PER_SECOND = 1_000_000_000


class Scope(str, Enum):
    PLATFORM = "platform"
    APPLICATIONS = "applications"
    ALL = "all"


class MetaInfo(BaseModel):
    """Retention statistics Log Cache keeps for a single source.

    The JSON gateway encodes int64 fields as strings; pydantic coerces them.
    """

    model_config = ConfigDict(populate_by_name=True)

    count: int = 0
    expired: int = 0
    oldest_timestamp: int = Field(0, alias="oldestTimestamp")
    newest_timestamp: int = Field(0, alias="newestTimestamp")

    @property
    def cache_duration(self) -> timedelta:
        """Span between oldest and newest record, truncated to whole seconds."""
        elapsed = max(self.newest_timestamp - self.oldest_timestamp, 0)
        return timedelta(seconds=elapsed // NANOS_PER_SECOND)


class MetaResponse(BaseModel):
    meta: dict[str, MetaInfo] = Field(default_factory=dict)


class EnvelopeBatch(BaseModel):
    batch: list[dict[str, Any]] = Field(default_factory=list)


class ReadResponse(BaseModel):
    envelopes: EnvelopeBatch = Field(default_factory=EnvelopeBatch)


class App(BaseModel):
    """Inventory entry naming an application source."""

    guid: str
    name: str


class AppsResponse(BaseModel):
    resources: list[App] = Field(default_factory=list)


@dataclass(frozen=True)
class ReportRow:
    source_id: str
    app_name: str
    count: int
    expired: int
    cache_duration: timedelta
    rate: Optional[int] = None

    @classmethod
    def from_meta(cls, source_id: str, info: MetaInfo, app_name: str = "") -> "ReportRow":
        return cls(
            source_id=source_id,
            app_name=app_name,
            count=info.count,
            expired=info.expired,
            cache_duration=info.cache_duration,
        )

    def with_rate(self, rate: int) -> "ReportRow":
        return replace(self, rate=rate)
