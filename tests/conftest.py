from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import httpx
import jwt
import pytest
import structlog

from logcache_meta.common.settings import MetaSettings

API_URL = "https://api.sys.example.com"
LOG_CACHE_URL = "https://log-cache.sys.example.com"
SIGNING_KEY = "logcache-meta-test-signing-key-0123456789"

_ENV_VARS = (
    "LOG_CACHE_ADDR",
    "LOG_CACHE_SKIP_AUTH",
    "CF_API",
    "CF_ACCESS_TOKEN",
    "CF_HOME",
    "LOG_CACHE_META_HTTP_TIMEOUT",
    "LOG_CACHE_META_SKIP_SSL_VALIDATION",
    "LOG_CACHE_META_LOG_LEVEL",
    "LOG_CACHE_META_OTEL_EXPORTER_ENDPOINT",
    "LOG_CACHE_META_OTEL_EXPORTER_HEADERS",
    "LOG_CACHE_META_OTEL_SAMPLER_RATIO",
)


def make_token(**claims: Any) -> str:
    return jwt.encode(claims, SIGNING_KEY, algorithm="HS256")


def meta_entry(count: int = 0, expired: int = 0, oldest: int = 0, newest: int = 0) -> dict[str, str]:
    # int64 fields arrive as strings from the JSON gateway
    return {
        "count": str(count),
        "expired": str(expired),
        "oldestTimestamp": str(oldest),
        "newestTimestamp": str(newest),
    }


@dataclass
class FakeFoundation:
    """In-memory Log Cache and Cloud Controller served through ``httpx.MockTransport``."""

    meta: dict[str, dict[str, str]] = field(default_factory=dict)
    apps: list[dict[str, str]] = field(default_factory=list)
    envelopes: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)
    meta_status: int = 200
    apps_status: int = 200
    apps_body: Any = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/v1/meta":
            return httpx.Response(self.meta_status, json={"meta": self.meta})
        if path.startswith("/api/v1/read/"):
            source_id = path[len("/api/v1/read/"):]
            start = int(request.url.params["start_time"])
            end = int(request.url.params["end_time"])
            limit = int(request.url.params.get("limit", "100"))
            batch = [
                envelope
                for envelope in self.envelopes.get(source_id, [])
                if start <= int(envelope["timestamp"]) < end
            ][:limit]
            return httpx.Response(200, json={"envelopes": {"batch": batch}})
        if path == "/v3/apps":
            if self.apps_body is not None:
                return httpx.Response(self.apps_status, content=self.apps_body)
            wanted = set(request.url.params.get("guids", "").split(","))
            resources = [app for app in self.apps if app["guid"] in wanted]
            return httpx.Response(self.apps_status, json={"resources": resources})
        return httpx.Response(404, json={"error": f"unexpected path {path}"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def foundation() -> FakeFoundation:
    return FakeFoundation()


@pytest.fixture
def settings_factory(monkeypatch, tmp_path) -> Callable[..., MetaSettings]:
    def factory(**env: str) -> MetaSettings:
        for name in _ENV_VARS:
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("CF_HOME", str(tmp_path))
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        return MetaSettings()

    return factory


@pytest.fixture
def settings(settings_factory) -> MetaSettings:
    return settings_factory(CF_API=API_URL, CF_ACCESS_TOKEN=make_token(user_name="admin"))
