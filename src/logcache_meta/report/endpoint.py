"""Choose the Log Cache endpoint to query."""

from __future__ import annotations

from typing import Protocol

import structlog

from ..common.errors import EndpointResolutionError, PlatformConfigError
from ..common.settings import MetaSettings

LOGGER = structlog.get_logger("logcache_meta.endpoint")


class ApiEndpointSource(Protocol):
    def api_endpoint(self) -> str: ...


def resolve_endpoint(settings: MetaSettings, platform: ApiEndpointSource) -> str:
    """Return ``LOG_CACHE_ADDR`` verbatim, else the API endpoint with ``api`` swapped for ``log-cache``."""
    if settings.log_cache_addr:
        LOGGER.debug("Using Log Cache endpoint override", endpoint=settings.log_cache_addr)
        return settings.log_cache_addr

    try:
        api_endpoint = platform.api_endpoint()
    except PlatformConfigError as exc:
        raise EndpointResolutionError(f"Could not determine Log Cache endpoint: {exc}") from exc

    endpoint = api_endpoint.replace("api", "log-cache", 1)
    LOGGER.debug("Derived Log Cache endpoint", api_endpoint=api_endpoint, endpoint=endpoint)
    return endpoint
