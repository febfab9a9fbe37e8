"""Report what Log Cache currently retains for each source."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from typing import Callable, Optional, Sequence, TextIO

import httpx
import structlog
from opentelemetry import trace
from pydantic import ValidationError

from ..clients.log_cache import LogCacheClient
from ..clients.platform import PlatformClient
from ..common.errors import MetaCommandError, UsageError
from ..common.http_security import BearerTokenAuth
from ..common.observability import configure_logging, configure_tracing, flush_tracing
from ..common.settings import MetaSettings
from ..report.correlate import correlate, source_ids_query, truncate
from ..report.endpoint import resolve_endpoint
from ..report.rates import RateSampler
from ..report.scope import validate_scope
from ..report.table import render_report

SERVICE_NAME = "logcache-meta"

LOGGER = structlog.get_logger("logcache_meta.cli")


class _FlagParser(argparse.ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise UsageError(f"Could not parse flags: {message}")


def build_parser() -> argparse.ArgumentParser:
    parser = _FlagParser(
        prog=SERVICE_NAME,
        description="Show Log Cache retention per source",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--scope",
        "-scope",
        default="all",
        help="Sources to include: platform, applications or all (default: all)",
    )
    parser.add_argument(
        "--noise",
        "-noise",
        action="store_true",
        help="Add a Rate column counting each source's envelopes over the last minute",
    )
    # flag parsing stops at the first positional; everything after it is counted
    parser.add_argument("arguments", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if args.arguments:
        raise UsageError(f"Invalid arguments, expected 0, got {len(args.arguments)}.")
    args.scope = validate_scope(args.scope)
    return args


def load_settings() -> MetaSettings:
    try:
        return MetaSettings()
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(part) for part in first["loc"]) or "settings"
        raise UsageError(f"Invalid configuration: {where}: {first['msg']}") from exc


def run(
    argv: Optional[Sequence[str]] = None,
    *,
    settings: Optional[MetaSettings] = None,
    out: Optional[TextIO] = None,
    transport: Optional[httpx.BaseTransport] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> None:
    args = parse_args(argv)
    settings = settings or load_settings()
    out = out or sys.stdout
    tracer = trace.get_tracer("logcache_meta.cli")

    with tracer.start_as_current_span("logcache_meta.run") as span, PlatformClient(
        settings, transport=transport
    ) as platform:
        span.set_attribute("logcache_meta.scope", args.scope or "all")
        span.set_attribute("logcache_meta.noise", args.noise)

        endpoint = resolve_endpoint(settings, platform)
        auth = None if settings.skip_auth else BearerTokenAuth(platform.access_token)
        with LogCacheClient(
            endpoint,
            auth=auth,
            timeout=settings.http_timeout_seconds,
            verify=not settings.skip_ssl_validation,
            transport=transport,
        ) as log_cache:
            fetched = log_cache.meta()
            span.set_attribute("logcache_meta.sources", len(fetched))
            meta = truncate(fetched)
            apps = platform.resolve_apps(source_ids_query(meta))
            username = platform.username()

            rows = correlate(meta, apps, args.scope)
            if args.noise:
                sampler = RateSampler(log_cache, clock) if clock else RateSampler(log_cache)
                rows = sampler.annotate(rows)

        span.set_attribute("logcache_meta.rows", len(rows))
        LOGGER.debug("Rendering report", endpoint=endpoint, rows=len(rows), scope=args.scope)
        render_report(rows, username, out, noise=args.noise)


def main(argv: Optional[Sequence[str]] = None) -> None:
    configure_logging(SERVICE_NAME)
    provider = None
    try:
        settings = load_settings()
        configure_logging(SERVICE_NAME, settings.log_level)
        provider = configure_tracing(
            SERVICE_NAME,
            settings.otel_exporter_endpoint,
            settings.otel_exporter_headers,
            settings.otel_sampler_ratio,
        )
        run(argv, settings=settings)
    except MetaCommandError as exc:
        LOGGER.debug("Metadata report aborted", error_type=type(exc).__name__)
        raise SystemExit(str(exc)) from exc
    finally:
        flush_tracing(provider)


if __name__ == "__main__":
    main()
