"""Scope filter validation."""

from __future__ import annotations

from ..common.errors import UsageError
from ..common.schemas import Scope

VALID_SCOPES = frozenset(scope.value for scope in Scope)


def validate_scope(value: str) -> str:
    """Lower-case ``value`` and reject anything outside the known scopes.

    The empty string is accepted and means "no restriction".
    """
    normalized = value.lower()
    if normalized and normalized not in VALID_SCOPES:
        raise UsageError("Scope must be 'platform', 'applications' or 'all'.")
    return normalized


def includes_applications(scope: str) -> bool:
    return scope in ("", Scope.APPLICATIONS.value, Scope.ALL.value)


def includes_platform(scope: str) -> bool:
    return scope in ("", Scope.PLATFORM.value, Scope.ALL.value)
