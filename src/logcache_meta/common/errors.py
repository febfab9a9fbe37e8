"""Failures that abort a metadata report.

Every error carries the operator-facing message as its string form; the
command driver prints it verbatim and exits.
"""

from __future__ import annotations


class MetaCommandError(Exception):
    """Base class for fatal report failures."""


class UsageError(MetaCommandError):
    """Bad flags, positional arguments or scope value."""


class EndpointResolutionError(MetaCommandError):
    """The Log Cache endpoint could not be determined."""


class FetchError(MetaCommandError):
    """An outbound request to Log Cache or the platform API failed."""


class DecodeError(MetaCommandError):
    """The inventory response could not be decoded."""


class IdentityError(MetaCommandError):
    """The operator's identity could not be resolved."""


class PlatformConfigError(RuntimeError):
    """Platform target or credentials are missing from the environment."""
