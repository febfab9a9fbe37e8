"""Shared HTTP security helpers."""

from __future__ import annotations

from typing import Callable, Generator

import httpx


def bearer_header(token: str) -> str:
    """Normalise a raw or already-prefixed token into an Authorization value."""
    token = token.strip()
    scheme, _, rest = token.partition(" ")
    if rest and scheme.lower() == "bearer":
        return f"bearer {rest.strip()}"
    return f"bearer {token}"


def strip_bearer(token: str) -> str:
    scheme, _, rest = token.strip().partition(" ")
    if rest and scheme.lower() == "bearer":
        return rest.strip()
    return token.strip()


class BearerTokenAuth(httpx.Auth):
    """Attach a freshly fetched bearer token to every outgoing request."""

    def __init__(self, get_token: Callable[[], str]) -> None:
        self._get_token = get_token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = bearer_header(self._get_token())
        yield request
