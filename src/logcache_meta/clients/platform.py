"""Platform API access: target, credentials, operator identity and app inventory."""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx
import jwt
import structlog
from pydantic import ValidationError

from ..common.errors import DecodeError, FetchError, IdentityError, PlatformConfigError
from ..common.http_security import BearerTokenAuth, bearer_header, strip_bearer
from ..common.schemas import App, AppsResponse
from ..common.settings import MetaSettings

LOGGER = structlog.get_logger("logcache_meta.platform")


class PlatformClient:
    """Platform collaborator backed by settings, the cf config file and the v3 API.

    ``CF_API`` and ``CF_ACCESS_TOKEN`` win over ``Target`` and ``AccessToken``
    from ``$CF_HOME/.cf/config.json``.
    """

    def __init__(
        self,
        settings: MetaSettings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._cf_config: Optional[dict[str, Any]] = None
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> "PlatformClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _config(self) -> dict[str, Any]:
        if self._cf_config is None:
            path = self._settings.cf_config_path
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError:
                self._cf_config = {}
            except OSError as exc:
                raise PlatformConfigError(f"unable to read {path}: {exc}") from exc
            else:
                try:
                    loaded = json.loads(raw)
                except json.JSONDecodeError as exc:
                    raise PlatformConfigError(f"invalid cf config {path}: {exc}") from exc
                self._cf_config = loaded if isinstance(loaded, dict) else {}
        return self._cf_config

    def api_endpoint(self) -> str:
        if self._settings.api_endpoint:
            return self._settings.api_endpoint
        target = self._config().get("Target")
        if not target:
            raise PlatformConfigError("no API endpoint set, target one with CF_API or 'cf api'")
        return str(target)

    def access_token(self) -> str:
        """Return the access token as an ``Authorization`` header value."""
        if self._settings.access_token is not None:
            token = self._settings.access_token.get_secret_value()
        else:
            token = str(self._config().get("AccessToken") or "")
        if not token.strip():
            raise PlatformConfigError("not logged in, set CF_ACCESS_TOKEN or run 'cf login'")
        return bearer_header(token)

    def username(self) -> str:
        """Name of the operator the access token was issued to. The signature is not verified."""
        try:
            claims = jwt.decode(
                strip_bearer(self.access_token()),
                options={"verify_signature": False},
            )
        except (PlatformConfigError, jwt.PyJWTError) as exc:
            raise IdentityError(f"Could not get username: {exc}") from exc

        name = claims.get("user_name") or claims.get("client_id")
        if not name:
            raise IdentityError("Could not get username: access token carries no user_name claim")
        return str(name)

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.api_endpoint().rstrip("/"),
                auth=BearerTokenAuth(self.access_token),
                timeout=self._settings.http_timeout_seconds,
                verify=not self._settings.skip_ssl_validation,
                transport=self._transport,
            )
        return self._client

    def resolve_apps(self, guids: str) -> list[App]:
        """Look up the apps named by a comma-separated guid list in one request."""
        if not guids:
            return []
        try:
            response = self._http().get("/v3/apps", params={"guids": guids})
            response.raise_for_status()
        except (httpx.HTTPError, PlatformConfigError) as exc:
            raise FetchError(f"Failed to make CAPI request: {exc}") from exc

        try:
            resources = AppsResponse.model_validate(response.json()).resources
        except (ValidationError, ValueError) as exc:
            raise DecodeError(f"Could not decode CAPI response: {exc}") from exc
        LOGGER.debug("Resolved app names", requested=guids.count(",") + 1, resolved=len(resources))
        return resources
