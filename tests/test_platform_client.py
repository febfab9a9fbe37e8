from __future__ import annotations

import json

import httpx
import pytest

from conftest import API_URL, make_token
from logcache_meta.clients.platform import PlatformClient
from logcache_meta.common.errors import DecodeError, FetchError, IdentityError, PlatformConfigError

APP_GUID = "22222222-aaaa-4bbb-8ccc-000000000002"


def _write_cf_config(tmp_path, **values) -> None:
    config_dir = tmp_path / ".cf"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "config.json").write_text(json.dumps(values), encoding="utf-8")


def test_settings_take_precedence_over_cf_config(settings_factory, tmp_path):
    settings = settings_factory(CF_API="https://api.env.example.com", CF_ACCESS_TOKEN="env-token")
    _write_cf_config(tmp_path, Target="https://api.file.example.com", AccessToken="bearer file-token")

    platform = PlatformClient(settings)

    assert platform.api_endpoint() == "https://api.env.example.com"
    assert platform.access_token() == "bearer env-token"


def test_cf_config_supplies_target_and_token(settings_factory, tmp_path):
    settings = settings_factory()
    _write_cf_config(tmp_path, Target="https://api.file.example.com", AccessToken="bearer file-token")

    platform = PlatformClient(settings)

    assert platform.api_endpoint() == "https://api.file.example.com"
    assert platform.access_token() == "bearer file-token"


def test_missing_target_raises_config_error(settings_factory):
    platform = PlatformClient(settings_factory())

    with pytest.raises(PlatformConfigError):
        platform.api_endpoint()
    with pytest.raises(PlatformConfigError):
        platform.access_token()


def test_invalid_cf_config_raises_config_error(settings_factory, tmp_path):
    settings = settings_factory()
    (tmp_path / ".cf").mkdir()
    (tmp_path / ".cf" / "config.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(PlatformConfigError):
        PlatformClient(settings).api_endpoint()


def test_username_reads_user_name_claim(settings_factory):
    settings = settings_factory(CF_ACCESS_TOKEN=f"bearer {make_token(user_name='operator@example.com')}")

    assert PlatformClient(settings).username() == "operator@example.com"


def test_username_falls_back_to_client_id(settings_factory):
    settings = settings_factory(CF_ACCESS_TOKEN=make_token(client_id="ci-client"))

    assert PlatformClient(settings).username() == "ci-client"


def test_username_without_claims_is_identity_error(settings_factory):
    settings = settings_factory(CF_ACCESS_TOKEN=make_token(scope=["cloud_controller.read"]))

    with pytest.raises(IdentityError) as excinfo:
        PlatformClient(settings).username()
    assert str(excinfo.value).startswith("Could not get username:")


def test_username_with_garbage_token_is_identity_error(settings_factory):
    settings = settings_factory(CF_ACCESS_TOKEN="not-a-jwt")

    with pytest.raises(IdentityError):
        PlatformClient(settings).username()


def test_username_when_logged_out_is_identity_error(settings_factory):
    with pytest.raises(IdentityError):
        PlatformClient(settings_factory()).username()


def test_resolve_apps_sends_guids_with_token(settings, foundation):
    foundation.apps = [{"guid": APP_GUID, "name": "foo"}, {"guid": "other", "name": "bar"}]

    with PlatformClient(settings, transport=foundation.transport()) as platform:
        apps = platform.resolve_apps(f"{APP_GUID},doppler")

    assert [(app.guid, app.name) for app in apps] == [(APP_GUID, "foo")]
    request = foundation.requests[0]
    assert request.url.host == "api.sys.example.com"
    assert request.url.path == "/v3/apps"
    assert request.url.params["guids"] == f"{APP_GUID},doppler"
    assert request.headers["Authorization"].startswith("bearer ")


def test_resolve_apps_ignores_skip_auth(settings_factory, foundation):
    settings = settings_factory(CF_API=API_URL, CF_ACCESS_TOKEN="tok", LOG_CACHE_SKIP_AUTH="true")

    with PlatformClient(settings, transport=foundation.transport()) as platform:
        platform.resolve_apps(APP_GUID)

    assert foundation.requests[0].headers["Authorization"] == "bearer tok"


def test_resolve_apps_skips_request_for_empty_ids(settings, foundation):
    with PlatformClient(settings, transport=foundation.transport()) as platform:
        assert platform.resolve_apps("") == []

    assert foundation.requests == []


def test_resolve_apps_http_failure_is_fetch_error(settings, foundation):
    foundation.apps_status = 500

    with PlatformClient(settings, transport=foundation.transport()) as platform:
        with pytest.raises(FetchError) as excinfo:
            platform.resolve_apps(APP_GUID)
    assert str(excinfo.value).startswith("Failed to make CAPI request:")


@pytest.mark.parametrize("body", [b"<html>oops</html>", b'{"resources": [{"guid": 1}]}', b'{"resources": "nope"}'])
def test_resolve_apps_malformed_body_is_decode_error(settings, foundation, body):
    foundation.apps_body = body

    with PlatformClient(settings, transport=foundation.transport()) as platform:
        with pytest.raises(DecodeError) as excinfo:
            platform.resolve_apps(APP_GUID)
    assert str(excinfo.value).startswith("Could not decode CAPI response:")


def test_resolve_apps_transport_failure_is_fetch_error(settings):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with PlatformClient(settings, transport=httpx.MockTransport(refuse)) as platform:
        with pytest.raises(FetchError):
            platform.resolve_apps(APP_GUID)
