"""Tests for the token endpoint protocol (request bodies, auth, error mapping)."""

from __future__ import annotations

import base64
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from urllib.parse import parse_qs

import httpx
import pytest

from fitbit_link.auth.token import (
    EXCHANGE_CONTEXT,
    REFRESH_CONTEXT,
    client_auth,
    exchange_request_data,
    link_from_response,
    parse_provider_error,
    refresh_request_data,
    retrieve_token,
    token_from_response,
)
from fitbit_link.exceptions import NetworkError, ProviderError, RequestCancelledError
from fitbit_link.models import ApplicationType, ClientConfig, Token


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _http(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def _basic(client_id: str, secret: str) -> str:
    return "Basic " + base64.b64encode(f"{client_id}:{secret}".encode()).decode()


FITBIT_ERROR_BODY = {
    "errors": [
        {
            "errorType": "invalid_grant",
            "message": "Authorization code invalid: abc123",
        }
    ],
    "success": False,
}


# ---------------------------------------------------------------------------
# Request bodies and client authentication
# ---------------------------------------------------------------------------


class TestRequestData:
    def test_exchange_for_server_app_includes_client_id(
        self, client_config: ClientConfig
    ) -> None:
        data = exchange_request_data(client_config, "abc123", "Vxyz", "https://app/callback")
        assert data == {
            "grant_type": "authorization_code",
            "code": "abc123",
            "code_verifier": "Vxyz",
            "redirect_uri": "https://app/callback",
            "client_id": "23ABCD",
        }

    @pytest.mark.parametrize("app_type", [ApplicationType.CLIENT, ApplicationType.PERSONAL])
    def test_exchange_for_other_apps_omits_client_id(
        self, client_config: ClientConfig, app_type: ApplicationType
    ) -> None:
        config = client_config.model_copy(update={"application_type": app_type})
        data = exchange_request_data(config, "abc123", "Vxyz", "https://app/callback")
        assert "client_id" not in data

    @pytest.mark.parametrize("app_type", [ApplicationType.CLIENT, ApplicationType.PERSONAL])
    def test_confidential_exchange_body_has_no_client_id(
        self, client_config: ClientConfig, app_type: ApplicationType
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "AT1"})

        config = client_config.model_copy(update={"application_type": app_type})
        data = exchange_request_data(config, "abc123", "Vxyz", "https://app/callback")
        retrieve_token(_http(handler), config, data, EXCHANGE_CONTEXT)

        assert "client_id" not in _form(seen[0])
        assert seen[0].headers["Authorization"] == _basic("23ABCD", "s3cr3t")

    def test_public_exchange_body_identifies_client(self, public_config: ClientConfig) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "AT1"})

        data = exchange_request_data(public_config, "abc123", "Vxyz", "https://app/callback")
        retrieve_token(_http(handler), public_config, data, EXCHANGE_CONTEXT)

        assert _form(seen[0]) == {
            "grant_type": "authorization_code",
            "code": "abc123",
            "code_verifier": "Vxyz",
            "redirect_uri": "https://app/callback",
            "client_id": "23PUBL",
        }
        assert "Authorization" not in seen[0].headers

    def test_refresh(self) -> None:
        assert refresh_request_data("RT1") == {
            "grant_type": "refresh_token",
            "refresh_token": "RT1",
        }


class TestClientAuth:
    def test_confidential_client_uses_basic_auth(self, client_config: ClientConfig) -> None:
        data = refresh_request_data("RT1")
        auth = client_auth(client_config, data)
        assert isinstance(auth, httpx.BasicAuth)
        assert "client_id" not in data

    def test_public_client_sends_client_id_field(self, public_config: ClientConfig) -> None:
        data = refresh_request_data("RT1")
        assert client_auth(public_config, data) is None
        assert data["client_id"] == "23PUBL"


# ---------------------------------------------------------------------------
# Error body parsing
# ---------------------------------------------------------------------------


class TestParseProviderError:
    def test_fitbit_errors_array(self) -> None:
        details = parse_provider_error(json.dumps(FITBIT_ERROR_BODY))
        assert len(details) == 1
        assert details[0].error_type == "invalid_grant"
        assert details[0].message.startswith("Authorization code invalid")

    def test_field_name(self) -> None:
        body = {"errors": [{"errorType": "validation", "fieldName": "redirect_uri", "message": "x"}]}
        assert parse_provider_error(json.dumps(body))[0].field_name == "redirect_uri"

    def test_rfc6749_body(self) -> None:
        body = json.dumps({"error": "invalid_client", "error_description": "bad secret"})
        details = parse_provider_error(body)
        assert details[0].error_type == "invalid_client"
        assert details[0].message == "bad secret"

    @pytest.mark.parametrize("body", ["", "<html>oops</html>", "[]", '{"success": false}'])
    def test_unrecognised_bodies(self, body: str) -> None:
        assert parse_provider_error(body) == []


# ---------------------------------------------------------------------------
# retrieve_token
# ---------------------------------------------------------------------------


class TestRetrieveToken:
    def test_posts_form_with_basic_auth(
        self, client_config: ClientConfig, exchange_payload: dict[str, Any]
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=exchange_payload)

        data = exchange_request_data(client_config, "abc123", "Vxyz", "https://app/callback")
        with _http(handler) as http:
            payload = retrieve_token(http, client_config, data, EXCHANGE_CONTEXT)

        assert payload == exchange_payload
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == client_config.token_url
        assert request.headers["Authorization"] == _basic("23ABCD", "s3cr3t")
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert _form(request)["code"] == "abc123"

    def test_does_not_mutate_caller_data(self, public_config: ClientConfig) -> None:
        data = refresh_request_data("RT1")

        def handler(request: httpx.Request) -> httpx.Response:
            assert _form(request)["client_id"] == "23PUBL"
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"access_token": "AT2"})

        with _http(handler) as http:
            retrieve_token(http, public_config, data, REFRESH_CONTEXT)
        assert "client_id" not in data

    def test_http_error_raises_provider_error(self, client_config: ClientConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json=FITBIT_ERROR_BODY)

        with _http(handler) as http, pytest.raises(ProviderError) as exc_info:
            retrieve_token(http, client_config, refresh_request_data("RT1"), REFRESH_CONTEXT)

        err = exc_info.value
        assert not isinstance(err, NetworkError)
        assert err.status_code == 400
        assert err.code == "invalid_grant"
        assert err.description.startswith("Authorization code invalid")
        assert json.loads(err.body) == FITBIT_ERROR_BODY
        assert str(err).startswith("Token refresh failed: HTTP 400: invalid_grant")
        assert err.exit_code == 3

    def test_unparseable_error_body_keeps_raw_text(self, client_config: ClientConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with _http(handler) as http, pytest.raises(ProviderError) as exc_info:
            retrieve_token(http, client_config, refresh_request_data("RT1"), REFRESH_CONTEXT)
        assert exc_info.value.errors == []
        assert exc_info.value.body == "Bad Gateway"
        assert exc_info.value.code is None

    def test_success_without_json_raises_provider_error(
        self, client_config: ClientConfig
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        with _http(handler) as http, pytest.raises(ProviderError, match="not valid JSON"):
            retrieve_token(http, client_config, refresh_request_data("RT1"), REFRESH_CONTEXT)

    def test_success_without_access_token_raises_provider_error(
        self, client_config: ClientConfig
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"token_type": "Bearer"})

        with _http(handler) as http, pytest.raises(ProviderError, match="access_token"):
            retrieve_token(http, client_config, refresh_request_data("RT1"), REFRESH_CONTEXT)

    def test_connection_failure_raises_network_error(self, client_config: ClientConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _http(handler) as http, pytest.raises(NetworkError) as exc_info:
            retrieve_token(http, client_config, refresh_request_data("RT1"), EXCHANGE_CONTEXT)

        err = exc_info.value
        assert not isinstance(err, RequestCancelledError)
        assert isinstance(err.__cause__, httpx.ConnectError)
        assert str(err).startswith("Authorization exchange failed")
        assert err.exit_code == 6

    def test_closed_http_client_raises_network_error(self, client_config: ClientConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request may be sent")

        http = _http(handler)
        http.close()
        with pytest.raises(NetworkError, match="has been closed"):
            retrieve_token(http, client_config, refresh_request_data("RT1"), REFRESH_CONTEXT)

    def test_timeout_raises_request_cancelled(self, client_config: ClientConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with _http(handler) as http, pytest.raises(RequestCancelledError) as exc_info:
            retrieve_token(
                http, client_config, refresh_request_data("RT1"), REFRESH_CONTEXT, timeout=0.5
            )
        assert isinstance(exc_info.value, NetworkError)
        assert not isinstance(exc_info.value, ProviderError)

    def test_per_call_timeout_reaches_request(self, client_config: ClientConfig) -> None:
        seen: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.extensions["timeout"])
            return httpx.Response(200, json={"access_token": "AT2"})

        with _http(handler) as http:
            retrieve_token(
                http, client_config, refresh_request_data("RT1"), REFRESH_CONTEXT, timeout=2.5
            )
        assert seen[0]["read"] == 2.5


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


class TestTokenFromResponse:
    NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_expiry_is_absolute(self) -> None:
        token = token_from_response({"access_token": "AT", "expires_in": 3600}, now=self.NOW)
        assert token.expiry == self.NOW + timedelta(hours=1)

    def test_missing_expires_in_means_no_expiry(self) -> None:
        token = token_from_response({"access_token": "AT"}, now=self.NOW)
        assert token.expiry is None
        assert token.token_type == "Bearer"

    def test_keeps_previous_refresh_token_when_absent(self) -> None:
        previous = Token(access_token="old", refresh_token="RT0")
        token = token_from_response({"access_token": "AT"}, previous=previous)
        assert token.refresh_token == "RT0"

    def test_new_refresh_token_wins(self) -> None:
        previous = Token(access_token="old", refresh_token="RT0")
        token = token_from_response({"access_token": "AT", "refresh_token": "RT1"}, previous=previous)
        assert token.refresh_token == "RT1"


class TestLinkFromResponse:
    def test_exchange_payload(self, exchange_payload: dict[str, Any]) -> None:
        linked = link_from_response(exchange_payload)
        assert linked.user_id == "U1"
        assert linked.scope.permissions == frozenset({"activity", "heartrate"})
        assert linked.token.access_token == "AT1"
        assert linked.token.refresh_token == "RT1"

    def test_missing_user_id_raises_provider_error(
        self, exchange_payload: dict[str, Any]
    ) -> None:
        del exchange_payload["user_id"]
        with pytest.raises(ProviderError, match="user_id"):
            link_from_response(exchange_payload)

    def test_missing_scope_is_empty(self, exchange_payload: dict[str, Any]) -> None:
        del exchange_payload["scope"]
        assert link_from_response(exchange_payload).scope.permissions == frozenset()
