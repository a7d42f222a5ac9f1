"""Token endpoint protocol: request bodies, client authentication, response parsing.

Both grants the package supports go through here:

* ``authorization_code`` -- the one-time exchange after the user consents
  (:func:`exchange_request_data`, :func:`link_from_response`).
* ``refresh_token`` -- obtaining a new token from a refresh token
  (:func:`refresh_request_data`, :func:`token_from_response`).

:func:`retrieve_token` and :func:`aretrieve_token` perform exactly one POST
and translate every failure into the :mod:`fitbit_link.exceptions`
taxonomy. They never retry.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import httpx

from fitbit_link.exceptions import (
    NetworkError,
    ProviderError,
    RequestCancelledError,
)
from fitbit_link.models import (
    ApplicationType,
    ClientConfig,
    LinkResponse,
    ProviderErrorDetail,
    Scope,
    Token,
)

logger = logging.getLogger(__name__)

GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"

EXCHANGE_CONTEXT = "Authorization exchange failed"
REFRESH_CONTEXT = "Token refresh failed"


def exchange_request_data(
    config: ClientConfig, code: str, code_verifier: str, redirect_uri: str
) -> dict[str, str]:
    """Form fields for the ``authorization_code`` grant."""
    data = {
        "grant_type": GRANT_AUTHORIZATION_CODE,
        "code": code,
        "code_verifier": code_verifier,
        "redirect_uri": redirect_uri,
    }
    if config.application_type == ApplicationType.SERVER:
        # Documented as required for server apps even alongside Basic auth.
        data["client_id"] = config.client_id
    return data


def refresh_request_data(refresh_token: str) -> dict[str, str]:
    """Form fields for the ``refresh_token`` grant."""
    return {
        "grant_type": GRANT_REFRESH_TOKEN,
        "refresh_token": refresh_token,
    }


def client_auth(
    config: ClientConfig, data: dict[str, str]
) -> Optional[httpx.BasicAuth]:
    """Attach client authentication to a token request.

    Confidential clients authenticate with HTTP Basic credentials. Public
    clients have no secret and identify themselves with a ``client_id``
    form field, which is added to *data* in place.

    Returns:
        The :class:`httpx.BasicAuth` to send, or ``None`` for public clients.
    """
    if config.is_confidential:
        return httpx.BasicAuth(config.client_id, config.client_secret)
    data.setdefault("client_id", config.client_id)
    return None


def parse_provider_error(body: str) -> list[ProviderErrorDetail]:
    """Extract structured error entries from a token endpoint error body.

    Returns an empty list when the body is not one of the recognised shapes.
    """
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return []
    if not isinstance(payload, dict):
        return []

    details: list[ProviderErrorDetail] = []
    for entry in payload.get("errors") or []:
        if isinstance(entry, dict) and entry.get("errorType"):
            details.append(ProviderErrorDetail.model_validate(entry))
    if not details and isinstance(payload.get("error"), str):
        details.append(
            ProviderErrorDetail(
                error_type=payload["error"],
                message=payload.get("error_description") or "",
            )
        )
    return details


def _provider_error(context: str, response: httpx.Response) -> ProviderError:
    errors = parse_provider_error(response.text)
    message = f"{context}: HTTP {response.status_code}"
    if errors:
        message += f": {errors[0].error_type}"
        if errors[0].message:
            message += f" - {errors[0].message}"
    return ProviderError(
        message,
        status_code=response.status_code,
        errors=errors,
        body=response.text,
    )


def _check_response(response: httpx.Response, context: str) -> dict[str, Any]:
    """Return the JSON body of a successful token response or raise."""
    if response.status_code >= 400:
        raise _provider_error(context, response)
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderError(
            f"{context}: token response is not valid JSON",
            status_code=response.status_code,
            body=response.text,
        ) from exc
    if not isinstance(payload, dict) or not payload.get("access_token"):
        raise ProviderError(
            f"{context}: token response missing 'access_token' field",
            status_code=response.status_code,
            body=response.text,
        )
    return payload


def _transport_error(exc: httpx.HTTPError, context: str) -> NetworkError:
    if isinstance(exc, httpx.TimeoutException):
        return RequestCancelledError(f"{context}: request deadline exceeded: {exc}")
    return NetworkError(f"{context}: {exc}")


def _check_open(http: Union[httpx.Client, httpx.AsyncClient], context: str) -> None:
    if http.is_closed:
        raise NetworkError(f"{context}: the token HTTP client has been closed")


def _timeout_arg(timeout: Optional[float]) -> Any:
    return httpx.USE_CLIENT_DEFAULT if timeout is None else timeout


def retrieve_token(
    http: httpx.Client,
    config: ClientConfig,
    data: dict[str, str],
    context: str,
    timeout: Optional[float] = None,
) -> dict[str, Any]:
    """POST a token request and return the decoded success payload.

    Args:
        http: The HTTP client to send through.
        config: Client whose credentials authenticate the request.
        data: Grant-specific form fields.
        context: Prefix for error messages (e.g. :data:`EXCHANGE_CONTEXT`).
        timeout: Per-call deadline in seconds; ``None`` uses the client's.

    Raises:
        ProviderError: The endpoint answered with an error or an unusable body.
        RequestCancelledError: The deadline expired before an answer arrived.
        NetworkError: The request could not be completed, including when
            *http* is already closed.
    """
    _check_open(http, context)
    data = dict(data)
    auth = client_auth(config, data)
    logger.debug("Requesting token (grant_type=%s) from %s", data["grant_type"], config.token_url)
    try:
        response = http.post(
            config.token_url,
            data=data,
            auth=auth if auth is not None else httpx.USE_CLIENT_DEFAULT,
            headers={"Accept": "application/json"},
            timeout=_timeout_arg(timeout),
        )
    except httpx.HTTPError as exc:
        logger.debug("Token request to %s failed: %s", config.token_url, exc)
        raise _transport_error(exc, context) from exc
    return _check_response(response, context)


async def aretrieve_token(
    http: httpx.AsyncClient,
    config: ClientConfig,
    data: dict[str, str],
    context: str,
    timeout: Optional[float] = None,
) -> dict[str, Any]:
    """Async counterpart of :func:`retrieve_token`.

    Task cancellation is not translated: :class:`asyncio.CancelledError`
    propagates to the caller unchanged.
    """
    _check_open(http, context)
    data = dict(data)
    auth = client_auth(config, data)
    logger.debug("Requesting token (grant_type=%s) from %s", data["grant_type"], config.token_url)
    try:
        response = await http.post(
            config.token_url,
            data=data,
            auth=auth if auth is not None else httpx.USE_CLIENT_DEFAULT,
            headers={"Accept": "application/json"},
            timeout=_timeout_arg(timeout),
        )
    except httpx.HTTPError as exc:
        logger.debug("Token request to %s failed: %s", config.token_url, exc)
        raise _transport_error(exc, context) from exc
    return _check_response(response, context)


def token_from_response(
    payload: dict[str, Any],
    previous: Optional[Token] = None,
    now: Optional[datetime] = None,
) -> Token:
    """Build a :class:`~fitbit_link.models.Token` from a token response.

    Args:
        payload: Decoded success body.
        previous: The token being replaced. Its refresh token is carried
            over when the response does not include a new one.
        now: Issue instant used to compute the absolute expiry.
    """
    now = now or datetime.now(timezone.utc)
    expiry: Optional[datetime] = None
    expires_in = payload.get("expires_in")
    if expires_in:
        expiry = now + timedelta(seconds=float(expires_in))
    refresh_token = payload.get("refresh_token") or ""
    if not refresh_token and previous is not None:
        refresh_token = previous.refresh_token
    return Token(
        access_token=payload["access_token"],
        token_type=payload.get("token_type") or "Bearer",
        refresh_token=refresh_token,
        expiry=expiry,
    )


def link_from_response(
    payload: dict[str, Any],
    status_code: int = 200,
    now: Optional[datetime] = None,
) -> LinkResponse:
    """Build a :class:`~fitbit_link.models.LinkResponse` from an exchange response.

    Raises:
        ProviderError: If the provider-specific ``user_id`` field is absent.
    """
    user_id = payload.get("user_id")
    if not isinstance(user_id, str) or not user_id:
        raise ProviderError(
            f"{EXCHANGE_CONTEXT}: token response missing 'user_id' field",
            status_code=status_code,
            body=json.dumps(payload),
        )
    return LinkResponse(
        user_id=user_id,
        scope=Scope.from_string(payload.get("scope") or ""),
        token=token_from_response(payload, now=now),
    )
