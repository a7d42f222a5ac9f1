"""Synchronous Fitbit OAuth2 client.

This module provides :class:`Client`, the blocking entry point to the
authorization flow:

- **Authorization URL** -- :meth:`Client.auth_code_url` starts an attempt
  and returns the per-attempt ``state`` and ``code_verifier``.
- **Link** -- :meth:`Client.link` exchanges the authorization code for a
  token and the provider's ``user_id`` and granted scope.
- **Refresh** -- :meth:`Client.token_source` returns a
  :class:`~fitbit_link.auth.refresher.TokenRefresher` wired to the update
  hook given at construction.
- **API session** -- :meth:`Client.session` returns an :class:`httpx.Client`
  for the REST endpoints that refreshes the token transparently.

See Also:
    :class:`~fitbit_link.client.async_client.AsyncClient` for the
    equivalent non-blocking implementation.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from fitbit_link.auth.authorize import build_authorization_request
from fitbit_link.auth.httpx_auth import TokenAuth
from fitbit_link.auth.refresher import ReuseTokenSource, TokenRefresher
from fitbit_link.auth.token import (
    EXCHANGE_CONTEXT,
    exchange_request_data,
    link_from_response,
    retrieve_token,
)
from fitbit_link.client.session import ApiSession
from fitbit_link.locale import locale_headers
from fitbit_link.models import (
    AuthorizationRequest,
    ClientConfig,
    LinkResponse,
    Token,
    TokenUpdateHook,
)

logger = logging.getLogger(__name__)


class Client:
    """Blocking client for one registered Fitbit application.

    Args:
        config: Immutable client settings.
        update_token: Optional ``hook(old, new)`` invoked after every
            successful refresh. Raising from it fails the refresh.
        http: HTTP client for token requests. When omitted, one is created
            with ``config.timeout`` and closed by :meth:`close`.

    Example::

        with Client(config, update_token=save) as client:
            attempt = client.auth_code_url("https://app.example.com/callback")
            # ... redirect the user to attempt.url, receive ?code=&state= ...
            linked = client.link(code, attempt.code_verifier, attempt.redirect_uri)
    """

    def __init__(
        self,
        config: ClientConfig,
        update_token: Optional[TokenUpdateHook] = None,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self._config = config
        self._update_token = update_token
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(timeout=config.timeout)

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the token HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Authorization flow
    # ------------------------------------------------------------------ #

    def auth_code_url(self, redirect_uri: str) -> AuthorizationRequest:
        """Start an authorization attempt.

        Returns:
            The consent URL together with the ``state`` and
            ``code_verifier`` to keep until :meth:`link`.
        """
        return build_authorization_request(self._config, redirect_uri)

    def link(
        self,
        code: str,
        code_verifier: str,
        redirect_uri: str,
        timeout: Optional[float] = None,
    ) -> LinkResponse:
        """Exchange an authorization code for a token.

        The caller must already have checked that the ``state`` echoed by
        the provider matches the attempt's ``state``.

        Args:
            code: The ``code`` query parameter from the redirect.
            code_verifier: The verifier of the same attempt.
            redirect_uri: The redirect URI used for the attempt.
            timeout: Deadline in seconds for this call.

        Returns:
            The linked user's id, granted scope and token. Nothing is
            persisted.

        Raises:
            ProviderError: The token endpoint rejected the exchange.
            RequestCancelledError: The deadline expired.
            NetworkError: The request could not be completed.
        """
        payload = retrieve_token(
            self._http,
            self._config,
            exchange_request_data(self._config, code, code_verifier, redirect_uri),
            EXCHANGE_CONTEXT,
            timeout=timeout,
        )
        linked = link_from_response(payload)
        logger.info("Linked Fitbit user %s (scope: %s)", linked.user_id, linked.scope)
        return linked

    # ------------------------------------------------------------------ #
    # Refresh and API access
    # ------------------------------------------------------------------ #

    def token_source(self, token: Token, timeout: Optional[float] = None) -> TokenRefresher:
        """Return a refresher starting from *token*, wired to the update hook."""
        return TokenRefresher(
            self._config,
            self._http,
            token,
            update_token=self._update_token,
            timeout=timeout,
        )

    def session(self, token: Token, **kwargs: Any) -> ApiSession:
        """Return an :class:`httpx.Client` for the REST API authorized by *token*.

        The token is reused until it expires and then refreshed. Extra
        keyword arguments are passed to :class:`httpx.Client`. The caller
        closes the returned client.

        When this instance created its own token HTTP client, the session
        gets a private one on the same ``transport`` and closes it with
        itself, so the session outlives :meth:`close`. A token client passed
        in as ``http`` is shared and stays the caller's to close.
        """
        token_http: Optional[httpx.Client] = None
        if self._owns_http:
            token_http = httpx.Client(
                timeout=self._config.timeout, transport=kwargs.get("transport")
            )
        refresher = TokenRefresher(
            self._config,
            token_http if token_http is not None else self._http,
            token,
            update_token=self._update_token,
        )
        headers = {"Accept": "application/json", **locale_headers(self._config.locale)}
        headers.update(kwargs.pop("headers", None) or {})
        kwargs.setdefault("timeout", self._config.timeout)
        return ApiSession(
            token_http=token_http,
            base_url=self._config.api_base_url,
            auth=TokenAuth(ReuseTokenSource(token, refresher)),
            headers=headers,
            **kwargs,
        )
