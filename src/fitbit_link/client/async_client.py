"""Asynchronous Fitbit OAuth2 client -- mirrors :class:`~fitbit_link.client.sync_client.Client`.

:class:`AsyncClient` offers the same operations on top of
:class:`httpx.AsyncClient`. Cancelling the awaiting task aborts an
in-flight token request; :class:`asyncio.CancelledError` reaches the
caller as-is, so it can never be confused with a
:class:`~fitbit_link.exceptions.ProviderError`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from fitbit_link.auth.authorize import build_authorization_request
from fitbit_link.auth.httpx_auth import AsyncTokenAuth
from fitbit_link.auth.refresher import AsyncReuseTokenSource, AsyncTokenRefresher
from fitbit_link.auth.token import (
    EXCHANGE_CONTEXT,
    aretrieve_token,
    exchange_request_data,
    link_from_response,
)
from fitbit_link.client.session import AsyncApiSession
from fitbit_link.locale import locale_headers
from fitbit_link.models import (
    AuthorizationRequest,
    ClientConfig,
    LinkResponse,
    Token,
    TokenUpdateHook,
)

logger = logging.getLogger(__name__)


class AsyncClient:
    """Non-blocking client for one registered Fitbit application.

    Args:
        config: Immutable client settings.
        update_token: Optional ``hook(old, new)`` invoked after every
            successful refresh; may be a coroutine function.
        http: HTTP client for token requests. When omitted, one is created
            and closed by :meth:`aclose`.

    Example::

        async with AsyncClient(config) as client:
            linked = await client.link(code, verifier, redirect_uri)
    """

    def __init__(
        self,
        config: ClientConfig,
        update_token: Optional[TokenUpdateHook] = None,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._update_token = update_token
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(timeout=config.timeout)

    async def __aenter__(self) -> AsyncClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def config(self) -> ClientConfig:
        return self._config

    def auth_code_url(self, redirect_uri: str) -> AuthorizationRequest:
        """Start an authorization attempt. Performs no I/O."""
        return build_authorization_request(self._config, redirect_uri)

    async def link(
        self,
        code: str,
        code_verifier: str,
        redirect_uri: str,
        timeout: Optional[float] = None,
    ) -> LinkResponse:
        """Exchange an authorization code for a token.

        Behaves like :meth:`~fitbit_link.client.sync_client.Client.link`.
        """
        payload = await aretrieve_token(
            self._http,
            self._config,
            exchange_request_data(self._config, code, code_verifier, redirect_uri),
            EXCHANGE_CONTEXT,
            timeout=timeout,
        )
        linked = link_from_response(payload)
        logger.info("Linked Fitbit user %s (scope: %s)", linked.user_id, linked.scope)
        return linked

    def token_source(
        self, token: Token, timeout: Optional[float] = None
    ) -> AsyncTokenRefresher:
        return AsyncTokenRefresher(
            self._config,
            self._http,
            token,
            update_token=self._update_token,
            timeout=timeout,
        )

    def session(self, token: Token, **kwargs: Any) -> AsyncApiSession:
        """Return an :class:`httpx.AsyncClient` for the REST API authorized by *token*.

        Owns a private token client under the same conditions as
        :meth:`~fitbit_link.client.sync_client.Client.session`.
        """
        token_http: Optional[httpx.AsyncClient] = None
        if self._owns_http:
            token_http = httpx.AsyncClient(
                timeout=self._config.timeout, transport=kwargs.get("transport")
            )
        refresher = AsyncTokenRefresher(
            self._config,
            token_http if token_http is not None else self._http,
            token,
            update_token=self._update_token,
        )
        headers = {"Accept": "application/json", **locale_headers(self._config.locale)}
        headers.update(kwargs.pop("headers", None) or {})
        kwargs.setdefault("timeout", self._config.timeout)
        return AsyncApiSession(
            token_http=token_http,
            base_url=self._config.api_base_url,
            auth=AsyncTokenAuth(AsyncReuseTokenSource(token, refresher)),
            headers=headers,
            **kwargs,
        )
