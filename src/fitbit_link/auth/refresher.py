"""Token sources: obtaining a currently valid token, refreshing when needed.

:class:`TokenSource` is the one-operation capability "give me a token".
Two implementations ship here, each with an async twin:

* :class:`TokenRefresher` -- always spends the last known refresh token on
  a ``refresh_token`` grant and hands the result to the caller's update
  hook. It never looks at expiry.
* :class:`ReuseTokenSource` -- returns a held token until it expires and
  only then asks a wrapped source (normally a refresher) for a new one.

Neither serialises concurrent calls. Refresh tokens are single-use, so two
refreshes racing on the same stale refresh token cannot both succeed;
callers that share one refresher across threads or tasks must guard it
themselves.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

import httpx

from fitbit_link.auth.token import (
    REFRESH_CONTEXT,
    aretrieve_token,
    refresh_request_data,
    retrieve_token,
    token_from_response,
)
from fitbit_link.constants import EXPIRY_LEEWAY
from fitbit_link.exceptions import TokenUpdateError
from fitbit_link.models import ClientConfig, Token, TokenUpdateHook

logger = logging.getLogger(__name__)


class TokenSource(ABC):
    """Anything that can produce a currently usable :class:`Token`."""

    @abstractmethod
    def token(self) -> Token:
        """Return a token to authorize the next API call.

        Raises:
            FitbitError: If no token can be produced.
        """
        ...


class AsyncTokenSource(ABC):
    """Async counterpart of :class:`TokenSource`."""

    @abstractmethod
    async def token(self) -> Token:
        ...


def _hook_failed(old: Token, new: Token, exc: Exception) -> TokenUpdateError:
    logger.warning(
        "Token update hook failed (%s); keeping the previous token. The "
        "provider may already have revoked its refresh token.",
        exc,
    )
    return TokenUpdateError(f"Token update hook failed: {exc}", old_token=old, new_token=new)


class TokenRefresher(TokenSource):
    """Refresh a token through the ``refresh_token`` grant.

    Args:
        config: Client credentials and token endpoint.
        http: HTTP client used for the token request.
        token: The last token known to the caller. Its refresh token is
            spent by the next :meth:`token` call.
        update_token: Optional ``hook(old, new)`` called after every
            successful refresh, before the new token is adopted. If it
            raises, the refresh fails with :class:`TokenUpdateError` and
            :attr:`last_token` is left unchanged.
        timeout: Per-call deadline in seconds; ``None`` uses the HTTP
            client's timeout.
    """

    def __init__(
        self,
        config: ClientConfig,
        http: httpx.Client,
        token: Token,
        update_token: Optional[TokenUpdateHook] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._config = config
        self._http = http
        self._last_token = token
        self._update_token = update_token
        self._timeout = timeout

    @property
    def last_token(self) -> Token:
        """The most recent token this refresher has adopted."""
        return self._last_token

    def token(self) -> Token:
        """Perform one refresh and return the new token.

        Raises:
            ProviderError: The token endpoint rejected the refresh token.
            NetworkError: The request could not be completed.
            TokenUpdateError: The update hook raised.
        """
        old = self._last_token
        payload = retrieve_token(
            self._http,
            self._config,
            refresh_request_data(old.refresh_token),
            REFRESH_CONTEXT,
            timeout=self._timeout,
        )
        new = token_from_response(payload, previous=old)
        if self._update_token is not None:
            try:
                self._update_token(old, new)
            except Exception as exc:
                raise _hook_failed(old, new, exc) from exc
        self._last_token = new
        logger.info("Refreshed access token (expires %s)", new.expiry)
        return new


class AsyncTokenRefresher(AsyncTokenSource):
    """Async counterpart of :class:`TokenRefresher`.

    The update hook may be a plain function or a coroutine function.
    """

    def __init__(
        self,
        config: ClientConfig,
        http: httpx.AsyncClient,
        token: Token,
        update_token: Optional[TokenUpdateHook] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._config = config
        self._http = http
        self._last_token = token
        self._update_token = update_token
        self._timeout = timeout

    @property
    def last_token(self) -> Token:
        return self._last_token

    async def token(self) -> Token:
        old = self._last_token
        payload = await aretrieve_token(
            self._http,
            self._config,
            refresh_request_data(old.refresh_token),
            REFRESH_CONTEXT,
            timeout=self._timeout,
        )
        new = token_from_response(payload, previous=old)
        if self._update_token is not None:
            try:
                result = self._update_token(old, new)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                raise _hook_failed(old, new, exc) from exc
        self._last_token = new
        logger.info("Refreshed access token (expires %s)", new.expiry)
        return new


class ReuseTokenSource(TokenSource):
    """Hand out a held token until it expires, then ask *source* for another.

    Args:
        token: Initial token, or ``None`` to fetch on first use.
        source: Where new tokens come from once the held one expires.
        leeway: Treat tokens expiring within this window as expired.
    """

    def __init__(
        self,
        token: Optional[Token],
        source: TokenSource,
        leeway: timedelta = EXPIRY_LEEWAY,
    ) -> None:
        self._token = token
        self._source = source
        self._leeway = leeway

    def token(self) -> Token:
        if self._token is not None and not self._token.is_expired(leeway=self._leeway):
            return self._token
        self._token = self._source.token()
        return self._token

    def invalidate(self) -> None:
        """Forget the held token so the next call goes to the source."""
        self._token = None


class AsyncReuseTokenSource(AsyncTokenSource):
    """Async counterpart of :class:`ReuseTokenSource`."""

    def __init__(
        self,
        token: Optional[Token],
        source: AsyncTokenSource,
        leeway: timedelta = EXPIRY_LEEWAY,
    ) -> None:
        self._token = token
        self._source = source
        self._leeway = leeway

    async def token(self) -> Token:
        if self._token is not None and not self._token.is_expired(leeway=self._leeway):
            return self._token
        self._token = await self._source.token()
        return self._token

    def invalidate(self) -> None:
        self._token = None
