"""``httpx`` authentication flows that keep the bearer token fresh.

These are the transport-side half of transparent refresh: each outgoing
API request gets the current token from a reuse source, which refreshes it
once it has expired. A ``401`` answer means the provider disagrees with our
idea of expiry, so the held token is dropped, a new one is obtained, and
the request is replayed once.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Generator

import httpx

from fitbit_link.auth.refresher import AsyncReuseTokenSource, ReuseTokenSource

logger = logging.getLogger(__name__)


class TokenAuth(httpx.Auth):
    """Bearer authentication for :class:`httpx.Client` backed by a token source."""

    requires_request_body = True

    def __init__(self, source: ReuseTokenSource) -> None:
        self._source = source

    def sync_auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self._source.token().authorization_header
        response = yield request
        if response.status_code == 401:
            logger.debug("Got 401 for %s %s, refreshing token", request.method, request.url)
            self._source.invalidate()
            request.headers["Authorization"] = self._source.token().authorization_header
            yield request


class AsyncTokenAuth(httpx.Auth):
    """Bearer authentication for :class:`httpx.AsyncClient`."""

    requires_request_body = True

    def __init__(self, source: AsyncReuseTokenSource) -> None:
        self._source = source

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self._source.token()
        request.headers["Authorization"] = token.authorization_header
        response = yield request
        if response.status_code == 401:
            logger.debug("Got 401 for %s %s, refreshing token", request.method, request.url)
            self._source.invalidate()
            token = await self._source.token()
            request.headers["Authorization"] = token.authorization_header
            yield request
