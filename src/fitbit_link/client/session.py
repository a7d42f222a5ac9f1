"""HTTP clients returned by ``Client.session`` and ``AsyncClient.session``.

A session may own the HTTP client its token refresher posts through. It is
closed together with the session, so refreshing keeps working after the
:class:`~fitbit_link.client.sync_client.Client` that created the session
has been closed.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx


class ApiSession(httpx.Client):
    """An :class:`httpx.Client` for the REST API.

    Args:
        token_http: Token endpoint client to close with this session, or
            ``None`` when the token client belongs to someone else.
        **kwargs: Passed to :class:`httpx.Client`.
    """

    def __init__(self, *, token_http: Optional[httpx.Client] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._token_http = token_http

    @property
    def token_http(self) -> Optional[httpx.Client]:
        return self._token_http

    def close(self) -> None:
        super().close()
        if self._token_http is not None:
            self._token_http.close()

    def __exit__(self, *args: Any) -> None:
        super().__exit__(*args)
        if self._token_http is not None:
            self._token_http.close()


class AsyncApiSession(httpx.AsyncClient):
    """Async counterpart of :class:`ApiSession`."""

    def __init__(
        self, *, token_http: Optional[httpx.AsyncClient] = None, **kwargs: Any
    ) -> None:
        super().__init__(**kwargs)
        self._token_http = token_http

    @property
    def token_http(self) -> Optional[httpx.AsyncClient]:
        return self._token_http

    async def aclose(self) -> None:
        await super().aclose()
        if self._token_http is not None:
            await self._token_http.aclose()

    async def __aexit__(self, *args: Any) -> None:
        await super().__aexit__(*args)
        if self._token_http is not None:
            await self._token_http.aclose()
