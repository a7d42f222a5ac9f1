"""Fitbit OAuth2 clients.

Classes:
    :class:`Client` -- blocking client backed by :class:`httpx.Client`.
    :class:`AsyncClient` -- non-blocking client backed by :class:`httpx.AsyncClient`.
    :class:`ApiSession`, :class:`AsyncApiSession` -- REST API clients returned
        by ``session()``.

:class:`Client` and :class:`AsyncClient` take a :class:`~fitbit_link.models.ClientConfig` and an optional
token update hook, and can be used as (async) context managers.

Example::

    from fitbit_link.client import Client

    with Client(config, update_token=store.update_hook) as client:
        attempt = client.auth_code_url(redirect_uri)
"""

from fitbit_link.client.async_client import AsyncClient
from fitbit_link.client.session import ApiSession, AsyncApiSession
from fitbit_link.client.sync_client import Client

__all__ = ["Client", "AsyncClient", "ApiSession", "AsyncApiSession"]
