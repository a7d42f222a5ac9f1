"""OAuth 2.0 Authorization Code + PKCE machinery for the Fitbit Web API.

The pieces, leaf to root:

- :func:`generate_random_string` / :func:`code_challenge` -- CSRF ``state``,
  PKCE ``code_verifier`` and its S256 challenge.
- :func:`build_authorization_request` -- the consent URL plus the
  per-attempt secrets the caller must keep.
- :mod:`fitbit_link.auth.token` -- the token endpoint protocol shared by
  the code exchange and the refresh grant.
- :class:`TokenRefresher` / :class:`ReuseTokenSource` -- token sources that
  refresh on demand, and :class:`TokenAuth` which plugs them into
  :mod:`httpx`.

Most callers go through :class:`fitbit_link.client.Client` instead of
using these directly.
"""

from fitbit_link.auth.authorize import build_authorization_request
from fitbit_link.auth.httpx_auth import AsyncTokenAuth, TokenAuth
from fitbit_link.auth.pkce import code_challenge, generate_random_string
from fitbit_link.auth.refresher import (
    AsyncReuseTokenSource,
    AsyncTokenRefresher,
    AsyncTokenSource,
    ReuseTokenSource,
    TokenRefresher,
    TokenSource,
)

__all__ = [
    "AsyncReuseTokenSource",
    "AsyncTokenAuth",
    "AsyncTokenRefresher",
    "AsyncTokenSource",
    "ReuseTokenSource",
    "TokenAuth",
    "TokenRefresher",
    "TokenSource",
    "build_authorization_request",
    "code_challenge",
    "generate_random_string",
]
