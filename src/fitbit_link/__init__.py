"""fitbit_link -- Fitbit Web API OAuth2 (Authorization Code + PKCE) client.

The package links a Fitbit account to an application and keeps its access
token fresh. The caller owns token storage; refreshed tokens are handed to
an update hook.

Typical workflow::

    client = Client(config, update_token=save_token)
    attempt = client.auth_code_url("https://app.example.com/callback")
    # redirect the user to attempt.url, check the echoed state, then:
    linked = client.link(code, attempt.code_verifier, attempt.redirect_uri)
    api = client.session(linked.token)

Modules:
    auth: PKCE, authorization URL, token endpoint, refreshers, httpx auth.
    client: Blocking and asyncio clients.
    models: Pydantic models shared across the entire package.
    locale: Supported locales and their measurement units.
    exceptions: Exception hierarchy with exit-code mapping.
    config: XDG-aware configuration for the command line.
    token_store: On-disk token storage used by the command line.
    app: Typer application and CLI entry point.
"""

__version__ = "0.1.0"

from fitbit_link.client import AsyncClient, Client
from fitbit_link.exceptions import (
    ConfigError,
    FitbitError,
    GenerationError,
    NetworkError,
    ProviderError,
    RequestCancelledError,
    TokenUpdateError,
)
from fitbit_link.locale import Locale, Unit, get_corresponding_unit
from fitbit_link.models import (
    ApplicationType,
    AuthorizationRequest,
    ClientConfig,
    LinkResponse,
    Scope,
    Token,
)

__all__ = [
    "ApplicationType",
    "AsyncClient",
    "AuthorizationRequest",
    "Client",
    "ClientConfig",
    "ConfigError",
    "FitbitError",
    "GenerationError",
    "LinkResponse",
    "Locale",
    "NetworkError",
    "ProviderError",
    "RequestCancelledError",
    "Scope",
    "Token",
    "TokenUpdateError",
    "Unit",
    "get_corresponding_unit",
]
