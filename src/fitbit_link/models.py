"""Canonical Pydantic models shared across all fitbit_link modules.

The models fall into two groups:

**Client configuration** -- :class:`ApplicationType` and
:class:`ClientConfig`, loaded from ``config.json`` by
:mod:`fitbit_link.config` or built directly by library callers.

**OAuth2 values** -- :class:`Token`, :class:`Scope`,
:class:`LinkResponse`, :class:`AuthorizationRequest`, and
:class:`ProviderErrorDetail`. These are frozen: a refresh produces a new
:class:`Token` rather than mutating the old one.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from fitbit_link.constants import (
    API_BASE_URL,
    AUTHORIZATION_URL,
    CODE_VERIFIER_LENGTH,
    CSRF_STATE_LENGTH,
    DEFAULT_TIMEOUT,
    EXPIRY_LEEWAY,
    TOKEN_URL,
)
from fitbit_link.locale import Locale


# --- Client configuration ---


class ApplicationType(str, enum.Enum):
    """Application types a Fitbit app can be registered as.

    ``SERVER`` apps keep their client secret on a backend and are the only
    type that presents ``client_id`` explicitly in the code exchange.
    ``CLIENT`` and ``PERSONAL`` apps run where a secret cannot be kept.
    """

    SERVER = "server"
    CLIENT = "client"
    PERSONAL = "personal"


class ClientConfig(BaseModel):
    """Immutable settings for one registered Fitbit application.

    Example::

        ClientConfig(
            client_id="23ABCD",
            client_secret="s3cr3t",
            scopes=("activity", "sleep"),
        )
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1, description="OAuth2 client identifier")
    client_secret: str = Field(
        default="", description="Client secret; empty for public clients"
    )
    authorization_url: str = AUTHORIZATION_URL
    token_url: str = TOKEN_URL
    api_base_url: str = API_BASE_URL
    application_type: ApplicationType = ApplicationType.SERVER
    scopes: tuple[str, ...] = Field(
        default=(), description="Permissions requested on the consent screen"
    )
    debug: bool = Field(
        default=False, description="Always show the consent screen (prompt=consent)"
    )
    state_length: int = Field(default=CSRF_STATE_LENGTH, ge=1)
    # RFC 7636 section 4.1 bounds the verifier to 43..128 characters.
    code_verifier_length: int = Field(default=CODE_VERIFIER_LENGTH, ge=43, le=128)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Seconds")
    locale: Optional[Locale] = None

    @property
    def is_confidential(self) -> bool:
        """Whether the client authenticates with a secret."""
        return bool(self.client_secret)


# --- OAuth2 values ---


class Token(BaseModel):
    """An issued OAuth2 token.

    ``expiry`` is an absolute, timezone-aware UTC instant. ``None`` means
    the provider gave no lifetime and the token is treated as never
    expiring.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "Bearer"
    refresh_token: str = ""
    expiry: Optional[datetime] = None

    def is_expired(
        self,
        now: Optional[datetime] = None,
        leeway: timedelta = EXPIRY_LEEWAY,
    ) -> bool:
        """Return whether the access token is expired or about to be.

        Args:
            now: Reference instant; defaults to the current UTC time.
            leeway: Tokens expiring within this window count as expired.
        """
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        expiry = self.expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return expiry - leeway <= now

    @property
    def authorization_header(self) -> str:
        """Value for the ``Authorization`` request header."""
        token_type = self.token_type or "Bearer"
        if token_type.lower() == "bearer":
            token_type = "Bearer"
        return f"{token_type} {self.access_token}"


class Scope(BaseModel):
    """The set of permissions granted by the user.

    Only membership is meaningful; the provider's ordering is discarded.
    """

    model_config = ConfigDict(frozen=True)

    permissions: frozenset[str] = frozenset()

    @classmethod
    def from_string(cls, value: str) -> Scope:
        """Parse a space-delimited scope string such as ``"activity sleep"``."""
        return cls(permissions=frozenset(p for p in value.split(" ") if p))

    def __contains__(self, permission: object) -> bool:
        return permission in self.permissions

    def __str__(self) -> str:
        return " ".join(sorted(self.permissions))


class LinkResponse(BaseModel):
    """Result of a successful authorization code exchange."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    scope: Scope
    token: Token


class AuthorizationRequest(BaseModel):
    """One authorization attempt.

    ``state`` and ``code_verifier`` must be kept by the caller (e.g. in the
    user's session) until the matching :meth:`~fitbit_link.client.Client.link`
    call, and discarded afterwards.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    state: str
    code_verifier: str
    redirect_uri: str


class ProviderErrorDetail(BaseModel):
    """One entry of an error body returned by the token endpoint.

    Accepts both Fitbit's ``errors[]`` entries (``errorType``/``message``/
    ``fieldName``) and the field names used by :rfc:`6749`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    error_type: str = Field(alias="errorType")
    message: str = ""
    field_name: Optional[str] = Field(default=None, alias="fieldName")


TokenUpdateHook = Callable[[Token, Token], object]
"""Signature of the caller's persistence hook: ``hook(old_token, new_token)``.

The hook signals failure by raising. The async refresher also awaits the
result when the hook returns an awaitable.
"""
