"""Exception hierarchy for fitbit_link.

All exceptions inherit from :class:`FitbitError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`fitbit_link.exit_codes`. Library callers branch on the exception
type; the CLI entry point :func:`fitbit_link.app.main` catches
``FitbitError`` and exits with the matching code.

Subclass hierarchy::

    FitbitError (exit 1)
    +-- ConfigError            (exit 1)
    +-- GenerationError        (exit 1)
    +-- NetworkError           (exit 6)
    |   +-- RequestCancelledError (exit 6)
    +-- ProviderError          (exit 3)
    +-- TokenUpdateError       (exit 7)

Nothing in the package retries: every one of these reaches the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from fitbit_link.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_PROVIDER_ERROR,
    EXIT_TOKEN_UPDATE_ERROR,
)

if TYPE_CHECKING:
    from fitbit_link.models import ProviderErrorDetail, Token


class FitbitError(Exception):
    """Base exception for all fitbit_link errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(FitbitError):
    """Raised for configuration problems (missing client id, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class GenerationError(FitbitError):
    """Raised when the operating system's secure random source is unavailable.

    Not recoverable. There is deliberately no fallback to a weaker generator.
    """

    exit_code = EXIT_GENERIC_FAILURE


class NetworkError(FitbitError):
    """Raised when a token request could not complete (DNS, connection, TLS, protocol).

    The originating :mod:`httpx` exception is chained as ``__cause__``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class RequestCancelledError(NetworkError):
    """Raised when a token request was abandoned because its deadline expired.

    Distinct from :class:`ProviderError`: the provider never answered.
    """


class ProviderError(FitbitError):
    """Raised when the token endpoint answered with an error.

    Args:
        message: Human-readable error description including call-site context.
        status_code: The HTTP status returned by the provider.
        errors: Structured entries parsed from the response body. Empty
            when the body could not be parsed.
        body: The raw response body text.
    """

    exit_code = EXIT_PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int,
        errors: Optional[list[ProviderErrorDetail]] = None,
        body: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.errors = list(errors or [])
        self.body = body

    @property
    def code(self) -> Optional[str]:
        """The first reported error type (e.g. ``"invalid_grant"``), if any."""
        return self.errors[0].error_type if self.errors else None

    @property
    def description(self) -> Optional[str]:
        """The first reported error message, if any."""
        return self.errors[0].message if self.errors else None


class TokenUpdateError(FitbitError):
    """Raised when the caller's token update hook failed after a refresh.

    The refresher keeps its pre-refresh token. The provider may already
    have invalidated the old refresh token, so the issued but unadopted
    token is exposed as :attr:`new_token` for the caller to reconcile.

    Args:
        message: Human-readable error description.
        old_token: The token the refresh started from.
        new_token: The token issued by the provider but not adopted.
    """

    exit_code = EXIT_TOKEN_UPDATE_ERROR

    def __init__(self, message: str, old_token: Token, new_token: Token):
        super().__init__(message)
        self.old_token = old_token
        self.new_token = new_token
