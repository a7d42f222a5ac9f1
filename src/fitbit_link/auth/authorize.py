"""Authorization URL construction.

Builds the URL the user is redirected to in order to grant access, along
with the per-attempt ``state`` and ``code_verifier`` the caller must keep
until the code exchange. Nothing here touches the network.
"""

from __future__ import annotations

from urllib.parse import urlencode

from fitbit_link.auth.pkce import code_challenge, generate_random_string
from fitbit_link.constants import CODE_CHALLENGE_METHOD
from fitbit_link.models import AuthorizationRequest, ClientConfig


def build_authorization_request(
    config: ClientConfig, redirect_uri: str
) -> AuthorizationRequest:
    """Start a new authorization attempt.

    Args:
        config: The client whose consent screen is requested.
        redirect_uri: Where the provider sends the user back with the
            ``code`` and ``state`` query parameters.

    Returns:
        An :class:`~fitbit_link.models.AuthorizationRequest` holding the
        URL plus the freshly generated ``state`` and ``code_verifier``.

    Raises:
        GenerationError: If secure randomness is unavailable.
    """
    state = generate_random_string(config.state_length)
    code_verifier = generate_random_string(config.code_verifier_length)

    params: dict[str, str] = {
        "client_id": config.client_id,
        "response_type": "code",
    }
    if config.scopes:
        params["scope"] = " ".join(config.scopes)
    params.update(
        {
            "redirect_uri": redirect_uri,
            "state": state,
            "code_challenge": code_challenge(code_verifier),
            "code_challenge_method": CODE_CHALLENGE_METHOD,
        }
    )
    if config.debug:
        params["prompt"] = "consent"

    separator = "&" if "?" in config.authorization_url else "?"
    url = f"{config.authorization_url}{separator}{urlencode(params)}"
    return AuthorizationRequest(
        url=url,
        state=state,
        code_verifier=code_verifier,
        redirect_uri=redirect_uri,
    )
