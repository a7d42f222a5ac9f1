"""Random parameter generation and PKCE (:rfc:`7636`) challenge derivation."""

from __future__ import annotations

import base64
import hashlib
import secrets

from fitbit_link.constants import RANDOM_ALPHABET
from fitbit_link.exceptions import GenerationError


def generate_random_string(length: int, alphabet: str = RANDOM_ALPHABET) -> str:
    """Return *length* characters drawn uniformly from *alphabet*.

    Used for both the CSRF ``state`` and the PKCE ``code_verifier``. The
    characters come from :mod:`secrets`, i.e. the operating system's
    CSPRNG.

    Args:
        length: Number of characters to produce. Must be at least 1.
        alphabet: Characters to draw from. Defaults to ASCII digits and
            letters.

    Returns:
        The random string.

    Raises:
        ValueError: If *length* is smaller than 1.
        GenerationError: If the OS randomness source is unavailable.
    """
    if length < 1:
        raise ValueError(f"length must be at least 1, got {length}")
    try:
        return "".join(secrets.choice(alphabet) for _ in range(length))
    except (NotImplementedError, OSError) as exc:
        raise GenerationError(f"Secure random source unavailable: {exc}") from exc


def code_challenge(verifier: str) -> str:
    """Derive the S256 ``code_challenge`` for *verifier*.

    ``BASE64URL(SHA256(verifier))`` without ``=`` padding, always 43
    characters long.
    """
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
