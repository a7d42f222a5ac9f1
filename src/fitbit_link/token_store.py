"""On-disk token storage for the ``fitbit-link`` command line.

The library itself never persists tokens; the CLI is a caller like any
other and keeps them here. Each named account maps to
``~/.local/share/fitbit-link/tokens/<name>.json`` (XDG) holding a
serialised :class:`StoredLink`, plus an optional
``<name>.pending.json`` holding the :class:`~fitbit_link.models.AuthorizationRequest`
of an authorization attempt that has not been exchanged yet.

All writes are atomic with ``0o600`` permissions so that tokens are never
world-readable, even momentarily.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from fitbit_link.config import atomic_write, get_data_dir
from fitbit_link.exceptions import ConfigError
from fitbit_link.models import AuthorizationRequest, Scope, Token


class StoredLink(BaseModel):
    """A linked account as persisted by :class:`TokenStore`."""

    token: Token
    user_id: Optional[str] = None
    scope: Scope = Field(default_factory=Scope)


def _tokens_dir() -> Path:
    """Return the tokens directory, creating it if needed."""
    path = get_data_dir() / "tokens"
    path.mkdir(parents=True, exist_ok=True)
    return path


class TokenStore:
    """Read/write the token of one linked account.

    Args:
        name: Account label used to derive the file names.

    Example::

        store = TokenStore("default")
        client = Client(config, update_token=store.update_hook)
    """

    def __init__(self, name: str = "default") -> None:
        self._name = name
        self._path = _tokens_dir() / f"{name}.json"
        self._pending_path = _tokens_dir() / f"{name}.pending.json"

    @property
    def path(self) -> Path:
        """The filesystem path to this account's token file."""
        return self._path

    def save(self, link: StoredLink) -> None:
        """Persist *link* atomically."""
        text = json.dumps(link.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)

    def load(self) -> Optional[StoredLink]:
        """Load the stored link, or ``None`` if nothing is stored.

        Raises:
            ConfigError: If the file exists but cannot be parsed.
        """
        if not self._path.is_file():
            return None
        try:
            return StoredLink.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as exc:
            raise ConfigError(f"Corrupt token file {self._path}: {exc}") from exc

    def update_hook(self, old: Token, new: Token) -> None:
        """Token update hook: replace the stored token with *new*.

        Keeps the stored ``user_id`` and scope. Any ``OSError`` propagates
        and makes the refresh fail.
        """
        current = self.load()
        if current is None:
            current = StoredLink(token=new)
        self.save(current.model_copy(update={"token": new}))

    def clear(self) -> None:
        """Delete the stored token and any pending attempt."""
        for path in (self._path, self._pending_path):
            if path.is_file():
                path.unlink()

    # --- Pending authorization attempts ---

    def save_pending(self, request: AuthorizationRequest) -> None:
        """Remember an authorization attempt until its code is exchanged."""
        text = json.dumps(request.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._pending_path, text, mode=0o600)

    def load_pending(self) -> Optional[AuthorizationRequest]:
        """Return the pending attempt, if any, without consuming it.

        A pending file that cannot be parsed is removed.

        Raises:
            ConfigError: If the pending file is corrupt.
        """
        if not self._pending_path.is_file():
            return None
        try:
            return AuthorizationRequest.model_validate_json(
                self._pending_path.read_text(encoding="utf-8")
            )
        except (ValueError, OSError) as exc:
            self.discard_pending()
            raise ConfigError(f"Corrupt pending authorization: {exc}") from exc

    def discard_pending(self) -> None:
        """Forget the pending attempt once its code was exchanged or rejected."""
        if self._pending_path.is_file():
            self._pending_path.unlink()
