"""Configuration for the ``fitbit-link`` command line.

Three concerns live here:

* **Where files go** -- :func:`get_config_dir` holds ``config.json``,
  :func:`get_data_dir` holds stored tokens and crash logs. Linux and the
  BSDs follow XDG (``$XDG_CONFIG_HOME``/``$XDG_DATA_HOME``); elsewhere
  everything sits under ``~/.fitbit-link/``.
* **Which client to use** -- :func:`load_client_config` reads
  ``config.json`` into a :class:`~fitbit_link.models.ClientConfig` and lets
  ``FITBIT_*`` environment variables win over the file.
* **Where the secret comes from** -- :func:`resolve_credential` turns an
  ``env:``/``file:``/``prompt`` descriptor into the client secret, so the
  secret itself never has to be written to ``config.json``.

Library callers do not need any of this: they build a
:class:`~fitbit_link.models.ClientConfig` directly.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from fitbit_link.exceptions import ConfigError
from fitbit_link.models import ClientConfig

_APP_NAME = "fitbit-link"
_CONFIG_FILENAME = "config.json"

_ENV_OVERRIDES = {
    "FITBIT_CLIENT_ID": "client_id",
    "FITBIT_CLIENT_SECRET": "client_secret",
    "FITBIT_APPLICATION_TYPE": "application_type",
    "FITBIT_DEBUG": "debug",
}

_CREDENTIAL_PREFIXES = ("env:", "file:")


# --- Directories ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses the XDG Base Directory layout (Linux/BSD)."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: Path, fallback: Path) -> Path:
    if _is_xdg_platform():
        root = Path(os.environ[xdg_var]) if os.environ.get(xdg_var) else xdg_default
        path = root / _APP_NAME
    else:
        path = fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``; created on first use.

    ``$XDG_CONFIG_HOME/fitbit-link`` (default ``~/.config/fitbit-link``) on
    XDG platforms, ``~/.fitbit-link`` elsewhere.
    """
    home = Path.home()
    return _app_dir("XDG_CONFIG_HOME", home / ".config", home / f".{_APP_NAME}")


def get_data_dir() -> Path:
    """Directory holding stored tokens and crash logs; created on first use.

    ``$XDG_DATA_HOME/fitbit-link`` (default ``~/.local/share/fitbit-link``)
    on XDG platforms, ``~/.fitbit-link/data`` elsewhere.
    """
    home = Path.home()
    return _app_dir(
        "XDG_DATA_HOME", home / ".local" / "share", home / f".{_APP_NAME}" / "data"
    )


# --- Writing files ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* so readers never see a partial file.

    The content goes to a sibling temporary file that is renamed over
    *path*. With *mode*, permissions are set while the file is still empty,
    so a token file is never readable by others even briefly.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if mode is not None:
            os.fchmod(fd, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


# --- Client config ---


def config_path() -> Path:
    """Default location of the client config file."""
    return get_config_dir() / _CONFIG_FILENAME


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def load_client_config(path: Optional[Path] = None) -> ClientConfig:
    """Load the client configuration.

    Precedence, highest first:
        1. ``FITBIT_CLIENT_ID``, ``FITBIT_CLIENT_SECRET``,
           ``FITBIT_APPLICATION_TYPE``, ``FITBIT_DEBUG``
        2. The config file (``~/.config/fitbit-link/config.json``)
        3. Model defaults

    A ``client_secret`` of the form ``env:VAR`` or ``file:/path`` is
    resolved with :func:`resolve_credential`.

    Args:
        path: Config file to read instead of the default location.

    Raises:
        ConfigError: If the file is invalid, a credential cannot be
            resolved, or the result fails validation (e.g. no client id).
    """
    path = path or config_path()
    data = _read_config_file(path)

    for env_var, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data[field_name] = value

    secret = data.get("client_secret")
    if isinstance(secret, str) and secret.startswith(_CREDENTIAL_PREFIXES):
        data["client_secret"] = resolve_credential(secret)

    try:
        return ClientConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid client configuration ({path}): {exc}") from exc


def save_client_config(config: ClientConfig, path: Optional[Path] = None) -> None:
    """Persist the client configuration atomically with ``0o600`` permissions.

    The secret is written as given; store a ``env:``/``file:`` descriptor
    in the file by hand to keep it out of the config.
    """
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    atomic_write(path or config_path(), text, mode=0o600)


# --- Client secret sources ---


def resolve_credential(source: str) -> str:
    """Return the client secret named by *source*.

    ``env:NAME`` reads an environment variable, ``file:PATH`` reads a file
    (surrounding whitespace stripped, ``~`` expanded), and ``prompt`` asks
    on the terminal without echo.

    Raises:
        ConfigError: If the variable is unset, the file is missing or
            unreadable, there is no terminal to prompt on, or the
            descriptor is not recognised.
    """
    kind, _, target = source.partition(":")

    if kind == "env" and target:
        try:
            return os.environ[target]
        except KeyError:
            raise ConfigError(f"Client secret variable {target} is not set") from None

    if kind == "file" and target:
        secret_file = Path(target).expanduser()
        if not secret_file.is_file():
            raise ConfigError(f"Client secret file not found: {secret_file}")
        try:
            return secret_file.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read client secret file {secret_file}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for the client secret: stdin is not a TTY")
        return getpass.getpass("Fitbit client secret: ")

    raise ConfigError(f"Unknown credential source format: {source}")
