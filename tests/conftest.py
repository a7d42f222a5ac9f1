"""Shared test fixtures for fitbit_link.

Provides client configurations, canned token endpoint payloads, isolated
config environments, and output state management. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from fitbit_link.models import ApplicationType, ClientConfig
from fitbit_link.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Global output state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Drop the installed OutputManager once each test is done.

    A manager built inside CliRunner holds the redirected streams, which
    are closed after the invocation returns.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Client configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client_config() -> ClientConfig:
    """A confidential server application requesting two scopes."""
    return ClientConfig(
        client_id="23ABCD",
        client_secret="s3cr3t",
        token_url="https://api.fitbit.test/oauth2/token",
        api_base_url="https://api.fitbit.test",
        application_type=ApplicationType.SERVER,
        scopes=("activity", "heartrate"),
    )


@pytest.fixture
def public_config() -> ClientConfig:
    """A public client application without a secret."""
    return ClientConfig(
        client_id="23PUBL",
        token_url="https://api.fitbit.test/oauth2/token",
        api_base_url="https://api.fitbit.test",
        application_type=ApplicationType.CLIENT,
    )


@pytest.fixture
def exchange_payload() -> dict[str, Any]:
    """Successful authorization code exchange response."""
    return {
        "access_token": "AT1",
        "expires_in": 3600,
        "refresh_token": "RT1",
        "scope": "heartrate activity",
        "token_type": "Bearer",
        "user_id": "U1",
    }


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    so that tests never touch real user config or tokens. Clears all
    FITBIT_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("fitbit_link.config._is_xdg_platform", lambda: True)

    for var in [
        "FITBIT_CLIENT_ID",
        "FITBIT_CLIENT_SECRET",
        "FITBIT_APPLICATION_TYPE",
        "FITBIT_DEBUG",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format output manager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
