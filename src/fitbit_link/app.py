"""Typer application and CLI entry point for fitbit-link.

The command line is a thin caller of the library. It owns what the library
deliberately leaves to callers:

* keeping the ``state`` and ``code_verifier`` of an authorization attempt
  between ``authorize`` and ``link`` (see :class:`~fitbit_link.token_store.TokenStore`),
* checking the ``state`` echoed by the provider before the code exchange,
* persisting refreshed tokens through the update hook.

Typical workflow::

    fitbit-link configure --client-id 23ABCD --client-secret env:FITBIT_SECRET --scope activity
    fitbit-link authorize --redirect-uri https://localhost:8080/callback --open
    fitbit-link link <code> --state <state>
    fitbit-link refresh

:func:`main` is the console-script entry point declared in
``pyproject.toml``. Library errors exit with the code carried by the
exception; anything else writes a crash log under the data directory.
"""

from __future__ import annotations

import logging
import secrets
import signal
import sys
import traceback
import webbrowser
from datetime import datetime
from typing import Any, Optional

import typer
from pydantic import ValidationError

from fitbit_link import __version__
from fitbit_link.exceptions import ConfigError, ProviderError
from fitbit_link.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE
from fitbit_link.locale import Locale, get_corresponding_unit
from fitbit_link.models import ApplicationType, ClientConfig
from fitbit_link.output import debug, error, get_output, info, success, suggest, warning
from fitbit_link.token_store import StoredLink, TokenStore

app = typer.Typer(
    name="fitbit-link",
    help="Link Fitbit accounts through OAuth2 Authorization Code + PKCE.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Handle ``--version``: print the package version, then exit."""
    if value:
        typer.echo(f"fitbit-link {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    account: str = typer.Option(
        "default", "--account", "-a", help="Name of the stored account to use."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output and HTTP logging."
    ),
) -> None:
    """Root callback: set up output and logging, remember the account name."""
    from fitbit_link.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    ctx.ensure_object(dict)
    ctx.obj["account"] = account


def _store(ctx: typer.Context) -> TokenStore:
    return TokenStore(ctx.obj["account"])


def _link_record(link: StoredLink) -> dict[str, Any]:
    token = link.token
    return {
        "user_id": link.user_id,
        "scope": str(link.scope),
        "token_type": token.token_type,
        "expires_at": token.expiry.isoformat() if token.expiry else None,
        "expired": token.is_expired(),
    }


@app.command("configure")
def configure(
    client_id: str = typer.Option(..., "--client-id", help="OAuth2 client ID of the app."),
    client_secret: str = typer.Option(
        "",
        "--client-secret",
        help="Client secret, or env:VAR / file:PATH to read it when the config is loaded.",
    ),
    application_type: ApplicationType = typer.Option(
        ApplicationType.SERVER, "--application-type", help="How the app is registered."
    ),
    scope: Optional[list[str]] = typer.Option(
        None, "--scope", help="Scope to request; repeat for several."
    ),
) -> None:
    """Write the client configuration used by the other commands."""
    from fitbit_link.config import config_path, save_client_config

    try:
        config = ClientConfig(
            client_id=client_id,
            client_secret=client_secret,
            application_type=application_type,
            scopes=tuple(scope or ()),
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid client configuration: {exc}") from exc
    save_client_config(config)
    if client_secret and not client_secret.startswith(("env:", "file:")):
        warning("The client secret is stored in plain text; env:VAR or file:PATH keeps it out.")
    success(f"Configuration written to {config_path()}")


@app.command("authorize")
def authorize(
    ctx: typer.Context,
    redirect_uri: str = typer.Option(
        ..., "--redirect-uri", "-r", help="Redirect URI registered for the app."
    ),
    open_browser: bool = typer.Option(
        False, "--open", help="Open the consent page in the default browser."
    ),
) -> None:
    """Start an authorization attempt and print the consent URL.

    The attempt's ``state`` and ``code_verifier`` are kept in the token
    store until ``link`` consumes them. Starting a new attempt replaces
    any earlier one.
    """
    from fitbit_link.client import Client
    from fitbit_link.config import load_client_config

    config = load_client_config()
    with Client(config) as client:
        attempt = client.auth_code_url(redirect_uri)
    _store(ctx).save_pending(attempt)

    get_output().print_record({"url": attempt.url, "state": attempt.state})
    if open_browser:
        webbrowser.open(attempt.url)
    suggest("After consenting, run: fitbit-link link <code> --state <state>")


@app.command("link")
def link(
    ctx: typer.Context,
    code: str = typer.Argument(help="The 'code' query parameter from the redirect."),
    state: str = typer.Option(
        ..., "--state", "-s", help="The 'state' query parameter from the redirect."
    ),
) -> None:
    """Exchange the authorization code and store the resulting token.

    The pending attempt survives a network failure so the same code can be
    retried. It is discarded once the provider has answered.
    """
    from fitbit_link.client import Client
    from fitbit_link.config import load_client_config

    store = _store(ctx)
    attempt = store.load_pending()
    if attempt is None:
        error("No pending authorization. Run 'fitbit-link authorize' first.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    if not secrets.compare_digest(state, attempt.state):
        store.discard_pending()
        error("State mismatch: the redirect does not belong to the pending authorization.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    config = load_client_config()
    with Client(config) as client:
        try:
            linked = client.link(code, attempt.code_verifier, attempt.redirect_uri)
        except ProviderError:
            store.discard_pending()
            raise

    stored = StoredLink(token=linked.token, user_id=linked.user_id, scope=linked.scope)
    store.save(stored)
    store.discard_pending()
    debug(f"Token stored in {store.path}")
    success(f"Linked Fitbit user {linked.user_id}.")
    get_output().print_record(_link_record(stored), title="Linked account")


@app.command("refresh")
def refresh(ctx: typer.Context) -> None:
    """Refresh the stored token now, regardless of its expiry."""
    from fitbit_link.client import Client
    from fitbit_link.config import load_client_config

    store = _store(ctx)
    stored = store.load()
    if stored is None:
        error("No stored token. Run 'fitbit-link authorize' and 'link' first.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    config = load_client_config()
    with Client(config, update_token=store.update_hook) as client:
        token = client.token_source(stored.token).token()

    success("Token refreshed.")
    get_output().print_record(_link_record(stored.model_copy(update={"token": token})))


@app.command("status")
def status(ctx: typer.Context) -> None:
    """Show the stored account and token expiry."""
    stored = _store(ctx).load()
    if stored is None:
        info("Not linked.")
        suggest("Link an account: fitbit-link authorize --redirect-uri <uri>")
        return
    if stored.token.is_expired():
        warning("The stored access token has expired; run 'fitbit-link refresh'.")
    get_output().print_record(_link_record(stored), title=ctx.obj["account"])


@app.command("logout")
def logout(ctx: typer.Context) -> None:
    """Forget the stored token and any pending authorization."""
    _store(ctx).clear()
    success("Stored token removed.")


@app.command("units")
def units(
    locale: Optional[Locale] = typer.Argument(
        None, help="Locale sent in Accept-Locale; omit for the API default."
    ),
) -> None:
    """Show the measurement units API responses use for a locale."""
    unit = get_corresponding_unit(locale)
    rows = [[name, value] for name, value in unit.model_dump().items()]
    title = f"Units for {locale.value}" if locale else "Units (no locale)"
    get_output().print_table(["measurement", "unit"], rows, title=title)


def _setup_signal_handlers() -> None:
    """Exit with code 130 on Ctrl-C instead of printing a traceback."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback to disk and return the log file path."""
    from fitbit_link.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now().strftime('%Y%m%d-%H%M%S')}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``fitbit-link`` console script.

    :class:`~fitbit_link.exceptions.FitbitError` instances exit with the
    error's ``exit_code``. All other exceptions produce a crash log and a
    generic failure exit.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from fitbit_link.exceptions import FitbitError

        if isinstance(exc, FitbitError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log()
        error(f"Unexpected failure; details written to {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
