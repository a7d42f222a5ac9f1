"""Terminal output for the ``fitbit-link`` command line.

Results and diagnostics are kept apart so that scripts can capture one
without the other:

* **stdout** carries what a command produces: the authorization URL, the
  stored account, the unit table.
* **stderr** carries everything said *about* the run: progress, warnings,
  errors, hints.

Results are rendered as a Rich table on an interactive terminal,
tab-separated text when piped, or JSON on request. Colour is off when
``NO_COLOR`` is set, ``TERM=dumb``, or ``--no-color`` is passed.

:func:`~fitbit_link.app.main_callback` installs one :class:`OutputManager`
with :func:`set_output`; the module-level helpers delegate to it.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, NamedTuple, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormat(str, Enum):
    """How results are rendered. ``AUTO`` resolves to ``RICH`` or ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Level(NamedTuple):
    prefix: str
    style: str
    quietable: bool


_LEVELS = {
    "info": _Level("", "", True),
    "success": _Level("", "green", True),
    "suggest": _Level("→ ", "dim", True),
    "warning": _Level("Warning: ", "yellow", False),
    "error": _Level("Error: ", "bold red", False),
    "debug": _Level("[debug] ", "dim", True),
}


class OutputManager:
    """Routes command results to stdout and diagnostics to stderr.

    Args:
        format: Desired result format.
        no_color: Disable colour and Rich markup.
        quiet: Drop informational diagnostics; warnings and errors remain.
        verbose: Also show debug diagnostics.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            interactive = sys.stdout.isatty() if hasattr(sys.stdout, "isatty") else False
            format = OutputFormat.RICH if interactive and not self._no_color else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Write one line of raw text to stdout."""
        sys.stdout.write(text + "\n")
        sys.stdout.flush()

    def print_record(self, record: dict[str, Any], title: Optional[str] = None) -> None:
        """Print one key/value record.

        JSON prints a single object, plain prints ``key<TAB>value`` lines,
        and Rich prints a two-column table.
        """
        if self._format == OutputFormat.JSON:
            self._print_json(record)
            return
        if self._format == OutputFormat.PLAIN:
            for key, value in record.items():
                self.print_data(f"{key}\t{_cell(value)}")
            return
        table = Table(title=title, show_header=False)
        table.add_column(style="bold cyan")
        table.add_column(overflow="fold")
        for key, value in record.items():
            table.add_row(key, _cell(value))
        self._stdout.print(table)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows under *headers*: a JSON array of objects, TSV, or a Rich table."""
        if self._format == OutputFormat.JSON:
            self._print_json([dict(zip(headers, row)) for row in rows])
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return
        table = Table(*headers, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    def _print_json(self, value: Any) -> None:
        self.print_data(json.dumps(value, indent=2, ensure_ascii=False, default=str))

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._diagnostic("info", message)

    def success(self, message: str) -> None:
        self._diagnostic("success", message)

    def warning(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._diagnostic("warning", message)

    def error(self, message: str) -> None:
        """Always shown."""
        self._diagnostic("error", message)

    def suggest(self, message: str) -> None:
        self._diagnostic("suggest", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic("debug", message)

    def _diagnostic(self, level: str, message: str) -> None:
        lvl = _LEVELS[level]
        if lvl.quietable and self._quiet:
            return
        text = lvl.prefix + message
        if self._no_color:
            sys.stderr.write(text + "\n")
            sys.stderr.flush()
        elif lvl.style:
            self._stderr.print(f"[{lvl.style}]{escape(text)}[/{lvl.style}]")
        else:
            self._stderr.print(escape(text))


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return " ".join(str(v) for v in value)
    return str(value)


def _color_disabled_by_env() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the test suite calls this between tests."""
    global _output
    _output = None


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
