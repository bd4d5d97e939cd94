"""Terminal output for the almaverify CLI.

Verification results and config dumps are *data* and go to stdout, where
wrapper scripts read them. Everything addressed to the operator (status
lines, the "Authentication failed" verdict, hints, ``--verbose`` traces)
is a *diagnostic* and goes to stderr.

Data is rendered in one of three :class:`OutputFormat` styles:

* ``json`` -- indented JSON, stable for scripts (``--json``).
* ``plain`` -- one ``key<TAB>value`` line per field (``--plain``, or any
  non-TTY stdout).
* ``rich`` -- syntax-highlighted JSON on an interactive terminal.

Diagnostics are assembled as :class:`rich.text.Text` rather than markup
strings, so backend-supplied error text is printed literally even when it
contains square brackets. ``NO_COLOR``, ``TERM=dumb`` and ``--no-color``
switch them to bare ``print``.

The CLI installs one :class:`OutputManager` per invocation in
:func:`~almaverify.app.main_callback`; commands call the module-level
helpers (:func:`format_response`, :func:`error`, ...). Library code never
imports this module.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.text import Text


class OutputFormat(str, Enum):
    """How data written to stdout is rendered. ``AUTO`` picks by TTY."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Route CLI output to stdout (data) or stderr (diagnostics).

    Args:
        format: Data format. ``AUTO`` becomes ``RICH`` on a colour-capable
            TTY and ``PLAIN`` otherwise.
        no_color: Print diagnostics without styling.
        quiet: Drop status, success and hint lines. Warnings, errors and
            data are always printed.
        verbose: Show ``debug`` lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(file=sys.stdout, no_color=self._no_color, force_terminal=True)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Write one result record to stdout in the active format."""
        if self._format == OutputFormat.PLAIN:
            lines = (
                [f"{key}\t{value}" for key, value in data.items()]
                if isinstance(data, dict)
                else [str(data)]
            )
            for line in lines:
                _write_stdout(line)
            return

        document = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            _write_stdout(document)
        else:
            self._stdout.print(Syntax(document, "json", theme="monokai", word_wrap=True))

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, style="green")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, label="→ ", style="dim")

    def warning(self, message: str) -> None:
        self._diagnostic(message, label="Warning: ", label_style="yellow")

    def error(self, message: str) -> None:
        self._diagnostic(message, label="Error: ", label_style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(message, label="[debug] ", style="dim")

    def _diagnostic(
        self,
        message: str,
        label: str = "",
        style: str = "",
        label_style: Optional[str] = None,
    ) -> None:
        if self._no_color:
            print(f"{label}{message}", file=sys.stderr, flush=True)
            return
        text = Text.assemble((label, label_style or style), (message, style))
        self._stderr.print(text, soft_wrap=True, highlight=False)


def _write_stdout(line: str) -> None:
    print(line, file=sys.stdout, flush=True)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Per-invocation instance and the helpers commands call
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager. Tests call this between CLI runs."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


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
