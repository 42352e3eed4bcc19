"""Rendering for the diagnostic CLI.

Records, tables and config dumps go to stdout; status lines, warnings,
errors and cache log records go to stderr, so ``warmcache --json durable
list | jq`` only ever sees data.

The active :class:`OutputManager` is installed once per invocation by
:func:`~warmcache.app.main_callback` and reached through the module-level
helpers (:func:`print_table`, :func:`info`, ...).
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How stdout data is rendered.  ``AUTO`` picks ``RICH`` on a colour TTY."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Renders data to stdout and diagnostics to stderr.

    Args:
        format: Data format; ``AUTO`` is resolved against the terminal.
        no_color: Strip colour and Rich markup from everything.
        quiet: Drop info and success lines.  Warnings and errors remain.
        verbose: Show debug lines and cache log records.
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
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=self._format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        return self._stderr

    # --- stdout ---

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Render a JSON-compatible value (a record, a config dump)."""
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json(data, indent=2))
        elif self._format == OutputFormat.PLAIN:
            if isinstance(data, dict):
                for key, value in data.items():
                    if isinstance(value, (dict, list)):
                        value = _to_json(value)
                    self.print_data(f"{key}\t{value}")
            else:
                self.print_data(str(data))
        else:
            syntax = Syntax(_to_json(data, indent=2), "json", theme="monokai", word_wrap=True)
            self._stdout.print(syntax)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Render rows as a Rich table, a JSON array of objects, or TSV."""
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows], indent=2))
        elif self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
        else:
            table = Table(*headers, title=title, header_style="bold cyan")
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # --- stderr ---

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, style="green")

    def warning(self, message: str) -> None:
        self._diagnostic(message, label="Warning:", style="yellow")

    def error(self, message: str) -> None:
        self._diagnostic(message, label="Error:", style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(message, label="[debug]", style="dim")

    def _diagnostic(self, message: str, label: str = "", style: str = "") -> None:
        text = f"{label} {message}" if label else message
        if self._no_color:
            print(text, file=sys.stderr, flush=True)
        elif style:
            self._stderr.print(text, style=style, markup=False, highlight=False)
        else:
            self._stderr.print(text, markup=False, highlight=False)


def _to_json(data: Any, indent: Optional[int] = None) -> str:
    return json.dumps(data, indent=indent, ensure_ascii=False, default=str)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb`` turn colour off."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def configure_logging(output: OutputManager) -> None:
    """Send ``warmcache`` log records to stderr when *output* is verbose."""
    logger = logging.getLogger("warmcache")
    for handler in [h for h in logger.handlers if isinstance(h, RichHandler)]:
        logger.removeHandler(handler)
    if not output.is_verbose:
        return
    handler = RichHandler(console=output.stderr_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


# --- active instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the active manager; the next call builds a default one."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
