"""Terminal output for fetchcache.

Fetched data (bodies, item lists, cache listings) is written to stdout and
nothing else is: cache decisions, fallbacks, warnings and errors all go to
stderr, so ``fetchcache fetch URL | jq`` always sees clean data.

Three renderings exist for data: ``json`` (re-indented JSON), ``plain``
(tab-separated text) and ``rich`` (highlighted JSON and tables).  ``auto``
picks ``rich`` for an interactive terminal and ``plain`` when piped.
``NO_COLOR``, ``TERM=dumb`` and ``--no-color`` turn off every ANSI style.

The fetcher and the paginator report through the module-level helpers
(:func:`debug`, :func:`warning`, ...).  They go to whichever
:class:`OutputManager` is installed: the CLI installs one in
:func:`~fetchcache.app.main_callback`, library callers get a default.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How data written to stdout is rendered."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes data to stdout and diagnostics to stderr.

    Args:
        format: Rendering for data. ``AUTO`` is resolved once, here.
        no_color: Emit no ANSI styling at all.
        quiet: Drop ``info``, ``success`` and ``suggest`` messages.
        verbose: Show ``debug`` messages, i.e. every cache decision.
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
            interactive = _is_tty() and not self._no_color
            format = OutputFormat.RICH if interactive else OutputFormat.PLAIN
        self._format = format

        # color_system=None strips bold/italic/dim too, not only colours.
        color_system = None if self._no_color else "auto"
        self._stdout = Console(
            file=sys.stdout,
            color_system=color_system,
            force_terminal=(format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, color_system=color_system, stderr=True)

    @property
    def format(self) -> OutputFormat:
        """The resolved output format (never ``AUTO``)."""
        return self._format

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Write *data* to stdout.

        Plain mode writes strings verbatim.  The other modes treat a string
        that parses as JSON like the parsed value and write any other
        string verbatim.
        """
        if isinstance(data, str):
            if self._format == OutputFormat.PLAIN:
                self._write(data)
                return
            try:
                data = json.loads(data)
            except json.JSONDecodeError:
                self._write_text(data)
                return

        if self._format == OutputFormat.JSON:
            self._write(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self._write(line)
        elif isinstance(data, (dict, list)):
            dumped = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(dumped, "json", theme="monokai", word_wrap=True))
        else:
            self._write_text(str(data))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows to stdout.

        JSON mode emits a list of objects keyed by *headers*, plain mode
        emits tab-separated lines, and rich mode draws a titled table.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self._write(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self._write("\t".join(row))
        else:
            table = Table(title=title, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Warnings survive ``--quiet``."""
        self._diagnostic(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Errors survive ``--quiet``."""
        self._diagnostic(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Hint at a next step, e.g. ``fetchcache cache clear``."""
        if not self._quiet:
            self._diagnostic(f"→ {message}", f"[dim]→ {message}[/dim]")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _write(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def _write_text(self, text: str) -> None:
        if self._format == OutputFormat.RICH:
            self._stdout.print(text, markup=False, highlight=False)
        else:
            self._write(text)

    def _diagnostic(self, plain: str, markup: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance
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
    """Forget the installed manager so the next call builds a fresh one."""
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Shortcuts to the installed manager
# ------------------------------------------------------------------ #


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
