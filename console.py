# console.py
from __future__ import annotations
import logging
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from logger import log, SUCCESS

_STYLES = {
    logging.INFO: ("ℹ", "blue"),
    SUCCESS: ("✓", "green"),
    logging.WARNING: ("⚠", "yellow"),
    logging.ERROR: ("✗", "red"),
}


class Reporter:
    """Leveled, colored operator output. Every line is mirrored to the run log."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)
        self.messages: List[Tuple[int, str]] = []

    def info(self, msg: str) -> None:
        self._emit(logging.INFO, msg)

    def success(self, msg: str) -> None:
        self._emit(SUCCESS, msg)

    def warning(self, msg: str) -> None:
        self._emit(logging.WARNING, msg)

    def error(self, msg: str) -> None:
        self._emit(logging.ERROR, msg)

    def header(self, title: str) -> None:
        border = "━" * 52
        log.info("==== %s ====", title)
        self._write(f"\n[bold cyan]{border}\n  {escape(title)}\n{border}[/bold cyan]\n")

    def print(self, renderable) -> None:
        """Print a rich renderable (plan table, summary) without logging it."""
        self.console.print(renderable)

    def _emit(self, level: int, msg: str) -> None:
        self.messages.append((level, msg))
        log.log(level, msg)
        icon, color = _STYLES[level]
        self._write(f"[{color}]{icon}[/{color}] {escape(msg)}")

    def _write(self, markup: str) -> None:
        self.console.print(markup)

    # -- Test / summary helpers ----------------------------------------------

    def lines(self, level: Optional[int] = None) -> List[str]:
        return [m for lvl, m in self.messages if level is None or lvl == level]

    @property
    def warnings(self) -> List[str]:
        return self.lines(logging.WARNING)

    @property
    def errors(self) -> List[str]:
        return self.lines(logging.ERROR)


class TuiReporter(Reporter):
    """Reporter for the textual UI: lines go to a RichLog, written from a worker thread."""

    def __init__(self, app, rich_log) -> None:
        super().__init__(Console(highlight=False, quiet=True))
        self.app = app
        self.rich_log = rich_log

    def _write(self, markup: str) -> None:
        self.app.call_from_thread(self.rich_log.write, markup)

    def print(self, renderable) -> None:
        self.app.call_from_thread(self.rich_log.write, renderable)
