# screens/s04_apply.py
from __future__ import annotations
import threading

from textual import work
from textual.app import ComposeResult
from textual.containers import Grid, Horizontal, Vertical
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, Footer, Label, RichLog, Static

from bootstrap.runner import execute
from console import TuiReporter
from errors import ProbeError
from logger import log
from system.preflight import run_preflight
from widgets.bootstrap_header import BootstrapHeader


class ActivationConfirmScreen(ModalScreen[bool]):
    """Second confirmation before `netplan apply` may drop the session."""

    DEFAULT_CSS = """
    ActivationConfirmScreen {
        align: center middle;
    }
    #dialog {
        grid-size: 2;
        grid-gutter: 1 2;
        grid-rows: 1fr 3;
        padding: 0 1;
        width: 70;
        height: 13;
        border: thick $warning 80%;
        background: $surface;
    }
    #question {
        column-span: 2;
        height: 1fr;
        width: 1fr;
        content-align: center middle;
    }
    """

    def __init__(self, message: str) -> None:
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        yield Grid(
            Label(f"{self.message}\n\nActivate the new network configuration now?",
                  id="question", markup=False),
            Button("Activate", variant="warning", id="btn_activate"),
            Button("Not now", variant="primary", id="btn_later"),
            id="dialog",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "btn_activate")


class ApplyScreen(Screen):
    """Step 4: run the mutators in a worker thread and stream their output."""

    exit_code = 0

    def compose(self) -> ComposeResult:
        yield BootstrapHeader(step=4)
        with Vertical(id="content"):
            yield Static("Step 4: Applying Configuration", classes="title")
            yield Static("Running…", id="status_msg")
            yield RichLog(id="run_log", markup=True, wrap=True)
        with Horizontal(id="nav_buttons"):
            yield Button("Show summary →", id="btn_summary", variant="primary", disabled=True)
        yield Footer()

    def on_mount(self) -> None:
        self.reporter = TuiReporter(self.app, self.query_one("#run_log", RichLog))
        self.run_pipeline()

    def confirm_activation(self, message: str) -> bool:
        """Called from the worker thread; blocks it until the operator answers."""
        answered = threading.Event()
        answer = {"value": False}

        def _on_dismiss(result) -> None:
            answer["value"] = bool(result)
            answered.set()

        self.app.call_from_thread(
            self.app.push_screen, ActivationConfirmScreen(message), _on_dismiss,
        )
        answered.wait()
        log.info("Activation %s by operator", "confirmed" if answer["value"] else "declined")
        return answer["value"]

    @work(thread=True, exclusive=True)
    def run_pipeline(self) -> None:
        app = self.app
        reporter = self.reporter
        try:
            for w in run_preflight(
                backup_dir=app.settings.backup_dir,
                min_space_mb=app.settings.min_disk_space_mb,
                need_netplan=app.target.network is not None,
            ):
                reporter.warning(w)
        except ProbeError as e:
            reporter.error(str(e))
            app.call_from_thread(self._finished, None, e.exit_code)
            return

        report = execute(
            app.target, app.snapshot, app.settings, reporter,
            confirm_activation=self.confirm_activation,
        )
        app.call_from_thread(self._finished, report, report.exit_code)

    def _finished(self, report, exit_code: int) -> None:
        self.app.report = report
        self.exit_code = exit_code
        status = self.query_one("#status_msg", Static)
        if exit_code == 0:
            status.update("[green]✓ Finished.[/green]")
        else:
            status.update(f"[red]✗ Finished with errors (exit code {exit_code}).[/red]")
        button = self.query_one("#btn_summary", Button)
        if report is None:
            button.label = "Quit"
        button.disabled = False

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id != "btn_summary":
            return
        if self.app.report is None:
            self.app.exit(self.exit_code)
            return
        from screens.s05_summary import SummaryScreen
        self.app.push_screen(SummaryScreen())
