# screens/s05_summary.py
from __future__ import annotations
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.screen import Screen
from textual.widgets import Button, DataTable, Footer, Static

from bootstrap.runner import next_steps
from logger import log_file_path
from widgets.bootstrap_header import BootstrapHeader


class SummaryScreen(Screen):
    """Step 5: per-step outcomes, verification and next steps."""

    def compose(self) -> ComposeResult:
        app = self.app
        report = app.report
        yield BootstrapHeader(step=5)
        with VerticalScroll(id="content"):
            yield Static("Step 5: Summary", classes="title")
            yield DataTable(id="result_table")
            yield DataTable(id="verify_table")
            lines = next_steps(app.target, app.snapshot, app.settings, report)
            yield Static("\n".join(lines), id="next_steps", markup=False)
            yield Static(f"Run log: {log_file_path()}", markup=False)
        with Horizontal(id="nav_buttons"):
            yield Button("Finish", id="btn_finish", variant="primary")
        yield Footer()

    def on_mount(self) -> None:
        report = self.app.report
        results = self.query_one("#result_table", DataTable)
        results.add_columns("Step", "Outcome", "Detail")
        for r in report.results:
            results.add_row(r.name, r.outcome.value,
                            r.detail + (" (rolled back)" if r.rolled_back else ""))
        checks = self.query_one("#verify_table", DataTable)
        checks.add_columns("Check", "Expected", "Actual", "Status")
        for item in report.verification:
            checks.add_row(item.label, item.expected, item.actual, item.status)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn_finish":
            self.app.exit(self.app.report.exit_code)
