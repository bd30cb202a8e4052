# screens/s03_plan.py
from __future__ import annotations
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.screen import Screen
from textual.widgets import Button, DataTable, Footer, Static

from bootstrap.plan import build_plan, has_changes, plan_warnings
from logger import log
from widgets.bootstrap_header import BootstrapHeader


class PlanScreen(Screen):
    """Step 3: current vs. target. Nothing is changed until Apply is pressed."""

    BINDINGS = [("escape", "go_back", "Back")]

    def compose(self) -> ComposeResult:
        app = self.app
        self.rows = build_plan(app.snapshot, app.target, app.settings)
        self.warnings = plan_warnings(app.snapshot, app.target)
        changes = has_changes(self.rows)

        yield BootstrapHeader(step=3)
        with VerticalScroll(id="content"):
            yield Static("Step 3: Review Plan", classes="title")
            yield DataTable(id="plan_table")
            for w in self.warnings:
                yield Static(f"⚠ {w}", classes="notice", markup=False)
            if app.dry_run:
                yield Static("Dry run: nothing will be changed.", id="plan_msg")
            elif not changes:
                yield Static("The host already matches the requested state.", id="plan_msg")
            else:
                yield Static("Press Apply to make these changes.", id="plan_msg")
        with Horizontal(id="nav_buttons"):
            yield Button("← Back", id="btn_back", variant="default")
            yield Button("Cancel", id="btn_cancel", variant="warning")
            if app.dry_run or not changes:
                yield Button("Finish", id="btn_finish", variant="primary")
            else:
                yield Button("Apply", id="btn_apply", variant="success")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#plan_table", DataTable)
        table.add_columns("Setting", "Current", "Target")
        for r in self.rows:
            table.add_row(r.label, r.current, r.shown_target)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = event.button.id
        if bid == "btn_back":
            self.app.pop_screen()
        elif bid == "btn_cancel":
            log.info("Step 3: plan declined by operator")
            self.app.exit(0)
        elif bid == "btn_finish":
            log.info("Step 3: finished without changes (dry_run=%s)", self.app.dry_run)
            self.app.exit(0)
        elif bid == "btn_apply":
            from screens.s04_apply import ApplyScreen
            self.app.push_screen(ApplyScreen())

    def action_go_back(self) -> None:
        self.app.pop_screen()
