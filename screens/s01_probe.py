# screens/s01_probe.py
from __future__ import annotations
from pathlib import Path
from typing import Optional

from rich.console import Console
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.screen import Screen
from textual.widgets import Button, DataTable, Footer, Label, Select, Static

from bootstrap.probe import Candidates, build_snapshot, discover
from console import Reporter
from errors import ProbeError
from logger import log
from widgets.bootstrap_header import BootstrapHeader


class ProbeScreen(Screen):
    """Step 1: show what was detected; pick the management interface and netplan file."""

    BINDINGS = [("q", "quit_wizard", "Quit")]

    def __init__(self) -> None:
        super().__init__()
        self.candidates: Optional[Candidates] = None
        self.error = ""

    def compose(self) -> ComposeResult:
        settings = self.app.settings
        try:
            self.candidates = discover(settings)
        except ProbeError as e:
            self.error = str(e)
            log.error("Probe failed: %s", e)

        yield BootstrapHeader(step=1)
        with VerticalScroll(id="content"):
            yield Static("Step 1: Detected System", classes="title")
            if self.candidates is None:
                yield Static(f"[red]{self.error}[/red]", id="err_msg")
            else:
                yield DataTable(id="iface_table")
                yield Label("Management interface:")
                yield Select(
                    [(i.display_str(), i.name) for i in self.candidates.interfaces],
                    value=self.candidates.interfaces[0].name,
                    allow_blank=False,
                    id="sel_iface",
                )
                files = self.candidates.config_files
                yield Label("Netplan configuration file:")
                if files:
                    yield Select(
                        [(info.summary(), str(info.path)) for info in files],
                        value=str(files[0].path) if len(files) == 1 else Select.BLANK,
                        prompt="Choose config file…",
                        id="sel_config",
                    )
                else:
                    yield Static(
                        f"No netplan files found; {settings.default_netplan_path} will be created.",
                        classes="notice",
                    )
                yield Static("", id="suggest_hint")
                yield Static("", id="err_msg")
        with Horizontal(id="nav_buttons"):
            yield Button("Quit", id="btn_quit", variant="default")
            yield Button("Next →", id="btn_next", variant="primary",
                         disabled=self.candidates is None)
        yield Footer()

    def on_mount(self) -> None:
        if self.candidates is None:
            return
        table = self.query_one("#iface_table", DataTable)
        table.add_columns("Interface", "State", "MAC", "IPv4", "Speed")
        for i in self.candidates.interfaces:
            table.add_row(i.name, i.operstate.upper(), i.mac,
                          ", ".join(i.ip_addresses), i.speed_label)
        self._update_hint(self.candidates.interfaces[0].name)

    def _update_hint(self, iface: str) -> None:
        hint = self.query_one("#suggest_hint", Static)
        if len(self.candidates.config_files) < 2:
            hint.update("")
            return
        suggested = self.candidates.suggested_file(iface)
        if suggested:
            hint.update(f"Suggested file (declares '{iface}'): [b]{suggested.path.name}[/b]")
        else:
            hint.update(
                f"[yellow]No file explicitly declares '{iface}'; "
                "pick the one that looks active (DHCP/Static).[/yellow]"
            )

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id == "sel_iface" and event.value is not Select.BLANK:
            self._update_hint(str(event.value))

    def _selected_config(self):
        files = self.candidates.config_files
        if not files:
            return None
        value = self.query_one("#sel_config", Select).value
        if value is Select.BLANK:
            raise ValueError("Please choose the netplan file to manage.")
        for info in files:
            if str(info.path) == str(value):
                return info
        raise ValueError(f"Unknown config file {value}")

    def _show_error(self, msg: str) -> None:
        self.query_one("#err_msg", Static).update(f"[red]Error: {msg}[/red]")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn_quit":
            self.action_quit_wizard()
        elif event.button.id == "btn_next":
            self._next()

    def _next(self) -> None:
        name = str(self.query_one("#sel_iface", Select).value)
        iface = next(i for i in self.candidates.interfaces if i.name == name)
        try:
            config = self._selected_config()
        except ValueError as e:
            self._show_error(str(e))
            return
        reporter = Reporter(Console(quiet=True))
        self.app.snapshot = build_snapshot(self.app.settings, iface, config, reporter)
        self.app.probe_warnings = reporter.warnings
        log.info("Step 1: iface=%s config=%s", iface.name,
                 Path(config.path).name if config else "(new)")
        from screens.s02_target import TargetScreen
        self.app.push_screen(TargetScreen())

    def action_quit_wizard(self) -> None:
        self.app.exit(3 if self.candidates is None else 0)
