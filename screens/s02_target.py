# screens/s02_target.py
from __future__ import annotations
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import Screen
from textual.widgets import Button, Checkbox, Footer, Input, Label, Static

from bootstrap.inputs import build_target
from errors import ValidationError
from logger import log
from widgets.bootstrap_header import BootstrapHeader


class TargetScreen(Screen):
    """Step 2: desired state. Every field starts at the current value."""

    BINDINGS = [("escape", "go_back", "Back")]

    def compose(self) -> ComposeResult:
        app = self.app
        snap = app.snapshot
        settings = app.settings
        iface = snap.active_interface
        existing = snap.existing_static_config()
        already_static = existing is not None and existing.cidr == iface.ipv4_with_prefix
        ip, _, prefix = iface.ipv4_with_prefix.partition("/")
        gateway = snap.default_gateway or ""
        timezone = snap.timezone if snap.timezone != "unknown" else ""

        yield BootstrapHeader(step=2)
        with VerticalScroll(id="form"):
            yield Static("Step 2: Target Configuration", classes="title")
            for w in app.probe_warnings:
                yield Static(f"⚠ {w}", classes="notice", markup=False)
            yield Label("Hostname:")
            yield Input(value=snap.hostname, id="inp_hostname")
            yield Label("Timezone:")
            yield Input(value=timezone, placeholder=settings.default_timezone, id="inp_timezone")
            yield Label("NTP servers (comma-separated, blank keeps current):")
            yield Input(value=", ".join(snap.ntp_servers), placeholder="pool.ntp.org", id="inp_ntp")
            yield Checkbox(
                f"Provision service account '{settings.service_account}'",
                id="chk_account",
                value=not snap.service_account_configured,
            )
            if already_static:
                yield Static(
                    f"{snap.network_config_file.name} already holds a static config "
                    f"for {iface.name} ({existing.cidr}).",
                    classes="notice",
                )
            yield Checkbox(
                "Reconfigure static IP" if already_static else "Configure static IP",
                id="chk_network",
                value=False,
            )
            with Vertical(id="static_fields"):
                yield Label(f"IP address for {iface.name}:")
                yield Input(value=ip, placeholder="e.g. 192.168.1.100", id="inp_ip")
                yield Label("Subnet prefix length:")
                yield Input(value=prefix or "24", placeholder="24", id="inp_prefix")
                yield Label("Default gateway:")
                yield Input(value=gateway, placeholder="e.g. 192.168.1.1", id="inp_gw")
                yield Label("DNS servers (comma-separated):")
                yield Input(value=gateway, id="inp_dns")
            yield Checkbox("Dry run (show the plan only)", id="chk_dry_run", value=app.dry_run)
            yield Static("", id="err_msg")
        with Horizontal(id="nav_buttons"):
            yield Button("← Back", id="btn_back", variant="default")
            yield Button("Review plan →", id="btn_next", variant="primary")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#static_fields").display = False

    def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        if event.checkbox.id == "chk_network":
            self.query_one("#static_fields").display = event.value

    def _value(self, widget_id: str) -> str:
        return self.query_one(widget_id, Input).value.strip()

    def answers(self) -> dict:
        return {
            "hostname": self._value("#inp_hostname"),
            "timezone": self._value("#inp_timezone"),
            "ntp": self._value("#inp_ntp"),
            "service_account": self.query_one("#chk_account", Checkbox).value,
            "configure_network": self.query_one("#chk_network", Checkbox).value,
            "ip": self._value("#inp_ip"),
            "prefix": self._value("#inp_prefix"),
            "gateway": self._value("#inp_gw"),
            "dns": self._value("#inp_dns"),
        }

    def _show_error(self, msg: str) -> None:
        self.query_one("#err_msg", Static).update(f"[red]Error: {msg}[/red]")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn_back":
            self.app.pop_screen()
        elif event.button.id == "btn_next":
            try:
                self.app.target = build_target(self.answers(), self.app.snapshot)
            except ValidationError as e:
                self._show_error(str(e))
                return
            self.app.dry_run = self.query_one("#chk_dry_run", Checkbox).value
            log.info("Step 2: target accepted (dry_run=%s)", self.app.dry_run)
            from screens.s03_plan import PlanScreen
            self.app.push_screen(PlanScreen())

    def action_go_back(self) -> None:
        self.app.pop_screen()
