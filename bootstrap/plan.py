# bootstrap/plan.py
from __future__ import annotations
from dataclasses import dataclass
from typing import List

from rich.markup import escape
from rich.table import Table

from bootstrap.inputs import gateway_outside_subnet
from network.netplan import NetplanManager
from settings import Settings
from state import SystemSnapshot, TargetState
from validators import same_subnet

NO_CHANGE = "(no change)"


@dataclass(frozen=True)
class PlanRow:
    label: str
    current: str
    target: str

    @property
    def changed(self) -> bool:
        return self.current != self.target

    @property
    def shown_target(self) -> str:
        return self.target if self.changed else NO_CHANGE


def _account_state(snapshot: SystemSnapshot) -> str:
    if snapshot.service_account_configured:
        return "configured"
    if snapshot.service_account_exists:
        return "incomplete"
    return "absent"


def build_plan(snapshot: SystemSnapshot, target: TargetState, settings: Settings) -> List[PlanRow]:
    iface = snapshot.active_interface
    info = snapshot.network_config_info
    entry = info.entry_for(iface.name) if info else None

    cur_ntp = ", ".join(snapshot.ntp_servers) or "(system default)"
    cur_account = _account_state(snapshot)
    cur_file = str(snapshot.network_config_file) if snapshot.network_config_exists else "(none)"
    cur_mode = entry.mode if entry else "Unknown"
    cur_gw = snapshot.default_gateway or "(none)"
    cur_dns = ", ".join(entry.nameservers) if entry and entry.nameservers else "(none)"

    rows = [
        PlanRow("Hostname", snapshot.hostname, target.hostname),
        PlanRow("Timezone", snapshot.timezone, target.timezone),
        PlanRow("NTP servers", cur_ntp,
                ", ".join(target.ntp_servers) if target.ntp_servers else cur_ntp),
        PlanRow(f"Service account ({settings.service_account})", cur_account,
                "configured" if target.provision_service_account else cur_account),
        PlanRow("Interface", iface.name, iface.name),
    ]

    net = target.network
    if net is None:
        rows += [
            PlanRow("Config file", cur_file, cur_file),
            PlanRow("Addressing", cur_mode, cur_mode),
            PlanRow("Address", iface.ipv4_with_prefix or "(none)", iface.ipv4_with_prefix or "(none)"),
            PlanRow("Gateway", cur_gw, cur_gw),
            PlanRow("DNS", cur_dns, cur_dns),
        ]
        return rows

    dns = ", ".join(NetplanManager.nameservers(net, settings.fallback_dns))
    rows += [
        PlanRow("Config file", cur_file, str(snapshot.network_config_file)),
        PlanRow("Addressing", cur_mode, "Static"),
        PlanRow("Address", iface.ipv4_with_prefix or "(none)", net.cidr),
        PlanRow("Gateway", cur_gw, net.gateway),
        PlanRow("DNS", cur_dns, dns),
    ]
    return rows


def plan_warnings(snapshot: SystemSnapshot, target: TargetState) -> List[str]:
    warnings: List[str] = []
    net = target.network
    if net is None:
        return warnings
    msg = gateway_outside_subnet(net)
    if msg:
        warnings.append(msg)
    current_ip = snapshot.active_interface.ipv4
    if current_ip and not same_subnet(net.ip, current_ip, net.prefix_len):
        warnings.append(
            f"New address {net.cidr} is on a different subnet than the current "
            f"{snapshot.active_interface.ipv4_with_prefix}; you may lose connectivity."
        )
    if net.ip != current_ip:
        warnings.append(
            f"Activation moves {snapshot.active_interface.name} to {net.ip}; "
            "an SSH session on the old address will drop."
        )
    return warnings


def has_changes(rows: List[PlanRow]) -> bool:
    return any(r.changed for r in rows)


def render_table(rows: List[PlanRow], title: str = "Planned changes") -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Setting", style="bold")
    table.add_column("Current")
    table.add_column("Target")
    for r in rows:
        style = "green" if r.changed else "dim"
        table.add_row(escape(r.label), escape(r.current), f"[{style}]{escape(r.shown_target)}[/{style}]")
    return table
