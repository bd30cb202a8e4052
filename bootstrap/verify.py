# bootstrap/verify.py
from __future__ import annotations
from typing import List

from network.interfaces import iface_ipv4_addresses
from settings import Settings
from state import Outcome, RunReport, SystemSnapshot, TargetState, VerificationItem
from system import accounts, files
from system.hostname import get_hostname, hosts_maps
from system.timezone import get_timezone, ntp_synchronized


def verify(
    target: TargetState, snapshot: SystemSnapshot, settings: Settings, report: RunReport,
) -> List[VerificationItem]:
    """Re-probe what the run touched. Items are informational: they never change the exit code."""
    items: List[VerificationItem] = []

    hostname = get_hostname()
    items.append(VerificationItem("Hostname", target.hostname, hostname, hostname == target.hostname))
    changed = report.result("hostname")
    if changed is not None and changed.outcome is Outcome.SUCCEEDED:
        mapped = hosts_maps(files.read_text(settings.hosts_file) or "", target.hostname)
        items.append(VerificationItem(
            "Hosts entry", f"127.0.1.1 {target.hostname}", "present" if mapped else "missing", mapped,
        ))

    tz = get_timezone()
    items.append(VerificationItem("Timezone", target.timezone, tz, tz == target.timezone))

    if target.provision_service_account:
        name = settings.service_account
        exists = accounts.user_exists(name)
        items.append(VerificationItem(
            f"User {name}", "present", "present" if exists else "missing", exists,
        ))
        rule_ok = accounts.sudoers_rule_installed(settings.sudoers_file, settings.sudoers_rule)
        items.append(VerificationItem(
            "Sudoers rule", "installed", "installed" if rule_ok else "missing", rule_ok,
        ))
        mode = accounts.ssh_dir_mode(settings.account_home)
        shown = f"{mode:o}" if mode is not None else "missing"
        items.append(VerificationItem(".ssh permissions", "700", shown, mode == 0o700))

    net = target.network
    result = report.result("network")
    if net is not None:
        if result is not None and result.outcome is Outcome.DECLINED:
            items.append(VerificationItem(
                "Network address", net.cidr, "pending activation", True,
            ))
        else:
            live = iface_ipv4_addresses(snapshot.active_interface.name)
            items.append(VerificationItem(
                "Network address", net.cidr, ", ".join(live) or "none", net.cidr in live,
            ))

    synced = ntp_synchronized()
    items.append(VerificationItem(
        "NTP synchronized", "yes",
        "unknown" if synced is None else ("yes" if synced else "no"),
        bool(synced),
    ))
    return items
