# bootstrap/probe.py
"""
Read-only discovery of the host's current state.

Discovery is split in two so the interactive UI can let the operator pick
between candidates: `discover()` lists active interfaces and netplan files,
`build_snapshot()` turns one chosen pair into a SystemSnapshot. `probe()`
does both non-interactively, picking the first candidate with a warning.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from console import Reporter
from errors import ProbeError
from logger import log
from network.checks import check_icmp
from network.interfaces import (
    InterfaceInfo, active_interfaces, default_gateway, managed_by_network_manager,
)
from network.netplan import NetplanManager
from settings import Settings
from state import InterfaceSnapshot, NetplanFileInfo, SystemSnapshot
from system import accounts, files
from system.hostname import get_hostname
from system.timezone import detect_ntp_service, get_timezone, parse_ntp_config
from validators import is_valid_hostname


@dataclass
class Candidates:
    interfaces: List[InterfaceInfo]
    config_files: List[NetplanFileInfo] = field(default_factory=list)

    def suggested_file(self, iface: str) -> Optional[NetplanFileInfo]:
        """First file that declares `iface`. A hint only, never auto-selected."""
        for info in self.config_files:
            if info.declares(iface):
                return info
        return None


def discover(settings: Settings) -> Candidates:
    interfaces = active_interfaces()
    if not interfaces:
        raise ProbeError("No active network interface with an IPv4 address found.")

    manager = NetplanManager(str(settings.netplan_dir))
    try:
        paths = manager.candidate_files()
    except OSError as e:
        raise ProbeError(f"Cannot read netplan directory {settings.netplan_dir}: {e}") from e
    return Candidates(
        interfaces=interfaces,
        config_files=[manager.describe(p) for p in paths],
    )


def describe_candidates(candidates: Candidates, iface: InterfaceInfo, reporter: Reporter) -> None:
    reporter.warning("Multiple netplan configuration files detected:")
    for i, info in enumerate(candidates.config_files, 1):
        ifaces = ", ".join(info.interfaces) or "(none found)"
        mac = "yes" if info.matches_mac(iface.mac) else "no"
        reporter.info(
            f"{i}) {info.path.name} ({info.size} bytes)  interfaces: {ifaces}  "
            f"mode: {info.mode}  MAC match ({iface.mac or 'unknown'}): {mac}"
        )
    suggested = candidates.suggested_file(iface.name)
    if suggested:
        reporter.info(f"Suggested file (declares '{iface.name}'): {suggested.path.name}")
    else:
        reporter.warning(
            f"No file explicitly declares '{iface.name}'; "
            "pick the one that looks active (DHCP/Static)."
        )


def choose_interface(candidates: Candidates, reporter: Reporter) -> InterfaceInfo:
    first = candidates.interfaces[0]
    if len(candidates.interfaces) > 1:
        names = ", ".join(i.name for i in candidates.interfaces)
        reporter.warning(
            f"Non-interactive mode: multiple active interfaces ({names}); using {first.name}"
        )
    return first


def choose_config_file(
    candidates: Candidates, iface: InterfaceInfo, reporter: Reporter,
) -> Optional[NetplanFileInfo]:
    if not candidates.config_files:
        return None
    if len(candidates.config_files) == 1:
        reporter.success(f"Found netplan config: {candidates.config_files[0].path.name}")
        return candidates.config_files[0]
    describe_candidates(candidates, iface, reporter)
    first = candidates.config_files[0]
    reporter.warning(f"Non-interactive mode: using first file: {first.path.name}")
    return first


def build_snapshot(
    settings: Settings,
    iface: InterfaceInfo,
    config: Optional[NetplanFileInfo],
    reporter: Reporter,
    *,
    ping_gateway: bool = True,
) -> SystemSnapshot:
    if config is None:
        path = settings.default_netplan_path
        reporter.warning(f"No netplan files found; will create {path}")
        exists = False
    else:
        path = Path(config.path)
        exists = path.exists()
    log.info("Using netplan config: %s (exists=%s)", path, exists)

    gateway = default_gateway()
    if gateway is None:
        reporter.warning("Could not detect a default gateway")
    else:
        reporter.info(f"Detected gateway: {gateway}")
        if ping_gateway and not check_icmp(gateway, label="Gateway").passed:
            reporter.warning("Gateway is not responding to ping (may be normal)")

    if managed_by_network_manager(iface.name):
        reporter.warning(
            f"NetworkManager manages {iface.name}; it may override netplan changes."
        )

    name = settings.service_account
    account_exists = accounts.user_exists(name)
    configured = account_exists and accounts.account_configured(
        name, settings.account_home, settings.sudoers_file, settings.sudoers_rule,
    )

    hostname = get_hostname()
    if not is_valid_hostname(hostname):
        reporter.warning(f"Current hostname '{hostname}' is not a valid RFC 1123 name")
    ntp_service = detect_ntp_service()
    ntp_path = settings.ntp_config_path(ntp_service)

    snapshot = SystemSnapshot(
        hostname=hostname,
        timezone=get_timezone(),
        active_interface=InterfaceSnapshot(
            name=iface.name, mac_address=iface.mac, ipv4_with_prefix=iface.primary_ipv4,
        ),
        network_config_file=path,
        default_gateway=gateway,
        network_config_exists=exists,
        network_config_info=config,
        service_account_exists=account_exists,
        service_account_configured=configured,
        ntp_service=ntp_service,
        ntp_servers=parse_ntp_config(ntp_service, files.read_text(ntp_path) if ntp_path else None),
    )
    log.info("Probed: %s", snapshot)
    return snapshot


def probe(settings: Settings, reporter: Reporter) -> SystemSnapshot:
    """Non-interactive probe: first candidate wins, ambiguity is warned about."""
    candidates = discover(settings)
    iface = choose_interface(candidates, reporter)
    reporter.info(f"Interface: {iface.name}  IP: {iface.primary_ipv4}  MAC: {iface.mac}")
    config = choose_config_file(candidates, iface, reporter)
    return build_snapshot(settings, iface, config, reporter)
