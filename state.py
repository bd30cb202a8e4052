# state.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from validators import is_valid_ipv4, is_valid_prefix_length


@dataclass(frozen=True)
class StaticNetworkConfig:
    ip: str
    prefix_len: int
    gateway: str
    dns_servers: Tuple[str, ...] = ()

    @property
    def cidr(self) -> str:
        return f"{self.ip}/{self.prefix_len}"


@dataclass(frozen=True)
class TargetState:
    hostname: str
    timezone: str
    network: Optional[StaticNetworkConfig] = None   # None = leave addressing alone
    provision_service_account: bool = True
    ntp_servers: Tuple[str, ...] = ()                # () = leave NTP servers alone


@dataclass(frozen=True)
class InterfaceSnapshot:
    name: str
    mac_address: str = ""
    ipv4_with_prefix: str = ""   # e.g. "192.168.1.10/24"

    @property
    def ipv4(self) -> str:
        return self.ipv4_with_prefix.split("/")[0]


@dataclass(frozen=True)
class NetplanEntry:
    """One ethernets entry declared in a netplan file."""
    name: str
    mode: str = "Unknown"          # "DHCP" | "Static" | "Unknown"
    addresses: Tuple[str, ...] = ()
    gateway: Optional[str] = None
    nameservers: Tuple[str, ...] = ()
    macaddress: Optional[str] = None


@dataclass(frozen=True)
class NetplanFileInfo:
    path: Path
    entries: Tuple[NetplanEntry, ...] = ()
    size: int = 0
    structured: bool = True        # False = described by line heuristics

    @property
    def interfaces(self) -> List[str]:
        return [e.name for e in self.entries]

    @property
    def mode(self) -> str:
        modes = {e.mode for e in self.entries}
        if "DHCP" in modes:
            return "DHCP"
        if "Static" in modes:
            return "Static"
        return "Unknown"

    def entry_for(self, iface: str) -> Optional[NetplanEntry]:
        for e in self.entries:
            if e.name == iface:
                return e
        return None

    def declares(self, iface: str) -> bool:
        return self.entry_for(iface) is not None

    def matches_mac(self, mac: str) -> bool:
        mac = mac.lower()
        return bool(mac) and any((e.macaddress or "").lower() == mac for e in self.entries)

    def static_config_for(self, iface: str) -> Optional[StaticNetworkConfig]:
        """The static config this file holds for `iface`, or None."""
        e = self.entry_for(iface)
        if e is None or e.mode != "Static" or not e.addresses or not e.gateway:
            return None
        ip, _, prefix = e.addresses[0].partition("/")
        try:
            prefix_len = int(prefix)
        except ValueError:
            return None
        if not is_valid_prefix_length(prefix_len) or not is_valid_ipv4(ip):
            return None
        return StaticNetworkConfig(
            ip=ip, prefix_len=prefix_len, gateway=e.gateway,
            dns_servers=tuple(e.nameservers),
        )

    def summary(self) -> str:
        ifaces = ", ".join(self.interfaces) or "(none found)"
        return f"{self.path.name}  interfaces: {ifaces}  mode: {self.mode}"


@dataclass(frozen=True)
class SystemSnapshot:
    hostname: str
    timezone: str
    active_interface: InterfaceSnapshot
    network_config_file: Path
    default_gateway: Optional[str] = None
    network_config_exists: bool = False
    network_config_info: Optional[NetplanFileInfo] = None
    service_account_exists: bool = False
    service_account_configured: bool = False
    # chrony, ntpd or timesyncd
    ntp_service: str = "timesyncd"
    ntp_servers: Tuple[str, ...] = ()

    def existing_static_config(self) -> Optional[StaticNetworkConfig]:
        if self.network_config_info is None:
            return None
        return self.network_config_info.static_config_for(self.active_interface.name)


class Outcome(Enum):
    SUCCEEDED = "succeeded"
    UNCHANGED = "unchanged"
    DECLINED = "declined"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def ok(self) -> bool:
        return self is not Outcome.FAILED


class NetworkState(Enum):
    SKIPPED = "Skipped"
    WRITTEN = "Written"
    VALIDATED = "Validated"
    PENDING_ACTIVATION = "PendingActivation"
    ACTIVATED = "Activated"
    ROLLED_BACK = "RolledBack"


@dataclass
class MutationResult:
    name: str
    outcome: Outcome
    detail: str = ""
    rolled_back: bool = False
    fatal: bool = False            # True = later mutators must not run
    network_state: Optional[NetworkState] = None

    def __str__(self) -> str:
        text = f"{self.name}: {self.outcome.value}"
        if self.detail:
            text += f" ({self.detail})"
        return text


@dataclass
class VerificationItem:
    label: str
    expected: str
    actual: str
    passed: bool

    @property
    def status(self) -> str:
        return "pass" if self.passed else "warn"

    def __str__(self) -> str:
        icon = "✓" if self.passed else "⚠"
        if self.passed:
            return f"[{icon}] {self.label}: {self.actual}"
        return f"[{icon}] {self.label}: expected {self.expected}, got {self.actual}"


@dataclass
class RunReport:
    results: List[MutationResult] = field(default_factory=list)
    verification: List[VerificationItem] = field(default_factory=list)
    dry_run: bool = False
    declined: bool = False         # operator declined the plan

    def result(self, name: str) -> Optional[MutationResult]:
        for r in self.results:
            if r.name == name:
                return r
        return None

    @property
    def outcomes(self) -> Dict[str, Outcome]:
        return {r.name: r.outcome for r in self.results}

    @property
    def succeeded(self) -> bool:
        return all(r.outcome.ok for r in self.results)

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1
