# network/interfaces.py
from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from typing import List, Optional
from system import commands
from logger import log
from validators import is_valid_ipv4

SYS_NET = "/sys/class/net"

# Bridges, container veths and overlay devices never carry the management address
VIRTUAL_PREFIXES = ("docker", "br-", "veth", "virbr", "cni", "flannel", "podman", "lxc")

IFF_UP = 0x1


@dataclass
class InterfaceInfo:
    name: str
    operstate: str              # "up" | "down" | "unknown"
    admin_up: bool
    mac: str
    ip_addresses: List[str] = field(default_factory=list)   # CIDR notation
    link_speed_mbps: Optional[int] = None

    @property
    def primary_ipv4(self) -> str:
        return self.ip_addresses[0] if self.ip_addresses else ""

    @property
    def is_candidate(self) -> bool:
        """Administratively up and holding an IPv4 address."""
        return self.admin_up and bool(self.ip_addresses)

    @property
    def speed_label(self) -> str:
        if self.link_speed_mbps is None:
            return "Unknown"
        if self.link_speed_mbps >= 1000:
            return f"{self.link_speed_mbps // 1000} Gbit"
        return f"{self.link_speed_mbps} Mbit"

    def display_str(self) -> str:
        ips = ", ".join(self.ip_addresses) if self.ip_addresses else "no IP"
        return f"{self.name:<12} {self.operstate.upper():<7} {self.mac}  [{ips}]"


def _read_sysfs(iface: str, attr: str, default: Optional[str] = None) -> Optional[str]:
    path = os.path.join(SYS_NET, iface, attr)
    try:
        with open(path) as f:
            return f.read().strip()
    except OSError:
        return default


def _ip_json(args: List[str]) -> list:
    """Parsed output of `ip -j <args>`, or [] when ip fails or prints nothing."""
    raw = commands.output(["ip", "-j", *args])
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError as e:
        log.debug("Unparseable ip -j output for %s: %s", args, e)
        return []
    return data if isinstance(data, list) else []


def is_virtual(name: str) -> bool:
    return name == "lo" or name.startswith(VIRTUAL_PREFIXES)


def _admin_up(iface: str) -> bool:
    flags = _read_sysfs(iface, "flags")
    if not flags:
        return False
    try:
        return bool(int(flags, 16) & IFF_UP)
    except ValueError:
        return False


def iface_ipv4_addresses(iface: str) -> List[str]:
    addrs = []
    for entry in _ip_json(["addr", "show", iface]):
        for ai in entry.get("addr_info", []):
            if ai.get("family") == "inet":
                addrs.append(f"{ai['local']}/{ai['prefixlen']}")
    return addrs


def get_interface_info(iface: str) -> InterfaceInfo:
    speed_str = _read_sysfs(iface, "speed")
    return InterfaceInfo(
        name=iface,
        operstate=_read_sysfs(iface, "operstate", "unknown") or "unknown",
        admin_up=_admin_up(iface),
        mac=_read_sysfs(iface, "address", "") or "",
        ip_addresses=iface_ipv4_addresses(iface),
        link_speed_mbps=int(speed_str) if speed_str and speed_str.isdigit() else None,
    )


def list_interfaces() -> List[InterfaceInfo]:
    """Physical interfaces from /sys/class/net, sorted by name."""
    try:
        names = sorted(os.listdir(SYS_NET))
    except OSError as e:
        log.error("Cannot list %s: %s", SYS_NET, e)
        return []
    return [get_interface_info(n) for n in names if not is_virtual(n)]


def active_interfaces() -> List[InterfaceInfo]:
    found = [i for i in list_interfaces() if i.is_candidate]
    log.info("Active interfaces: %s", [i.name for i in found] or "none")
    return found


def default_gateway() -> Optional[str]:
    for route in _ip_json(["route", "show", "default"]):
        gw = route.get("gateway")
        if gw and is_valid_ipv4(gw):
            return gw
    return None


def managed_by_network_manager(iface: str) -> bool:
    """True when NetworkManager reports `iface` as connected."""
    if not commands.exists("nmcli"):
        return False
    out = commands.output(["nmcli", "-t", "-f", "DEVICE,STATE", "device"])
    for line in out.splitlines():
        device, _, state = line.partition(":")
        if device == iface and state.startswith("connected"):
            return True
    return False
