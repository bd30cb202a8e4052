# network/netplan.py
from __future__ import annotations
import ipaddress
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from state import NetplanEntry, NetplanFileInfo, StaticNetworkConfig
from system import commands, files
from logger import log

BACKUP_SUFFIXES = (".bak", ".backup", ".orig", "~")
_BACKUP_SEGMENT_RE = re.compile(r"\.(bak|backup)(\.|$)")

# Line-heuristic fallback for files PyYAML cannot parse
_SECTION_RE = re.compile(r"^(\s*)(ethernets|wifis|bridges|bonds|vlans)\s*:\s*$")
_KEY_RE = re.compile(r"^(\s*)([A-Za-z0-9._-]+)\s*:\s*(.*)$")
_DHCP4_TRUE_RE = re.compile(r"dhcp4:\s*(true|yes)\b")
_DHCP4_FALSE_RE = re.compile(r"dhcp4:\s*(false|no)\b")
_MAC_RE = re.compile(r"macaddress:\s*['\"]?([0-9A-Fa-f:]{17})")


def is_backup_name(name: str) -> bool:
    return name.endswith(BACKUP_SUFFIXES) or bool(_BACKUP_SEGMENT_RE.search(name))


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "yes", "false", "no"):
        return value.lower() in ("true", "yes")
    return None


def _entry_from_yaml(name: str, body: Any) -> NetplanEntry:
    if not isinstance(body, dict):
        return NetplanEntry(name=name)
    addresses = tuple(str(a) for a in body.get("addresses") or [] if isinstance(a, (str, int)))
    gateway = body.get("gateway4")
    for route in body.get("routes") or []:
        if isinstance(route, dict) and str(route.get("to")) in ("default", "0.0.0.0/0"):
            gateway = route.get("via")
            break
    ns = body.get("nameservers") or {}
    nameservers = tuple(str(a) for a in ns.get("addresses") or []) if isinstance(ns, dict) else ()
    match = body.get("match") or {}
    mac = match.get("macaddress") if isinstance(match, dict) else None

    dhcp4 = _as_bool(body.get("dhcp4"))
    if dhcp4:
        mode = "DHCP"
    elif addresses or dhcp4 is False:
        mode = "Static"
    else:
        mode = "Unknown"
    return NetplanEntry(
        name=name, mode=mode, addresses=addresses,
        gateway=str(gateway) if gateway else None,
        nameservers=nameservers, macaddress=str(mac) if mac else None,
    )


def _describe_heuristic(path: Path, text: str) -> NetplanFileInfo:
    """Best-effort description by indentation when the file is not valid YAML."""
    names: List[str] = []
    section_indent: Optional[int] = None
    child_indent: Optional[int] = None
    for line in text.splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        m = _SECTION_RE.match(line)
        if m:
            section_indent = len(m.group(1)) if m.group(2) == "ethernets" else None
            child_indent = None
            continue
        if section_indent is None:
            continue
        km = _KEY_RE.match(line)
        if not km:
            continue
        indent = len(km.group(1))
        if indent <= section_indent:
            section_indent = None
            continue
        if child_indent is None:
            child_indent = indent
        if indent == child_indent and not km.group(3):
            names.append(km.group(2))

    if _DHCP4_TRUE_RE.search(text):
        mode = "DHCP"
    elif _DHCP4_FALSE_RE.search(text):
        mode = "Static"
    else:
        mode = "Unknown"
    mac_m = _MAC_RE.search(text)
    mac = mac_m.group(1).lower() if mac_m else None
    entries = tuple(
        NetplanEntry(name=n, mode=mode, macaddress=mac) for n in dict.fromkeys(names)
    )
    return NetplanFileInfo(path=path, entries=entries, size=len(text.encode()), structured=False)


class NetplanManager:
    def __init__(self, netplan_dir: str = "/etc/netplan"):
        self.netplan_dir = Path(netplan_dir)

    # -- Discovery ---------------------------------------------------------

    def candidate_files(self) -> List[Path]:
        """Config files in the netplan dir, lexically sorted, backups excluded.

        Raises OSError when the directory exists but cannot be read.
        """
        if not self.netplan_dir.exists():
            return []
        found = [
            p for p in self.netplan_dir.iterdir()
            if p.is_file() and p.suffix in (".yaml", ".yml") and not is_backup_name(p.name)
        ]
        return sorted(found, key=lambda p: p.name)

    def describe(self, path: Path) -> NetplanFileInfo:
        path = Path(path)
        try:
            text = files.read_text(path)
        except UnicodeDecodeError as e:
            log.warning("%s is not valid UTF-8 (%s); using line heuristics", path, e)
            return _describe_heuristic(path, files.read_text(path, errors="replace") or "")
        if text is None:
            return NetplanFileInfo(path=path)
        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as e:
            log.warning("%s is not valid YAML (%s); using line heuristics", path, e)
            return _describe_heuristic(path, text)
        if not isinstance(doc, dict):
            return _describe_heuristic(path, text)
        network = doc.get("network") or {}
        ethernets = network.get("ethernets") if isinstance(network, dict) else None
        entries = ()
        if isinstance(ethernets, dict):
            entries = tuple(_entry_from_yaml(str(n), b) for n, b in ethernets.items())
        return NetplanFileInfo(path=path, entries=entries, size=len(text.encode()))

    # -- Render ------------------------------------------------------------

    @staticmethod
    def nameservers(cfg: StaticNetworkConfig, fallback_dns: str) -> List[str]:
        servers = list(dict.fromkeys(cfg.dns_servers or (cfg.gateway,)))
        if fallback_dns and fallback_dns not in servers:
            servers.append(fallback_dns)
        return servers

    def render_static(
        self,
        iface: str,
        cfg: StaticNetworkConfig,
        mac: str = "",
        fallback_dns: str = "8.8.8.8",
    ) -> Dict[str, Any]:
        entry: Dict[str, Any] = {}
        if mac:
            entry["match"] = {"macaddress": mac.lower()}
            entry["set-name"] = iface
        entry.update({
            "dhcp4": False,
            "dhcp6": False,
            "addresses": [cfg.cidr],
            "routes": [{"to": "default", "via": cfg.gateway}],
            "nameservers": {"addresses": self.nameservers(cfg, fallback_dns)},
        })
        return {
            "network": {
                "version": 2,
                "renderer": "networkd",
                "ethernets": {iface: entry},
            }
        }

    @staticmethod
    def render_text(doc: Dict[str, Any]) -> str:
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        header = f"# Generated by host-bootstrap - {stamp}\n"
        return header + yaml.safe_dump(doc, default_flow_style=False, sort_keys=False)

    @staticmethod
    def validate_rendered(text: str, iface: str) -> List[str]:
        """Structural problems in a rendered document; empty means it looks sound."""
        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as e:
            return [f"not valid YAML: {e}"]
        problems: List[str] = []
        network = doc.get("network") if isinstance(doc, dict) else None
        if not isinstance(network, dict):
            return ["missing 'network' mapping"]
        if network.get("version") != 2:
            problems.append("network.version must be 2")
        entry = (network.get("ethernets") or {}).get(iface)
        if not isinstance(entry, dict):
            return problems + [f"no ethernets entry for {iface}"]

        for addr in entry.get("addresses") or []:
            try:
                ipaddress.IPv4Interface(str(addr))
                if "/" not in str(addr):
                    raise ValueError("prefix length missing")
            except ValueError as e:
                problems.append(f"bad address {addr!r}: {e}")
        if not entry.get("addresses"):
            problems.append(f"{iface} has no addresses")
        for route in entry.get("routes") or []:
            try:
                ipaddress.IPv4Address(str(route.get("via")))
            except (ValueError, AttributeError):
                problems.append(f"bad route {route!r}")
        for ns in (entry.get("nameservers") or {}).get("addresses") or []:
            try:
                ipaddress.IPv4Address(str(ns))
            except ValueError:
                problems.append(f"bad nameserver {ns!r}")
        return problems

    # -- Write / activate ----------------------------------------------------

    def write(self, path: Path, text: str) -> None:
        files.write_text(path, text, mode=0o600)

    def generate(self, timeout: float = 30) -> None:
        """`netplan generate`: renders backend config without touching live links."""
        commands.run(["netplan", "generate"], timeout=timeout)

    def apply(self, timeout: float = 30) -> None:
        commands.run(["netplan", "apply"], timeout=timeout)
