# validators.py
from __future__ import annotations
import ipaddress
import re
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from logger import log

RESERVED_HOSTNAMES = frozenset({
    "localhost", "localdomain", "broadcasthost", "ip6-localhost", "ip6-loopback",
})

_HOSTNAME_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")


def validate_ipv4(address: str) -> Tuple[bool, str]:
    # ipaddress rejects leading zeros and non-ASCII digits
    try:
        ip = ipaddress.IPv4Address(address)
    except ValueError:
        return False, f"'{address}' is not a valid IPv4 address."

    if ip.packed[0] in (0, 127, 255):
        log.warning("IP %s appears to be a reserved address", address)
    return True, ""


def is_valid_ipv4(address: str) -> bool:
    return validate_ipv4(address)[0]


def validate_ip(address: str, prefix_len: int = None) -> Tuple[bool, str]:
    ok, msg = validate_ipv4(address)
    if not ok:
        return ok, msg

    if prefix_len is not None and prefix_len <= 30:
        try:
            net = ipaddress.IPv4Network(f"{address}/{prefix_len}", strict=False)
        except ValueError as e:
            return False, str(e)
        ip = ipaddress.IPv4Address(address)
        if ip == net.network_address:
            return False, f"{address} is the network address of {net}."
        if ip == net.broadcast_address:
            return False, f"{address} is the broadcast address of {net}."

    return True, ""


def validate_hostname(hostname: str) -> Tuple[bool, str]:
    if not hostname:
        return False, "Hostname must not be empty."
    if len(hostname) > 63:
        return False, "Hostname too long (max 63 characters)."
    if not _HOSTNAME_RE.match(hostname):
        return False, (
            f"'{hostname}' is not a valid hostname: use lowercase letters, digits "
            "and hyphens, starting and ending with a letter or digit."
        )
    if hostname in RESERVED_HOSTNAMES:
        return False, f"Hostname '{hostname}' is reserved and cannot be used."
    return True, ""


def is_valid_hostname(hostname: str) -> bool:
    return validate_hostname(hostname)[0]


def validate_prefix(prefix_len) -> Tuple[bool, str]:
    if isinstance(prefix_len, str) and prefix_len.strip().isdigit():
        prefix_len = int(prefix_len)
    if isinstance(prefix_len, bool) or not isinstance(prefix_len, int) \
            or not (1 <= prefix_len <= 32):
        return False, f"Prefix length must be 1-32, got {prefix_len}."
    return True, ""


def is_valid_prefix_length(prefix_len) -> bool:
    return validate_prefix(prefix_len)[0]


def validate_gateway_in_subnet(
    gateway: str, host_ip: str, prefix_len: int
) -> Tuple[bool, str]:
    try:
        gw = ipaddress.IPv4Address(gateway)
        net = ipaddress.IPv4Network(f"{host_ip}/{prefix_len}", strict=False)
    except ValueError as e:
        return False, str(e)

    if gw not in net:
        return False, f"Gateway {gateway} is not in subnet {net}."
    return True, ""


def validate_dns(address: str) -> Tuple[bool, str]:
    ok, _ = validate_ipv4(address)
    if not ok:
        return False, f"'{address}' is not a valid DNS server IP."
    return True, ""


def validate_timezone(name: str) -> Tuple[bool, str]:
    if not name or name.startswith("/") or ".." in name:
        return False, f"'{name}' is not a valid timezone."
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False, f"'{name}' is not a known IANA timezone."
    return True, ""


def same_subnet(ip_a: str, ip_b: str, prefix_len: int) -> bool:
    net = ipaddress.IPv4Network(f"{ip_a}/{prefix_len}", strict=False)
    return ipaddress.IPv4Address(ip_b) in net


_NTP_SERVER_RE = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9.-]{0,251}[A-Za-z0-9])?$")


def validate_ntp_server(server: str) -> Tuple[bool, str]:
    if not server or not _NTP_SERVER_RE.match(server):
        return False, f"'{server}' is not a valid NTP server name or address."
    return True, ""
