# bootstrap/inputs.py
from __future__ import annotations
import argparse
from typing import Any, Dict, Iterable, List, Optional, Tuple

from errors import ValidationError
from logger import log
from state import StaticNetworkConfig, SystemSnapshot, TargetState
from validators import (
    validate_dns, validate_gateway_in_subnet, validate_hostname, validate_ip,
    validate_ntp_server, validate_prefix, validate_timezone,
)

# Any of these on the command line selects non-interactive mode
NON_INTERACTIVE_FLAGS = ("hostname", "ip", "timezone", "ntp")

DEFAULT_PREFIX = 24


def is_non_interactive(args: argparse.Namespace) -> bool:
    return any(getattr(args, f, None) for f in NON_INTERACTIVE_FLAGS)


def _prefix(args: argparse.Namespace) -> int:
    return DEFAULT_PREFIX if args.subnet is None else args.subnet


def _check(result: Tuple[bool, str]) -> None:
    ok, msg = result
    if not ok:
        raise ValidationError(msg)


def split_list(raw: Any) -> List[str]:
    """'a, b' or ['a', 'b,c'] -> ['a', 'b', 'c']"""
    if not raw:
        return []
    items = [raw] if isinstance(raw, str) else list(raw)
    out: List[str] = []
    for item in items:
        out.extend(s.strip() for s in str(item).split(",") if s.strip())
    return out


def _network_config(
    ip: str, prefix: Any, gateway: str, dns: Iterable[str],
) -> StaticNetworkConfig:
    _check(validate_prefix(prefix))
    prefix_len = int(prefix)
    _check(validate_ip(ip, prefix_len=prefix_len))
    if not gateway:
        raise ValidationError("A gateway is required for a static IP.")
    ok, msg = validate_ip(gateway)
    if not ok:
        raise ValidationError(f"Invalid gateway: {msg}")
    dns_servers = tuple(dns) or (gateway,)
    for d in dns_servers:
        _check(validate_dns(d))
    return StaticNetworkConfig(
        ip=ip, prefix_len=prefix_len, gateway=gateway, dns_servers=dns_servers,
    )


def validate_args(args: argparse.Namespace) -> None:
    """Flag-only checks. Runs before anything is probed, in both modes."""
    if args.hostname is not None:
        _check(validate_hostname(args.hostname))
    if args.timezone is not None:
        _check(validate_timezone(args.timezone))
    for server in split_list(args.ntp):
        _check(validate_ntp_server(server))
    if args.ip:
        if not args.gateway:
            raise ValidationError("--gateway is required when --ip is given.")
        _network_config(args.ip, _prefix(args), args.gateway, split_list(args.dns))
    elif args.gateway or args.dns or args.subnet is not None:
        raise ValidationError("--gateway, --dns and --subnet only apply together with --ip.")


def target_from_args(args: argparse.Namespace, snapshot: SystemSnapshot) -> TargetState:
    network: Optional[StaticNetworkConfig] = None
    if args.ip:
        network = _network_config(args.ip, _prefix(args), args.gateway, split_list(args.dns))
    target = TargetState(
        hostname=args.hostname or snapshot.hostname,
        timezone=args.timezone or snapshot.timezone,
        network=network,
        provision_service_account=True,
        ntp_servers=tuple(split_list(args.ntp)),
    )
    log.info("Target (flags): %s", target)
    return target


def build_target(answers: Dict[str, Any], snapshot: SystemSnapshot) -> TargetState:
    """
    Convert interactive form answers into a TargetState.

    Expected keys: hostname, timezone, ntp, service_account, configure_network,
    and when configure_network is set: ip, prefix, gateway, dns.
    Blank hostname/timezone keep the current value. Raises ValidationError.
    """
    hostname = (answers.get("hostname") or "").strip() or snapshot.hostname
    if hostname != snapshot.hostname:
        _check(validate_hostname(hostname))

    timezone = (answers.get("timezone") or "").strip() or snapshot.timezone
    if timezone != snapshot.timezone:
        _check(validate_timezone(timezone))

    ntp = split_list(answers.get("ntp"))
    for server in ntp:
        _check(validate_ntp_server(server))

    network = None
    if answers.get("configure_network"):
        ip = (answers.get("ip") or "").strip()
        if not ip:
            raise ValidationError("Enter an IP address or untick the static IP option.")
        prefix = str(answers.get("prefix") or DEFAULT_PREFIX).strip()
        gateway = (answers.get("gateway") or "").strip()
        network = _network_config(ip, prefix, gateway, split_list(answers.get("dns")))

    target = TargetState(
        hostname=hostname,
        timezone=timezone,
        network=network,
        provision_service_account=bool(answers.get("service_account", True)),
        ntp_servers=tuple(ntp),
    )
    log.info("Target (form): %s", target)
    return target


def gateway_outside_subnet(cfg: StaticNetworkConfig) -> Optional[str]:
    ok, msg = validate_gateway_in_subnet(cfg.gateway, cfg.ip, cfg.prefix_len)
    return None if ok else msg
