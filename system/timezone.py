# system/timezone.py
from __future__ import annotations
from pathlib import Path
from typing import List, Optional, Tuple
from system import commands
from logger import log

TIMEZONE_FILE = Path("/etc/timezone")

# Checked in order; the first active unit wins. timesyncd is the fallback.
NTP_UNITS = (
    ("chrony", ("chrony", "chronyd")),
    ("ntpd", ("ntp", "ntpd")),
)


def get_timezone() -> str:
    tz = commands.output(["timedatectl", "show", "-p", "Timezone", "--value"])
    if tz:
        return tz
    try:
        return TIMEZONE_FILE.read_text().strip() or "unknown"
    except OSError:
        return "unknown"


def set_timezone(name: str) -> None:
    commands.run(["timedatectl", "set-timezone", name], timeout=15)


def ntp_synchronized() -> Optional[bool]:
    value = commands.output(["timedatectl", "show", "-p", "NTPSynchronized", "--value"])
    if not value:
        return None
    return value == "yes"


def detect_ntp_service() -> str:
    """'chrony', 'ntpd' or 'timesyncd', by which systemd unit is active."""
    for service, units in NTP_UNITS:
        for unit in units:
            if commands.output(["systemctl", "is-active", unit]) == "active":
                log.info("NTP service: %s (unit %s)", service, unit)
                return service
    log.info("NTP service: timesyncd")
    return "timesyncd"


def enable_ntp(service: str = "timesyncd") -> None:
    """Restart `service` so it picks up new servers, and step the clock where it can."""
    if service == "chrony":
        commands.run(["systemctl", "restart", "chrony"], timeout=30)
        # makestep only fails when chronyd has no usable source yet
        commands.run(["chronyc", "makestep"], timeout=15, check=False)
    elif service == "ntpd":
        commands.run(["systemctl", "restart", "ntp"], timeout=30)
    else:
        commands.run(["timedatectl", "set-ntp", "true"], timeout=15)
        commands.run(["systemctl", "restart", "systemd-timesyncd"], timeout=30)


def render_timesyncd(servers: List[str]) -> str:
    return f"[Time]\nNTP={' '.join(servers)}\n"


def parse_timesyncd(text: Optional[str]) -> Tuple[str, ...]:
    if not text:
        return ()
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() == "NTP":
            return tuple(value.split())
    return ()


def render_chrony_sources(servers: List[str]) -> str:
    return "".join(f"server {s} iburst\n" for s in servers)


def parse_chrony_sources(text: Optional[str]) -> Tuple[str, ...]:
    if not text:
        return ()
    found = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[0] in ("server", "pool"):
            found.append(parts[1])
    return tuple(found)


def render_ntp_config(service: str, servers: List[str]) -> str:
    if service == "chrony":
        return render_chrony_sources(servers)
    return render_timesyncd(servers)


def parse_ntp_config(service: str, text: Optional[str]) -> Tuple[str, ...]:
    if service == "chrony":
        return parse_chrony_sources(text)
    return parse_timesyncd(text)
