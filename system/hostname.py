# system/hostname.py
from __future__ import annotations
import socket
from system import commands

LOOPBACK_HOST_IP = "127.0.1.1"


def get_hostname() -> str:
    name = commands.output(["hostnamectl", "--static"])
    return name or socket.gethostname()


def set_hostname(name: str) -> None:
    commands.run(["hostnamectl", "set-hostname", name], timeout=15)


def update_hosts_text(text: str, hostname: str) -> str:
    """Point the 127.0.1.1 line at `hostname`, appending one if absent."""
    lines = text.splitlines()
    wanted = f"{LOOPBACK_HOST_IP}\t{hostname}"
    for i, line in enumerate(lines):
        if line.split() and line.split()[0] == LOOPBACK_HOST_IP:
            lines[i] = wanted
            break
    else:
        lines.append(wanted)
    return "\n".join(lines) + "\n"


def hosts_maps(text: str, hostname: str) -> bool:
    for line in text.splitlines():
        fields = line.split("#", 1)[0].split()
        if fields and fields[0] == LOOPBACK_HOST_IP:
            return hostname in fields[1:]
    return False
