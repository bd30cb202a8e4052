# system/preflight.py
from __future__ import annotations
import os
import shutil
from pathlib import Path
from typing import Dict, List
from errors import ProbeError
from system import commands

OS_RELEASE = Path("/etc/os-release")


def is_root() -> bool:
    return os.geteuid() == 0


def read_os_release(path: Path = OS_RELEASE) -> Dict[str, str]:
    info: Dict[str, str] = {}
    try:
        text = path.read_text()
    except OSError:
        return info
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            info[key.strip()] = value.strip().strip('"')
    return info


def free_space_mb(path: Path) -> int:
    """Free space on the filesystem holding `path` (or its nearest existing parent)."""
    path = Path(path)
    while not path.exists() and path != path.parent:
        path = path.parent
    return shutil.disk_usage(path).free // (1024 * 1024)


def run_preflight(
    *, backup_dir: Path, min_space_mb: int, need_netplan: bool, require_root: bool = True,
) -> List[str]:
    """Raise ProbeError on a blocking problem; return non-fatal warnings."""
    warnings: List[str] = []

    if require_root and not is_root():
        raise ProbeError("This tool must be run as root (use sudo).")

    os_info = read_os_release()
    if not os_info:
        warnings.append("Cannot detect OS version (/etc/os-release unreadable).")
    elif os_info.get("ID") != "ubuntu":
        warnings.append(
            f"Designed for Ubuntu; running on {os_info.get('PRETTY_NAME', os_info.get('ID'))}."
        )

    free = free_space_mb(backup_dir)
    if free < min_space_mb:
        raise ProbeError(
            f"Insufficient disk space for backups: {free}MB available, "
            f"{min_space_mb}MB required."
        )

    if need_netplan and not commands.exists("netplan"):
        raise ProbeError("Netplan is not installed; cannot configure a static IP.")

    return warnings
