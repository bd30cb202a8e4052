# system/accounts.py
from __future__ import annotations
import grp
import os
import pwd
import stat
from pathlib import Path
from typing import List, Optional
from system import commands, files
from errors import CommandError
from logger import log


def user_exists(name: str) -> bool:
    try:
        pwd.getpwnam(name)
        return True
    except KeyError:
        return False


def create_user(name: str) -> None:
    commands.run(["useradd", "-m", "-s", "/bin/bash", name])
    # SSH key authentication only
    commands.run(["passwd", "-l", name], check=False)


def add_to_groups(name: str, groups: List[str]) -> None:
    if groups:
        commands.run(["usermod", "-aG", ",".join(groups), name])


def sudoers_rule_installed(path: Path, rule: str) -> bool:
    return files.read_text(path) == rule


def install_sudoers_rule(path: Path, rule: str) -> bool:
    """
    Stage the rule next to its destination, check it with `visudo -c -f`, and
    only then move it into place. An invalid rule is removed, never installed.
    Returns False when the installed rule was already identical.
    """
    if sudoers_rule_installed(path, rule):
        return False
    # sudo ignores files in sudoers.d whose names contain a '.'
    staging = path.with_name(f"{path.name}.staging")
    files.write_text(staging, rule, mode=0o440)
    try:
        commands.run(["visudo", "-c", "-f", str(staging)])
    except CommandError:
        staging.unlink()
        log.error("Rejected invalid sudoers rule for %s", path)
        raise
    os.replace(staging, path)
    log.info("Installed sudoers rule %s", path)
    return True


def _chown(path: Path, name: str) -> None:
    pw = pwd.getpwnam(name)
    os.chown(path, pw.pw_uid, pw.pw_gid)


def ssh_dir_ready(home: Path) -> bool:
    ssh_dir = home / ".ssh"
    keys = ssh_dir / "authorized_keys"
    if not ssh_dir.is_dir() or not keys.is_file():
        return False
    return (
        stat.S_IMODE(ssh_dir.stat().st_mode) == 0o700
        and stat.S_IMODE(keys.stat().st_mode) == 0o600
    )


def prepare_ssh_dir(name: str, home: Path) -> bool:
    """
    Ensure ~/.ssh (0700) and an empty authorized_keys (0600) owned by `name`.
    Existing keys are left untouched. Returns True if anything was created or fixed.
    """
    ssh_dir = home / ".ssh"
    keys = ssh_dir / "authorized_keys"
    if ssh_dir_ready(home):
        return False
    if not ssh_dir.is_dir():
        ssh_dir.mkdir(parents=True)
        log.info("Created %s", ssh_dir)
    if not keys.exists():
        files.write_text(keys, "", mode=0o600)
    os.chmod(ssh_dir, 0o700)
    os.chmod(keys, 0o600)
    _chown(ssh_dir, name)
    _chown(keys, name)
    return True


def account_configured(name: str, home: Path, sudoers_file: Path, rule: str) -> bool:
    return (
        user_exists(name)
        and sudoers_rule_installed(sudoers_file, rule)
        and ssh_dir_ready(home)
    )


def ssh_dir_mode(home: Path) -> Optional[int]:
    try:
        return stat.S_IMODE((home / ".ssh").stat().st_mode)
    except OSError:
        return None


def missing_groups(name: str, groups: List[str]) -> List[str]:
    """Groups from `groups` that `name` is not yet a member of (unknown groups included)."""
    try:
        primary_gid = pwd.getpwnam(name).pw_gid
    except KeyError:
        return list(groups)
    missing = []
    for g in groups:
        try:
            entry = grp.getgrnam(g)
        except KeyError:
            missing.append(g)
            continue
        if name not in entry.gr_mem and entry.gr_gid != primary_gid:
            missing.append(g)
    return missing
