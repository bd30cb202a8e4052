# bootstrap/mutators.py
"""
Host mutators. Each takes the target, the probed snapshot and a
MutationContext, and returns a MutationResult instead of raising.
The network mutator lives in bootstrap/network_mutator.py.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Optional

from console import Reporter
from errors import BackupError, CommandError
from logger import log
from settings import Settings
from state import MutationResult, Outcome, SystemSnapshot, TargetState
from system import accounts, files
from system.backup import BackupHandle, BackupManager
from system.hostname import set_hostname, update_hosts_text
from system.timezone import enable_ntp, render_ntp_config, set_timezone


@dataclass
class MutationContext:
    settings: Settings
    backups: BackupManager
    reporter: Reporter
    # Asked before activating a new network config; None skips the gate
    confirm_activation: Optional[Callable[[str], bool]] = None


def _restore_quietly(ctx: MutationContext, handle: Optional[BackupHandle]) -> bool:
    if handle is None:
        return False
    try:
        ctx.backups.restore(handle)
        return True
    except (BackupError, OSError) as e:
        ctx.reporter.error(f"Restore of {handle.original_path} failed: {e}")
        return False


def mutate_hostname(target: TargetState, snapshot: SystemSnapshot, ctx: MutationContext) -> MutationResult:
    name = "hostname"
    if target.hostname == snapshot.hostname:
        ctx.reporter.info(f"Hostname unchanged: {snapshot.hostname}")
        return MutationResult(name, Outcome.UNCHANGED)

    hosts = ctx.settings.hosts_file
    try:
        handle = ctx.backups.backup(hosts)
    except BackupError as e:
        ctx.reporter.error(str(e))
        return MutationResult(name, Outcome.FAILED, str(e), fatal=True)

    # hosts before hostnamectl, so restoring hosts undoes either failure
    try:
        current = files.read_text(hosts) or ""
        updated = update_hosts_text(current, target.hostname)
        if updated != current:
            files.write_text(hosts, updated)
        set_hostname(target.hostname)
    except (CommandError, OSError, UnicodeDecodeError) as e:
        restored = _restore_quietly(ctx, handle)
        ctx.reporter.error(f"Failed to set hostname: {e}")
        return MutationResult(name, Outcome.FAILED, str(e), rolled_back=restored, fatal=True)

    ctx.reporter.success(f"Hostname set: {snapshot.hostname} -> {target.hostname}")
    return MutationResult(name, Outcome.SUCCEEDED, f"{snapshot.hostname} -> {target.hostname}")


def mutate_timezone(target: TargetState, snapshot: SystemSnapshot, ctx: MutationContext) -> MutationResult:
    name = "timezone"
    tz_change = target.timezone != snapshot.timezone
    ntp_change = bool(target.ntp_servers) and tuple(target.ntp_servers) != tuple(snapshot.ntp_servers)
    if not tz_change and not ntp_change:
        ctx.reporter.info(f"Timezone unchanged: {snapshot.timezone}")
        return MutationResult(name, Outcome.UNCHANGED)

    done: List[str] = []
    handle = None
    try:
        if tz_change:
            set_timezone(target.timezone)
            done.append(f"timezone {target.timezone}")
            ctx.reporter.success(f"Timezone set: {target.timezone}")
        if ntp_change:
            service = snapshot.ntp_service
            path = ctx.settings.ntp_config_path(service)
            if path is None:
                ctx.reporter.warning(
                    f"{service} is the active NTP service; add the servers to its own config"
                )
                enable_ntp(service)
                done.append(f"restarted {service}")
            else:
                handle = ctx.backups.backup(path)
                files.write_text(
                    path, render_ntp_config(service, list(target.ntp_servers)), mode=0o644,
                )
                enable_ntp(service)
                done.append(f"NTP ({service}) " + " ".join(target.ntp_servers))
                ctx.reporter.success(f"NTP servers set for {service}: {', '.join(target.ntp_servers)}")
    except (CommandError, BackupError, OSError) as e:
        restored = _restore_quietly(ctx, handle)
        ctx.reporter.error(f"Timezone/NTP configuration failed: {e}")
        log.warning("Continuing after timezone failure")
        return MutationResult(name, Outcome.FAILED, str(e), rolled_back=restored)

    return MutationResult(name, Outcome.SUCCEEDED, ", ".join(done))


def mutate_service_account(target: TargetState, snapshot: SystemSnapshot, ctx: MutationContext) -> MutationResult:
    name = "service_account"
    s = ctx.settings
    account = s.service_account
    if not target.provision_service_account:
        ctx.reporter.info(f"Service account '{account}' not requested")
        return MutationResult(name, Outcome.SKIPPED, "not requested")

    changes: List[str] = []
    try:
        if not accounts.user_exists(account):
            accounts.create_user(account)
            changes.append("created user")
            ctx.reporter.success(f"Created user {account} (password locked)")

        missing = accounts.missing_groups(account, s.service_groups)
        if missing:
            accounts.add_to_groups(account, missing)
            changes.append("groups " + ",".join(missing))

        if not accounts.sudoers_rule_installed(s.sudoers_file, s.sudoers_rule):
            ctx.backups.backup(s.sudoers_file)
            accounts.install_sudoers_rule(s.sudoers_file, s.sudoers_rule)
            changes.append("sudoers rule")
            ctx.reporter.success(f"Passwordless sudo configured in {s.sudoers_file}")

        if not accounts.ssh_dir_ready(s.account_home):
            ctx.backups.backup(s.authorized_keys)
            accounts.prepare_ssh_dir(account, s.account_home)
            changes.append("ssh dir")
            ctx.reporter.success(f"Prepared {s.account_home / '.ssh'}")
    except (CommandError, BackupError, OSError, KeyError) as e:
        ctx.reporter.error(f"Service account setup failed: {e}")
        return MutationResult(name, Outcome.FAILED, str(e), fatal=True)

    if not changes:
        ctx.reporter.info(f"Service account '{account}' already configured")
        return MutationResult(name, Outcome.UNCHANGED)
    return MutationResult(name, Outcome.SUCCEEDED, ", ".join(changes))
