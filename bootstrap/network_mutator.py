# bootstrap/network_mutator.py
from __future__ import annotations
from typing import Optional

from bootstrap.mutators import MutationContext
from errors import BackupError, CommandError, CommandTimeout
from logger import log
from network.interfaces import iface_ipv4_addresses
from network.netplan import NetplanManager
from state import (
    MutationResult, NetworkState, Outcome, StaticNetworkConfig, SystemSnapshot, TargetState,
)
from system.backup import BackupHandle
from validators import validate_dns, validate_ip, validate_prefix

APPLY_LATER_HINT = "apply later from a console: sudo netplan apply"


class NetworkMutator:
    """
    Applies a static IPv4 config as a sequence of states:

        Skipped | Written -> Validated -> PendingActivation -> Activated
                  Written/Validated/PendingActivation -> RolledBack

    Every failure after the file is written restores the backup.
    """

    name = "network"

    def __init__(self, ctx: MutationContext, manager: Optional[NetplanManager] = None) -> None:
        self.ctx = ctx
        self.manager = manager or NetplanManager(str(ctx.settings.netplan_dir))
        self.state = NetworkState.SKIPPED

    def _transition(self, state: NetworkState) -> None:
        log.info("Network state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _result(self, outcome: Outcome, detail: str = "", rolled_back: bool = False) -> MutationResult:
        return MutationResult(
            self.name, outcome, detail, rolled_back=rolled_back, network_state=self.state,
        )

    # -- Checks --------------------------------------------------------------

    @staticmethod
    def target_problems(cfg: StaticNetworkConfig) -> list:
        problems = []
        prefix_ok, prefix_msg = validate_prefix(cfg.prefix_len)
        for ok, msg in (
            (prefix_ok, prefix_msg),
            validate_ip(cfg.ip, prefix_len=cfg.prefix_len if prefix_ok else None),
            validate_ip(cfg.gateway),
            *(validate_dns(d) for d in cfg.dns_servers),
        ):
            if not ok:
                problems.append(msg)
        return problems

    def already_applied(self, cfg: StaticNetworkConfig, snapshot: SystemSnapshot) -> bool:
        existing = snapshot.existing_static_config()
        if existing is None:
            return False
        same_file = (
            existing.ip == cfg.ip
            and existing.prefix_len == cfg.prefix_len
            and existing.gateway == cfg.gateway
            and list(existing.dns_servers)
            == self.manager.nameservers(cfg, self.ctx.settings.fallback_dns)
        )
        return same_file and snapshot.active_interface.ipv4_with_prefix == cfg.cidr

    # -- Rollback --------------------------------------------------------------

    def _rollback(self, handle: BackupHandle, reason: str, *, reapply: bool) -> MutationResult:
        reporter = self.ctx.reporter
        reporter.error(f"Network configuration failed: {reason}")
        try:
            self.ctx.backups.restore(handle)
        except (BackupError, OSError) as e:
            reporter.error(f"Could not restore {handle.original_path}: {e}")
            return self._result(Outcome.FAILED, f"{reason}; restore failed: {e}")

        if reapply:
            try:
                self.manager.apply(timeout=self.ctx.settings.apply_timeout)
            except CommandError as e:
                reporter.error(f"Re-applying the previous configuration failed: {e}")
        self._transition(NetworkState.ROLLED_BACK)
        reporter.warning(f"Restored previous network configuration ({handle.original_path})")
        return self._result(Outcome.FAILED, reason, rolled_back=True)

    # -- Run -------------------------------------------------------------------

    def run(self, target: TargetState, snapshot: SystemSnapshot) -> MutationResult:
        reporter = self.ctx.reporter
        settings = self.ctx.settings
        cfg = target.network
        if cfg is None:
            reporter.info("Network addressing left unchanged")
            return self._result(Outcome.SKIPPED, "not requested")

        problems = self.target_problems(cfg)
        if problems:
            for p in problems:
                reporter.error(p)
            return self._result(Outcome.FAILED, "; ".join(problems))

        if self.already_applied(cfg, snapshot):
            reporter.info(f"Static address {cfg.cidr} already configured")
            return self._result(Outcome.UNCHANGED)

        iface = snapshot.active_interface
        path = snapshot.network_config_file
        try:
            handle = self.ctx.backups.backup(path)
        except BackupError as e:
            reporter.error(str(e))
            return self._result(Outcome.FAILED, str(e))

        doc = self.manager.render_static(
            iface.name, cfg, mac=iface.mac_address, fallback_dns=settings.fallback_dns,
        )
        text = self.manager.render_text(doc)
        try:
            self.manager.write(path, text)
        except OSError as e:
            return self._rollback(handle, f"cannot write {path}: {e}", reapply=False)
        self._transition(NetworkState.WRITTEN)
        reporter.info(f"Wrote netplan static config to {path}")

        problems = self.manager.validate_rendered(text, iface.name)
        if problems:
            return self._rollback(handle, "invalid config: " + "; ".join(problems), reapply=False)
        try:
            self.manager.generate()
        except CommandError as e:
            return self._rollback(handle, f"netplan generate failed: {e}", reapply=False)
        self._transition(NetworkState.VALIDATED)
        reporter.success("Netplan configuration validated")

        self._transition(NetworkState.PENDING_ACTIVATION)
        if self.ctx.confirm_activation is not None:
            message = (
                f"Activating {cfg.cidr} on {iface.name} may drop your SSH session "
                f"(current address {iface.ipv4_with_prefix or 'none'})."
            )
            reporter.warning(message)
            if not self.ctx.confirm_activation(message):
                reporter.info(f"Activation declined; the validated config is on disk, {APPLY_LATER_HINT}")
                return self._result(Outcome.DECLINED, APPLY_LATER_HINT)

        try:
            self.manager.apply(timeout=settings.apply_timeout)
        except CommandTimeout as e:
            return self._rollback(handle, f"netplan apply timed out: {e}", reapply=True)
        except CommandError as e:
            return self._rollback(handle, f"netplan apply failed: {e}", reapply=True)
        self._transition(NetworkState.ACTIVATED)
        reporter.success(f"Network configuration applied: {cfg.cidr} via {cfg.gateway}")

        live = iface_ipv4_addresses(iface.name)
        if cfg.cidr not in live:
            reporter.warning(
                f"Expected {cfg.cidr} on {iface.name}, found {', '.join(live) or 'none'} "
                "(may need a reboot)"
            )
        return self._result(Outcome.SUCCEEDED, f"{cfg.cidr} via {cfg.gateway}")


def mutate_network(target: TargetState, snapshot: SystemSnapshot, ctx: MutationContext) -> MutationResult:
    return NetworkMutator(ctx).run(target, snapshot)
