# bootstrap/runner.py
from __future__ import annotations
from typing import Callable, List, Optional, Tuple

from rich.markup import escape
from rich.table import Table

from bootstrap import mutators, network_mutator
from bootstrap.mutators import MutationContext
from bootstrap.verify import verify
from console import Reporter
from logger import log, log_file_path
from settings import Settings
from state import MutationResult, Outcome, RunReport, SystemSnapshot, TargetState
from system.backup import BackupManager

Step = Callable[[TargetState, SystemSnapshot, MutationContext], MutationResult]

_OUTCOME_STYLE = {
    Outcome.SUCCEEDED: "green",
    Outcome.UNCHANGED: "dim",
    Outcome.DECLINED: "yellow",
    Outcome.FAILED: "red",
    Outcome.SKIPPED: "dim",
}


def steps() -> List[Tuple[str, Step]]:
    # Network is last: the other three must be terminal before addressing changes
    return [
        ("hostname", mutators.mutate_hostname),
        ("timezone", mutators.mutate_timezone),
        ("service_account", mutators.mutate_service_account),
        ("network", network_mutator.mutate_network),
    ]


def run_mutations(target: TargetState, snapshot: SystemSnapshot, ctx: MutationContext) -> List[MutationResult]:
    results: List[MutationResult] = []
    aborted_by: Optional[str] = None
    for name, step in steps():
        if aborted_by:
            log.warning("Skipping %s: %s failed", name, aborted_by)
            results.append(MutationResult(name, Outcome.SKIPPED, f"not run: {aborted_by} failed"))
            continue
        ctx.reporter.header(name.replace("_", " ").title())
        result = step(target, snapshot, ctx)
        log.info("Result: %s", result)
        results.append(result)
        if result.outcome is Outcome.FAILED and result.fatal:
            aborted_by = name
            ctx.reporter.error(f"Aborting remaining steps after {name} failure")
    return results


def next_steps(target: TargetState, snapshot: SystemSnapshot, settings: Settings, report: RunReport) -> List[str]:
    address = target.network.ip if target.network else snapshot.active_interface.ipv4
    account = settings.service_account
    lines = []
    if target.provision_service_account:
        lines += [
            "From the Ansible controller, install the automation key:",
            f"  ssh-copy-id -i {settings.controller_key_hint} {account}@{address}",
            "Then test connectivity:",
            f"  ansible {address}, -m ping --user {account}",
        ]
    net = report.result("network")
    if net is not None and net.outcome is Outcome.SUCCEEDED:
        lines.append("Network configuration changed; a reboot is recommended.")
    elif net is not None and net.outcome is Outcome.DECLINED:
        lines.append("The new network configuration is not active yet: sudo netplan apply")
    return lines


def results_table(report: RunReport) -> Table:
    table = Table(title="Results")
    table.add_column("Step", style="bold")
    table.add_column("Outcome")
    table.add_column("Detail")
    for r in report.results:
        style = _OUTCOME_STYLE[r.outcome]
        detail = r.detail + (" (rolled back)" if r.rolled_back else "")
        table.add_row(r.name, f"[{style}]{r.outcome.value}[/{style}]", escape(detail))
    return table


def print_summary(report: RunReport, lines: List[str], reporter: Reporter) -> None:
    reporter.header("Summary")
    reporter.print(results_table(report))
    for item in report.verification:
        if item.passed:
            reporter.success(str(item))
        else:
            reporter.warning(str(item))
    for line in lines:
        reporter.info(line)
    if report.succeeded:
        reporter.success("Bootstrap complete")
    else:
        reporter.error(f"Bootstrap finished with failures (see {log_file_path()})")


def execute(
    target: TargetState,
    snapshot: SystemSnapshot,
    settings: Settings,
    reporter: Reporter,
    *,
    confirm_activation: Optional[Callable[[str], bool]] = None,
    backups: Optional[BackupManager] = None,
) -> RunReport:
    ctx = MutationContext(
        settings=settings,
        backups=backups or BackupManager(str(settings.backup_dir)),
        reporter=reporter,
        confirm_activation=confirm_activation,
    )
    report = RunReport(results=run_mutations(target, snapshot, ctx))
    report.verification = verify(target, snapshot, settings, report)
    print_summary(report, next_steps(target, snapshot, settings, report), reporter)
    log.info("Run finished: %s exit=%d", report.outcomes, report.exit_code)
    return report
