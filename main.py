# main.py
import argparse
import sys

from rich.prompt import Confirm

from console import Reporter
from errors import BootstrapError
from logger import log

DESCRIPTION = (
    "Idempotent first-boot configuration for Ubuntu servers: hostname, timezone, "
    "automation service account and static IPv4 (netplan), in that order. "
    "Without configuration flags an interactive UI is started."
)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="host-bootstrap", description=DESCRIPTION)
    p.add_argument("--hostname", metavar="NAME", help="new hostname")
    p.add_argument("--ip", metavar="IP", help="static IPv4 address (requires --gateway)")
    p.add_argument("--gateway", metavar="IP", help="default gateway for --ip")
    p.add_argument("--dns", metavar="IP", action="append",
                   help="DNS server, repeatable (default: the gateway)")
    p.add_argument("--subnet", "--mask", metavar="N", type=int, dest="subnet",
                   help="prefix length for --ip (default: 24)")
    p.add_argument("--timezone", metavar="TZ", help="IANA timezone, e.g. America/Chicago")
    p.add_argument("--ntp", metavar="SERVER", action="append",
                   help="NTP server, repeatable")
    p.add_argument("--dry-run", action="store_true", help="show the plan without changing anything")
    p.add_argument("-y", "--yes", action="store_true", help="do not ask for plan confirmation")
    p.add_argument("--config", metavar="PATH", help="YAML settings file")
    return p


def confirm_plan(args: argparse.Namespace, reporter: Reporter) -> bool:
    if args.yes:
        return True
    if not sys.stdin.isatty():
        reporter.info("stdin is not a terminal; proceeding without confirmation")
        return True
    return Confirm.ask("Apply these changes?", default=False, console=reporter.console)


def preflight(settings, reporter: Reporter, *, need_netplan: bool) -> None:
    from system.preflight import run_preflight

    for w in run_preflight(
        backup_dir=settings.backup_dir,
        min_space_mb=settings.min_disk_space_mb,
        need_netplan=need_netplan,
    ):
        reporter.warning(w)


def run_cli(args: argparse.Namespace, settings, reporter: Reporter) -> int:
    from bootstrap.inputs import target_from_args
    from bootstrap.plan import build_plan, has_changes, plan_warnings, render_table
    from bootstrap.probe import probe
    from bootstrap.runner import execute

    if not args.dry_run:
        preflight(settings, reporter, need_netplan=bool(args.ip))

    reporter.header("System probe")
    snapshot = probe(settings, reporter)
    target = target_from_args(args, snapshot)

    rows = build_plan(snapshot, target, settings)
    reporter.print(render_table(rows))
    for w in plan_warnings(snapshot, target):
        reporter.warning(w)

    if args.dry_run:
        reporter.info("Dry run: no changes were made")
        return 0
    if not has_changes(rows):
        reporter.success("Nothing to do: the host already matches the requested state")
        return 0
    if not confirm_plan(args, reporter):
        reporter.info("Declined; no changes were made")
        return 0

    report = execute(target, snapshot, settings, reporter)
    return report.exit_code


def run_tui(args: argparse.Namespace, settings, reporter: Reporter) -> int:
    from app import BootstrapWizard

    if not args.dry_run:
        preflight(settings, reporter, need_netplan=False)
    code = BootstrapWizard(settings, dry_run=args.dry_run).run()
    return code if code is not None else 0


def main(argv=None) -> int:
    from bootstrap.inputs import is_non_interactive, validate_args
    from settings import load_settings

    args = build_parser().parse_args(argv)
    reporter = Reporter()
    log.info("host-bootstrap started: %s", vars(args))
    try:
        validate_args(args)
        settings = load_settings(args.config)
        if is_non_interactive(args):
            return run_cli(args, settings, reporter)
        return run_tui(args, settings, reporter)
    except BootstrapError as e:
        reporter.error(str(e))
        return e.exit_code
    except KeyboardInterrupt:
        reporter.warning("Interrupted; no further changes made")
        return 130


if __name__ == "__main__":
    sys.exit(main())
