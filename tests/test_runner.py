# tests/test_runner.py
from pathlib import Path

import pytest

import bootstrap.mutators as mutators_mod
import bootstrap.network_mutator as network_mod
from bootstrap.plan import build_plan, has_changes
from bootstrap.runner import execute, next_steps
from network.netplan import NetplanManager
from state import (
    InterfaceSnapshot, MutationResult, Outcome, RunReport, StaticNetworkConfig, TargetState,
)
from system.backup import BackupManager

NET = StaticNetworkConfig("192.168.10.2", 24, "192.168.10.1", ("192.168.10.1",))


def _recording(order, name, outcome=Outcome.SUCCEEDED, fatal=False):
    def step(target, snapshot, ctx):
        order.append(name)
        return MutationResult(name, outcome, fatal=fatal)
    return step


@pytest.fixture
def recorded_steps(monkeypatch):
    order = []
    monkeypatch.setattr(mutators_mod, "mutate_hostname", _recording(order, "hostname"))
    monkeypatch.setattr(mutators_mod, "mutate_timezone", _recording(order, "timezone"))
    monkeypatch.setattr(mutators_mod, "mutate_service_account", _recording(order, "service_account"))
    monkeypatch.setattr(network_mod, "mutate_network", _recording(order, "network"))
    return order


def test_mutators_run_in_order_network_last(recorded_steps, snapshot, settings, reporter, fake_host):
    report = execute(TargetState(hostname="lab-01", timezone="UTC"), snapshot(), settings, reporter)
    assert recorded_steps == ["hostname", "timezone", "service_account", "network"]
    assert report.exit_code == 0

def test_fatal_failure_skips_the_rest(monkeypatch, recorded_steps, snapshot, settings, reporter, fake_host):
    monkeypatch.setattr(mutators_mod, "mutate_hostname",
                        _recording(recorded_steps, "hostname", Outcome.FAILED, fatal=True))
    report = execute(TargetState(hostname="lab-01", timezone="UTC"), snapshot(), settings, reporter)
    assert recorded_steps == ["hostname"]
    assert report.outcomes == {
        "hostname": Outcome.FAILED,
        "timezone": Outcome.SKIPPED,
        "service_account": Outcome.SKIPPED,
        "network": Outcome.SKIPPED,
    }
    assert "hostname failed" in report.result("network").detail
    assert report.exit_code == 1

def test_non_fatal_failure_continues(monkeypatch, recorded_steps, snapshot, settings, reporter, fake_host):
    monkeypatch.setattr(mutators_mod, "mutate_timezone",
                        _recording(recorded_steps, "timezone", Outcome.FAILED))
    report = execute(TargetState(hostname="lab-01", timezone="UTC"), snapshot(), settings, reporter)
    assert recorded_steps == ["hostname", "timezone", "service_account", "network"]
    assert report.exit_code == 1

def test_failed_verification_does_not_change_exit_code(recorded_steps, snapshot, settings,
                                                       reporter, fake_host):
    # hostname step is faked, so the live hostname never changes
    report = execute(TargetState(hostname="lab-01", timezone="UTC"), snapshot(), settings, reporter)
    hostname_item = next(i for i in report.verification if i.label == "Hostname")
    assert not hostname_item.passed
    assert report.exit_code == 0

def test_declined_network_exits_zero(snapshot, settings, reporter, fake_host, fake_commands):
    target = TargetState(hostname="old-host", timezone="UTC", network=NET,
                         provision_service_account=False)
    report = execute(target, snapshot(), settings, reporter, confirm_activation=lambda msg: False)
    assert report.result("network").outcome is Outcome.DECLINED
    assert report.exit_code == 0
    item = next(i for i in report.verification if i.label == "Network address")
    assert item.actual == "pending activation"
    lines = next_steps(target, snapshot(), settings, report)
    assert any("sudo netplan apply" in line for line in lines)


def test_next_steps_for_service_account(snapshot, settings):
    target = TargetState(hostname="h", timezone="UTC", network=NET)
    lines = next_steps(target, snapshot(), settings, RunReport())
    assert any("ssh-copy-id" in line and "ansible@192.168.10.2" in line for line in lines)
    assert any("-m ping" in line for line in lines)


# -- end to end against the fake host -----------------------------------------

FULL_TARGET = TargetState(
    hostname="lab-01", timezone="America/Chicago", network=NET,
    ntp_servers=("pool.ntp.org",),
)


def test_every_file_backed_up_before_it_is_written(monkeypatch, snapshot, settings, reporter,
                                                    fake_host, fake_commands):
    from system import files

    events = []
    backups = BackupManager(str(settings.backup_dir))
    real_backup, real_write = backups.backup, files.write_text

    def backup(path):
        events.append(("backup", Path(path)))
        return real_backup(path)

    def write(path, content, mode=None):
        events.append(("write", Path(path)))
        real_write(path, content, mode=mode)

    monkeypatch.setattr(backups, "backup", backup)
    monkeypatch.setattr(files, "write_text", write)
    report = execute(FULL_TARGET, snapshot(), settings, reporter, backups=backups)
    assert report.exit_code == 0

    # sudoers rules are staged next to the destination, then renamed into place
    staging = settings.sudoers_file.with_name(f"{settings.sudoers_file.name}.staging")
    events = [(kind, settings.sudoers_file if p == staging else p) for kind, p in events]
    written = {p for kind, p in events if kind == "write"}
    assert {settings.hosts_file, settings.timesyncd_path, settings.sudoers_file,
            settings.authorized_keys, settings.default_netplan_path} == written
    for path in written:
        assert events.index(("backup", path)) < events.index(("write", path))


def test_second_run_is_a_noop(snapshot, settings, reporter, fake_host, fake_commands, writes):
    fake_host.addresses["eth0"] = ["192.168.10.2/24"]
    first = execute(FULL_TARGET, snapshot(), settings, reporter)
    assert first.exit_code == 0
    assert all(item.passed for item in first.verification), first.verification
    assert settings.hosts_file in writes
    assert settings.timesyncd_path in writes
    assert settings.default_netplan_path in writes

    manager = NetplanManager(str(settings.netplan_dir))
    second_snapshot = snapshot(
        hostname=fake_host.hostname,
        timezone=fake_host.timezone,
        active_interface=InterfaceSnapshot(
            name="eth0", mac_address="52:54:00:12:34:56", ipv4_with_prefix="192.168.10.2/24"),
        network_config_exists=True,
        network_config_info=manager.describe(settings.default_netplan_path),
        service_account_exists=True,
        service_account_configured=True,
        ntp_servers=("pool.ntp.org",),
    )
    assert not has_changes(build_plan(second_snapshot, FULL_TARGET, settings))

    writes.clear()
    fake_commands.calls.clear()
    second = execute(FULL_TARGET, second_snapshot, settings, reporter)
    assert set(second.outcomes.values()) == {Outcome.UNCHANGED}
    assert writes == []
    assert not fake_commands.ran("netplan")
