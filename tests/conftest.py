# tests/conftest.py
import sys, os, tempfile
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
os.environ.setdefault(
    "HOST_BOOTSTRAP_LOG", os.path.join(tempfile.gettempdir(), "host-bootstrap-test.log")
)

import subprocess
from pathlib import Path

import pytest
from rich.console import Console

from console import Reporter
from errors import CommandError
from settings import Settings
from state import InterfaceSnapshot, SystemSnapshot
from system import commands


class FakeCommands:
    """
    Stand-in for system.commands.run. Records every command; responses are
    keyed by a command prefix, e.g. ("netplan", "apply").
    A response is (returncode, stdout) or an exception instance to raise.
    """

    def __init__(self):
        self.calls = []
        self.responses = {}

    def on(self, *prefix, rc=0, stdout="", raises=None):
        self.responses[tuple(prefix)] = raises if raises is not None else (rc, stdout)

    def ran(self, *prefix):
        return [c for c in self.calls if tuple(c[:len(prefix)]) == prefix]

    def __call__(self, cmd, *, timeout=None, check=True):
        self.calls.append(list(cmd))
        response = (0, "")
        best = -1
        for prefix, value in self.responses.items():
            if tuple(cmd[:len(prefix)]) == prefix and len(prefix) > best:
                response, best = value, len(prefix)
        if isinstance(response, Exception):
            raise response
        rc, stdout = response
        if check and rc != 0:
            raise CommandError(cmd, rc, "failed")
        return subprocess.CompletedProcess(cmd, rc, stdout=stdout, stderr="")


@pytest.fixture
def fake_commands(monkeypatch):
    fake = FakeCommands()
    monkeypatch.setattr(commands, "run", fake)
    return fake


@pytest.fixture
def reporter():
    return Reporter(Console(quiet=True))


@pytest.fixture
def settings(tmp_path):
    root = tmp_path / "root"
    s = Settings(
        netplan_dir=root / "etc" / "netplan",
        hosts_file=root / "etc" / "hosts",
        backup_dir=root / "var" / "backups",
        sudoers_dir=root / "etc" / "sudoers.d",
        home_root=root / "home",
        timesyncd_dir=root / "etc" / "timesyncd.conf.d",
        chrony_sources_dir=root / "etc" / "chrony" / "sources.d",
    )
    s.netplan_dir.mkdir(parents=True)
    s.hosts_file.write_text("127.0.0.1\tlocalhost\n127.0.1.1\told-host\n")
    return s


@pytest.fixture
def snapshot(settings):
    def _make(**overrides):
        values = dict(
            hostname="old-host",
            timezone="UTC",
            active_interface=InterfaceSnapshot(
                name="eth0", mac_address="52:54:00:12:34:56",
                ipv4_with_prefix="192.168.10.50/24",
            ),
            network_config_file=settings.default_netplan_path,
            default_gateway="192.168.10.1",
        )
        values.update(overrides)
        return SystemSnapshot(**values)
    return _make


class FakeHost:
    """Just enough of a host for the mutators: users, groups, hostname, timezone, addresses."""

    def __init__(self):
        self.users = set()
        self.groups = {}
        self.hostname = "old-host"
        self.timezone = "UTC"
        self.addresses = {"eth0": ["192.168.10.50/24"]}
        self.ntp_enabled = False

    def create_user(self, name):
        self.users.add(name)
        self.groups.setdefault(name, set())

    def missing_groups(self, name, groups):
        return [g for g in groups if g not in self.groups.get(name, set())]

    def add_to_groups(self, name, groups):
        self.groups.setdefault(name, set()).update(groups)


@pytest.fixture
def fake_host(monkeypatch, fake_commands):
    import bootstrap.mutators as mutators_mod
    import bootstrap.network_mutator as network_mod
    import bootstrap.verify as verify_mod
    from system import accounts

    host = FakeHost()
    monkeypatch.setattr(accounts, "user_exists", lambda name: name in host.users)
    monkeypatch.setattr(accounts, "create_user", host.create_user)
    monkeypatch.setattr(accounts, "missing_groups", host.missing_groups)
    monkeypatch.setattr(accounts, "add_to_groups", host.add_to_groups)
    monkeypatch.setattr(accounts, "_chown", lambda path, name: None)
    monkeypatch.setattr(mutators_mod, "set_hostname", lambda name: setattr(host, "hostname", name))
    monkeypatch.setattr(mutators_mod, "set_timezone", lambda name: setattr(host, "timezone", name))
    monkeypatch.setattr(mutators_mod, "enable_ntp",
                        lambda service="timesyncd": setattr(host, "ntp_enabled", True))
    monkeypatch.setattr(verify_mod, "get_hostname", lambda: host.hostname)
    monkeypatch.setattr(verify_mod, "get_timezone", lambda: host.timezone)
    monkeypatch.setattr(verify_mod, "ntp_synchronized", lambda: host.ntp_enabled)
    monkeypatch.setattr(verify_mod, "iface_ipv4_addresses", lambda iface: host.addresses.get(iface, []))
    monkeypatch.setattr(network_mod, "iface_ipv4_addresses", lambda iface: host.addresses.get(iface, []))
    return host


@pytest.fixture
def writes(monkeypatch):
    """Every path written through system.files.write_text, in order."""
    from system import files

    recorded = []
    real = files.write_text

    def spy(path, content, mode=None):
        recorded.append(Path(path))
        real(path, content, mode=mode)

    monkeypatch.setattr(files, "write_text", spy)
    return recorded
