# tests/test_netplan.py
import stat

import pytest
import yaml

from network.netplan import NetplanManager, is_backup_name
from state import StaticNetworkConfig

DHCP_FILE = """\
network:
  version: 2
  ethernets:
    eth0:
      dhcp4: true
      match:
        macaddress: 52:54:00:12:34:56
"""

STATIC_FILE = """\
network:
  version: 2
  ethernets:
    ens160:
      dhcp4: false
      addresses: [10.0.0.5/24]
      routes:
        - to: default
          via: 10.0.0.1
      nameservers:
        addresses: [10.0.0.1, 8.8.8.8]
"""

@pytest.fixture
def tmp_netplan(tmp_path):
    """Return a NetplanManager pointed at a temp directory."""
    return NetplanManager(netplan_dir=str(tmp_path))

@pytest.fixture
def cfg():
    return StaticNetworkConfig(
        ip="192.168.10.2", prefix_len=24, gateway="192.168.10.1",
        dns_servers=("192.168.10.1",),
    )

def test_candidate_files_sorted_and_filtered(tmp_netplan, tmp_path):
    for name in ["50-cloud-init.yaml", "00-installer-config.yaml", "01-net.yml",
                 "00-installer-config.yaml.bak", "x.yaml.backup", "y.yaml~",
                 "old.bak.yaml", "notes.txt"]:
        (tmp_path / name).write_text("network: {version: 2}\n")
    names = [p.name for p in tmp_netplan.candidate_files()]
    assert names == ["00-installer-config.yaml", "01-net.yml", "50-cloud-init.yaml"]

def test_candidate_files_missing_dir(tmp_path):
    assert NetplanManager(str(tmp_path / "absent")).candidate_files() == []

@pytest.mark.parametrize("name,expected", [
    ("a.yaml.bak", True), ("a.yaml.orig", True), ("a.yaml~", True),
    ("a.backup.yaml", True), ("a.yaml", False), ("bakery.yaml", False),
])
def test_is_backup_name(name, expected):
    assert is_backup_name(name) is expected

def test_describe_dhcp_file(tmp_netplan, tmp_path):
    f = tmp_path / "50-cloud-init.yaml"
    f.write_text(DHCP_FILE)
    info = tmp_netplan.describe(f)
    assert info.structured
    assert info.interfaces == ["eth0"]
    assert info.mode == "DHCP"
    assert info.matches_mac("52:54:00:12:34:56")
    assert not info.matches_mac("aa:bb:cc:dd:ee:ff")
    assert info.static_config_for("eth0") is None

def test_describe_static_file(tmp_netplan, tmp_path):
    f = tmp_path / "00-installer-config.yaml"
    f.write_text(STATIC_FILE)
    info = tmp_netplan.describe(f)
    assert info.mode == "Static"
    cfg = info.static_config_for("ens160")
    assert cfg == StaticNetworkConfig("10.0.0.5", 24, "10.0.0.1", ("10.0.0.1", "8.8.8.8"))

def test_describe_legacy_gateway4(tmp_netplan, tmp_path):
    f = tmp_path / "01.yaml"
    f.write_text(
        "network:\n  ethernets:\n    eth1:\n      addresses: [172.16.0.9/16]\n"
        "      gateway4: 172.16.0.1\n"
    )
    entry = tmp_netplan.describe(f).entry_for("eth1")
    assert entry.gateway == "172.16.0.1"
    assert entry.mode == "Static"

def test_describe_falls_back_to_heuristics(tmp_netplan, tmp_path):
    f = tmp_path / "broken.yaml"
    f.write_text(
        "network:\n  ethernets:\n    eth0:\n      dhcp4: true\n"
        "    eth1:\n      addresses: [\n  wifis:\n    wlan0:\n      dhcp4: true\n"
    )
    info = tmp_netplan.describe(f)
    assert not info.structured
    assert info.interfaces == ["eth0", "eth1"]
    assert info.mode == "DHCP"

def test_describe_non_utf8_file_uses_heuristics(tmp_netplan, tmp_path):
    f = tmp_path / "00-installer-config.yaml"
    f.write_bytes(b"# caf\xe9\n" + DHCP_FILE.encode())
    info = tmp_netplan.describe(f)
    assert not info.structured
    assert info.interfaces == ["eth0"]
    assert info.mode == "DHCP"

def test_static_config_ignores_malformed_address(tmp_netplan, tmp_path):
    f = tmp_path / "00-installer-config.yaml"
    f.write_text(STATIC_FILE.replace("10.0.0.5/24", "10.0.0.05/24"))
    assert tmp_netplan.describe(f).static_config_for("ens160") is None

def test_render_static_happy_path(tmp_netplan, cfg):
    doc = tmp_netplan.render_static("eth0", cfg, mac="52:54:00:AA:BB:CC")
    entry = doc["network"]["ethernets"]["eth0"]
    assert entry["addresses"] == ["192.168.10.2/24"]
    assert entry["routes"] == [{"to": "default", "via": "192.168.10.1"}]
    assert entry["nameservers"]["addresses"][0] == "192.168.10.1"
    assert entry["nameservers"]["addresses"] == ["192.168.10.1", "8.8.8.8"]
    assert entry["match"] == {"macaddress": "52:54:00:aa:bb:cc"}
    assert entry["set-name"] == "eth0"
    assert entry["dhcp4"] is False and entry["dhcp6"] is False

def test_render_without_mac_has_no_match(tmp_netplan, cfg):
    entry = tmp_netplan.render_static("eth0", cfg)["network"]["ethernets"]["eth0"]
    assert "match" not in entry
    assert "set-name" not in entry

def test_fallback_dns_not_duplicated(cfg):
    cfg = StaticNetworkConfig("10.0.0.5", 24, "10.0.0.1", ("8.8.8.8", "1.1.1.1"))
    assert NetplanManager.nameservers(cfg, "8.8.8.8") == ["8.8.8.8", "1.1.1.1"]

def test_dns_defaults_to_gateway():
    cfg = StaticNetworkConfig("10.0.0.5", 24, "10.0.0.1")
    assert NetplanManager.nameservers(cfg, "8.8.8.8") == ["10.0.0.1", "8.8.8.8"]

def test_render_text_round_trips_and_has_header(tmp_netplan, cfg):
    text = tmp_netplan.render_text(tmp_netplan.render_static("eth0", cfg))
    assert text.startswith("# Generated by host-bootstrap")
    assert yaml.safe_load(text)["network"]["version"] == 2
    assert tmp_netplan.validate_rendered(text, "eth0") == []

def test_validate_rendered_catches_bad_address(tmp_netplan):
    text = (
        "network:\n  version: 2\n  ethernets:\n    eth0:\n"
        "      addresses: [192.168.10.300/24]\n"
    )
    problems = tmp_netplan.validate_rendered(text, "eth0")
    assert problems and "bad address" in problems[0]

def test_validate_rendered_wrong_interface(tmp_netplan, cfg):
    text = tmp_netplan.render_text(tmp_netplan.render_static("eth0", cfg))
    assert "no ethernets entry for eth1" in tmp_netplan.validate_rendered(text, "eth1")

def test_write_uses_mode_600(tmp_netplan, tmp_path):
    path = tmp_path / "00-installer-config.yaml"
    tmp_netplan.write(path, "network: {version: 2}\n")
    assert stat.S_IMODE(path.stat().st_mode) == 0o600

def test_generate_and_apply_commands(tmp_netplan, fake_commands):
    tmp_netplan.generate()
    tmp_netplan.apply(timeout=30)
    assert fake_commands.calls == [["netplan", "generate"], ["netplan", "apply"]]
