# tests/test_inputs.py
import pytest

import main as main_mod
from bootstrap.inputs import (
    build_target, is_non_interactive, split_list, target_from_args, validate_args,
)
from errors import ValidationError
from state import StaticNetworkConfig


def _args(*argv):
    return main_mod.build_parser().parse_args(list(argv))


def test_any_config_flag_means_non_interactive():
    assert is_non_interactive(_args("--hostname", "lab-01"))
    assert is_non_interactive(_args("--ntp", "pool.ntp.org"))
    assert not is_non_interactive(_args("--dry-run"))

def test_ip_without_gateway_rejected():
    with pytest.raises(ValidationError, match="--gateway"):
        validate_args(_args("--ip", "192.168.10.2"))

def test_gateway_without_ip_rejected():
    with pytest.raises(ValidationError):
        validate_args(_args("--hostname", "lab-01", "--gateway", "192.168.10.1"))

@pytest.mark.parametrize("argv", [
    ("--dns", "192.168.10.1"),
    ("--subnet", "16"),
    ("--gateway", "192.168.10.1"),
])
def test_network_flags_without_ip_rejected_in_either_mode(argv):
    args = _args(*argv)
    assert not is_non_interactive(args)
    with pytest.raises(ValidationError, match="--ip"):
        validate_args(args)

def test_leading_zero_ip_flag_rejected():
    with pytest.raises(ValidationError):
        validate_args(_args("--ip", "192.168.010.2", "--gateway", "192.168.10.1"))

def test_leading_zero_gateway_and_dns_rejected():
    with pytest.raises(ValidationError, match="gateway"):
        validate_args(_args("--ip", "192.168.10.2", "--gateway", "192.168.010.1"))
    with pytest.raises(ValidationError):
        validate_args(_args("--ip", "192.168.10.2", "--gateway", "192.168.10.1",
                            "--dns", "192.168.010.1"))

def test_bad_hostname_flag():
    with pytest.raises(ValidationError, match="reserved"):
        validate_args(_args("--hostname", "localhost"))

def test_bad_timezone_flag():
    with pytest.raises(ValidationError):
        validate_args(_args("--timezone", "Mars/Olympus"))

def test_bad_dns_flag():
    with pytest.raises(ValidationError):
        validate_args(_args("--ip", "192.168.10.2", "--gateway", "192.168.10.1", "--dns", "dns.google"))

def test_mask_alias():
    assert _args("--ip", "10.0.0.5", "--mask", "16").subnet == 16

def test_target_defaults_from_snapshot(snapshot):
    target = target_from_args(_args("--timezone", "America/Chicago"), snapshot())
    assert target.hostname == "old-host"
    assert target.timezone == "America/Chicago"
    assert target.network is None
    assert target.provision_service_account

def test_timezone_defaults_to_current(snapshot):
    target = target_from_args(_args("--hostname", "lab-01"), snapshot(timezone="Europe/Berlin"))
    assert target.timezone == "Europe/Berlin"

def test_dns_defaults_to_gateway(snapshot):
    target = target_from_args(
        _args("--ip", "192.168.10.2", "--gateway", "192.168.10.1"), snapshot())
    assert target.network == StaticNetworkConfig(
        "192.168.10.2", 24, "192.168.10.1", ("192.168.10.1",))

def test_repeatable_dns_and_ntp(snapshot):
    target = target_from_args(_args(
        "--ip", "10.1.0.9", "--gateway", "10.1.0.1", "--subnet", "16",
        "--dns", "10.1.0.2", "--dns", "10.1.0.3", "--ntp", "a.ntp", "--ntp", "b.ntp",
    ), snapshot())
    assert target.network.dns_servers == ("10.1.0.2", "10.1.0.3")
    assert target.network.prefix_len == 16
    assert target.ntp_servers == ("a.ntp", "b.ntp")

def test_split_list():
    assert split_list("a, b,,c") == ["a", "b", "c"]
    assert split_list(["a,b", "c"]) == ["a", "b", "c"]
    assert split_list(None) == []


# -- interactive answers ----------------------------------------------------

def test_build_target_keeps_blank_as_current(snapshot):
    target = build_target({"hostname": "", "timezone": ""}, snapshot())
    assert target.hostname == "old-host"
    assert target.timezone == "UTC"
    assert target.network is None

def test_build_target_current_hostname_not_revalidated(snapshot):
    target = build_target({"hostname": "Legacy_Host"}, snapshot(hostname="Legacy_Host"))
    assert target.hostname == "Legacy_Host"

def test_build_target_static(snapshot):
    target = build_target({
        "hostname": "lab-01", "configure_network": True, "ip": "192.168.10.2",
        "prefix": "24", "gateway": "192.168.10.1", "dns": "",
        "service_account": False,
    }, snapshot())
    assert target.network.cidr == "192.168.10.2/24"
    assert target.network.dns_servers == ("192.168.10.1",)
    assert not target.provision_service_account

def test_build_target_network_needs_ip(snapshot):
    with pytest.raises(ValidationError):
        build_target({"configure_network": True, "ip": ""}, snapshot())

def test_build_target_bad_prefix(snapshot):
    with pytest.raises(ValidationError, match="1-32"):
        build_target({"configure_network": True, "ip": "10.0.0.5",
                      "prefix": "40", "gateway": "10.0.0.1"}, snapshot())

def test_build_target_broadcast_address(snapshot):
    with pytest.raises(ValidationError, match="broadcast"):
        build_target({"configure_network": True, "ip": "10.0.0.255",
                      "prefix": "24", "gateway": "10.0.0.1"}, snapshot())

def test_build_target_leading_zero_ip(snapshot):
    with pytest.raises(ValidationError, match="192.168.010.2"):
        build_target({"configure_network": True, "ip": "192.168.010.2",
                      "prefix": "24", "gateway": "192.168.10.1"}, snapshot())
