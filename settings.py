# settings.py
from __future__ import annotations
import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from errors import ValidationError
from logger import log

DEFAULT_CONFIG_FILE = Path("/etc/host-bootstrap/config.yaml")
CONFIG_ENV = "HOST_BOOTSTRAP_CONFIG"

_PATH_FIELDS = (
    "netplan_dir", "hosts_file", "backup_dir", "sudoers_dir",
    "home_root", "timesyncd_dir", "chrony_sources_dir",
)


@dataclass
class Settings:
    netplan_dir: Path = Path("/etc/netplan")
    default_netplan_file: str = "00-installer-config.yaml"
    hosts_file: Path = Path("/etc/hosts")
    backup_dir: Path = Path("/var/backups/server-bootstrap")
    sudoers_dir: Path = Path("/etc/sudoers.d")
    home_root: Path = Path("/home")
    timesyncd_dir: Path = Path("/etc/systemd/timesyncd.conf.d")
    timesyncd_file: str = "host-bootstrap.conf"
    chrony_sources_dir: Path = Path("/etc/chrony/sources.d")
    chrony_sources_file: str = "host-bootstrap.sources"

    service_account: str = "ansible"
    service_groups: List[str] = field(default_factory=lambda: ["sudo"])

    fallback_dns: str = "8.8.8.8"
    apply_timeout: int = 30
    min_disk_space_mb: int = 100
    default_timezone: str = "America/Chicago"
    controller_key_hint: str = "~/.ssh/ansible-automation-key.pub"

    @property
    def default_netplan_path(self) -> Path:
        return self.netplan_dir / self.default_netplan_file

    @property
    def sudoers_file(self) -> Path:
        return self.sudoers_dir / self.service_account

    @property
    def account_home(self) -> Path:
        return self.home_root / self.service_account

    @property
    def authorized_keys(self) -> Path:
        return self.account_home / ".ssh" / "authorized_keys"

    @property
    def timesyncd_path(self) -> Path:
        return self.timesyncd_dir / self.timesyncd_file

    @property
    def chrony_sources_path(self) -> Path:
        return self.chrony_sources_dir / self.chrony_sources_file

    def ntp_config_path(self, service: str) -> Optional[Path]:
        """Where NTP servers are written for `service`; None for ntpd."""
        if service == "chrony":
            return self.chrony_sources_path
        if service == "timesyncd":
            return self.timesyncd_path
        return None

    @property
    def sudoers_rule(self) -> str:
        return f"{self.service_account} ALL=(ALL) NOPASSWD:ALL\n"


def _coerce(name: str, value: Any, default: Any) -> Any:
    if name in _PATH_FIELDS:
        if not isinstance(value, str):
            raise ValidationError(f"Config key '{name}' must be a path string.")
        return Path(value)
    if isinstance(default, list):
        if isinstance(value, str):
            return [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError(f"Config key '{name}' must be a list of strings.")
        return list(value)
    if isinstance(value, bool) or not isinstance(value, type(default)):
        raise ValidationError(
            f"Config key '{name}' must be of type {type(default).__name__}."
        )
    return value


def settings_from_dict(data: Dict[str, Any]) -> Settings:
    base = Settings()
    known = {f.name: getattr(base, f.name) for f in dataclasses.fields(Settings)}
    overrides: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            log.warning("Ignoring unknown config key '%s'", key)
            continue
        overrides[key] = _coerce(key, value, known[key])
    return dataclasses.replace(base, **overrides)


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from YAML. Lookup order: explicit path, $HOST_BOOTSTRAP_CONFIG,
    /etc/host-bootstrap/config.yaml. A missing default file means built-in defaults.
    """
    explicit = path or os.environ.get(CONFIG_ENV)
    cfg_path = Path(explicit) if explicit else DEFAULT_CONFIG_FILE
    if not cfg_path.exists():
        if explicit:
            raise ValidationError(f"Config file not found: {cfg_path}")
        return Settings()

    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Config file {cfg_path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Config file {cfg_path} must contain a mapping.")
    log.info("Loaded settings from %s", cfg_path)
    return settings_from_dict(data)
