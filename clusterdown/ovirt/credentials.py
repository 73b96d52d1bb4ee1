"""
Engine credentials from the oVirt config file and environment.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import yaml

DEFAULT_CONFIG_PATH = Path.home() / ".ovirt" / "ovirt-config.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class OvirtCredentials:
    """Connection parameters for the engine REST API."""
    url: str
    username: str
    password: str
    ca_file: Optional[str] = None
    insecure: bool = False

    @property
    def verify(self) -> Union[bool, str]:
        """Value for requests' ``verify`` argument."""
        if self.insecure:
            return False
        return self.ca_file or True


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def load_credentials(path: Optional[Union[str, Path]] = None) -> OvirtCredentials:
    """
    Load engine credentials.

    The YAML file uses the installer's keys (ovirt_url, ovirt_username,
    ovirt_password, ovirt_cafile, ovirt_insecure). OVIRT_* environment
    variables override file values.

    Args:
        path: Config file path; defaults to ~/.ovirt/ovirt-config.yaml

    Returns:
        OvirtCredentials

    Raises:
        ValueError: If url, username or password is missing
    """
    config_path = Path(path or os.environ.get("OVIRT_CONFIG", DEFAULT_CONFIG_PATH))

    data = {}
    if config_path.exists():
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

    url = os.environ.get("OVIRT_URL", data.get("ovirt_url"))
    username = os.environ.get("OVIRT_USERNAME", data.get("ovirt_username"))
    password = os.environ.get("OVIRT_PASSWORD", data.get("ovirt_password"))
    ca_file = os.environ.get("OVIRT_CAFILE", data.get("ovirt_cafile")) or None
    insecure = os.environ.get("OVIRT_INSECURE", data.get("ovirt_insecure", False))

    missing = [name for name, value in (("url", url), ("username", username), ("password", password)) if not value]
    if missing:
        raise ValueError(f"Missing oVirt credentials: {', '.join(missing)} (checked {config_path} and OVIRT_* env)")

    return OvirtCredentials(
        url=url.rstrip("/"),
        username=username,
        password=password,
        ca_file=ca_file,
        insecure=_as_bool(insecure),
    )
