"""
Configuration for teardown runs: retry policy, timeouts and cluster metadata.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import APIError, NotFoundError
from .models import ClusterIdentity

logger = logging.getLogger(__name__)


class RetryPolicy(BaseModel):
    """Linear backoff policy for calls against the engine."""
    initial_wait: float = 3.0
    wait_increment: float = 3.0
    max_duration: float = 300.0

    @field_validator("initial_wait", "wait_increment", "max_duration")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("retry durations must not be negative")
        return value

    def is_retryable(self, exc: Exception) -> bool:
        """Only transient engine errors (throttling, connectivity, 5xx) are retried."""
        if isinstance(exc, NotFoundError):
            return False
        return isinstance(exc, APIError) and exc.retryable


class TeardownSettings(BaseModel):
    """Tunables for one teardown run."""
    vm_stop_timeout: float = 600.0  # 10 minutes, as the installer waits
    poll_interval: float = 10.0
    max_workers: int = Field(default=10, ge=1)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)

    @field_validator("vm_stop_timeout", "poll_interval")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value


class OvirtMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cluster_id: Optional[str] = Field(default=None, alias="ovirt_cluster_id")
    remove_template: bool = Field(default=False, alias="ovirt_remove_template")


class ClusterMetadata(BaseModel):
    """The installer's metadata.json for a provisioned cluster."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    cluster_name: Optional[str] = Field(default=None, alias="clusterName")
    infra_id: str = Field(alias="infraID")
    ovirt: OvirtMetadata = Field(default_factory=OvirtMetadata)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ClusterMetadata":
        """
        Load metadata from a metadata.json file or the directory holding it.

        Args:
            path: File path, or install directory containing metadata.json

        Returns:
            Parsed cluster metadata

        Raises:
            FileNotFoundError: If no metadata.json exists at the location
        """
        path = Path(path)
        if path.is_dir():
            path = path / "metadata.json"
        if not path.exists():
            raise FileNotFoundError(f"Cluster metadata not found: {path}")

        with open(path, "r") as f:
            return cls.model_validate(json.load(f))

    def to_identity(self) -> ClusterIdentity:
        return ClusterIdentity(
            infra_id=self.infra_id,
            cluster_id=self.ovirt.cluster_id,
            remove_template=self.ovirt.remove_template,
            cluster_name=self.cluster_name,
        )


# Environment overrides applied on top of the YAML file
_ENV_OVERRIDES = {
    "CLUSTERDOWN_VM_STOP_TIMEOUT": "vm_stop_timeout",
    "CLUSTERDOWN_POLL_INTERVAL": "poll_interval",
    "CLUSTERDOWN_MAX_WORKERS": "max_workers",
}


def load_settings(path: Optional[Union[str, Path]] = None) -> TeardownSettings:
    """
    Load teardown settings from an optional YAML file plus environment overrides.

    Args:
        path: Optional YAML settings file

    Returns:
        Validated settings
    """
    data: Dict[str, Any] = {}

    if path:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        logger.debug(f"Loaded settings from {path}")

    for env_name, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data[key] = value

    return TeardownSettings.model_validate(data)
