"""
Local state for teardown runs (event logs and last reports).
"""

import json
import os
import re
from pathlib import Path
from typing import Dict, Any, Optional

_INFRA_ID_RE = re.compile(r"^[a-z0-9]([-a-z0-9]{0,61}[a-z0-9])?$")


def is_valid_infra_id(infra_id: str) -> bool:
    """
    Validate an infrastructure id (lowercase alphanumerics and dashes, 1-63 chars).

    Args:
        infra_id: ID to validate

    Returns:
        bool: True if valid format
    """
    return bool(infra_id) and bool(_INFRA_ID_RE.match(infra_id))


def get_home() -> Path:
    """
    Get the clusterdown state directory.

    Returns:
        Path: State root, from CLUSTERDOWN_HOME or ./.clusterdown
    """
    home = os.environ.get("CLUSTERDOWN_HOME", ".clusterdown")
    return Path(home).resolve()


def get_cluster_dir(infra_id: str) -> Path:
    """
    Get the state directory for one cluster.

    Raises:
        ValueError: If the infra id is invalid
    """
    if not is_valid_infra_id(infra_id):
        raise ValueError(f"Invalid infra ID: {infra_id}")

    return get_home() / infra_id


def create_cluster_dir(infra_id: str) -> Path:
    cluster_dir = get_cluster_dir(infra_id)
    cluster_dir.mkdir(parents=True, exist_ok=True)
    return cluster_dir


def cluster_exists(infra_id: str) -> bool:
    return get_cluster_dir(infra_id).exists()


def write_report_json(infra_id: str, report: Dict[str, Any]) -> None:
    """
    Write the last teardown report to report.json.

    Args:
        infra_id: Infrastructure ID
        report: Serialized TeardownReport
    """
    cluster_dir = create_cluster_dir(infra_id)

    with open(cluster_dir / "report.json", "w") as f:
        json.dump(report, f, indent=2)


def read_report_json(infra_id: str) -> Optional[Dict[str, Any]]:
    """
    Read the last teardown report.

    Returns:
        Dict: Serialized report or None if no run has finished
    """
    report_file = get_cluster_dir(infra_id) / "report.json"

    if not report_file.exists():
        return None

    with open(report_file, "r") as f:
        return json.load(f)


def list_clusters() -> list[str]:
    """List infra ids that have local teardown state."""
    home = get_home()

    if not home.exists():
        return []

    return sorted(
        item.name for item in home.iterdir()
        if item.is_dir() and is_valid_infra_id(item.name)
    )
