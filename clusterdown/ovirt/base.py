"""
Interface to the engine API consumed by the teardown core.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class ClusterAPI(ABC):
    """
    Outbound operations the teardown core needs from the engine.

    Listing calls return plain dicts with at least ``id`` and ``name``
    (VMs also carry ``status``). Every call may raise NotFoundError for an
    absent resource and APIError for anything else.
    """

    @abstractmethod
    def list_vms(self, search: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def get_vm_status(self, vm_id: str) -> str:
        pass

    @abstractmethod
    def stop_vm(self, vm_id: str) -> None:
        pass

    @abstractmethod
    def remove_vm(self, vm_id: str) -> None:
        pass

    @abstractmethod
    def list_tags(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def remove_tag(self, tag_id: str) -> None:
        pass

    @abstractmethod
    def list_templates(self, search: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def remove_template(self, template_id: str) -> None:
        pass

    @abstractmethod
    def list_affinity_groups(self, cluster_id: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def remove_affinity_group(self, cluster_id: str, group_id: str) -> None:
        pass

    def close(self) -> None:
        """Release the underlying connection."""
        pass
