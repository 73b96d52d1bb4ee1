"""
oVirt engine REST API client built on requests.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote
import logging

import requests

from .base import ClusterAPI
from .credentials import OvirtCredentials
from ..errors import APIError, ConnectionSetupError, NotFoundError

logger = logging.getLogger(__name__)

# Status codes worth retrying: request timeouts, throttling and transient
# server errors. 409 means the resource is busy (e.g. a running VM) and is final.
RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}


class OvirtClient(ClusterAPI):
    """Thin JSON client for the /ovirt-engine/api endpoints used by teardown."""

    def __init__(self, credentials: OvirtCredentials, timeout: float = 60.0,
                 session: Optional[requests.Session] = None):
        self.credentials = credentials
        self.base_url = credentials.url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (credentials.username, credentials.password)
        self.session.verify = credentials.verify
        self.session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Version": "4",
        })

    # -- transport -----------------------------------------------------------

    def _request(self, method: str, path: str, params: Optional[Dict[str, str]] = None,
                 json_body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"{method} {url} params={params}")

        try:
            response = self.session.request(method, url, params=params, json=json_body, timeout=self.timeout)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise APIError(f"{method} {path} failed: {e}", retryable=True) from e
        except requests.exceptions.RequestException as e:
            raise APIError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"{method} {path}: not found")

        if response.status_code >= 400:
            raise APIError(
                f"{method} {path} returned {response.status_code}: {_fault_detail(response)}",
                status_code=response.status_code,
                retryable=response.status_code in RETRYABLE_STATUS,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    def connect(self) -> "OvirtClient":
        """
        Verify the engine is reachable and accepts the credentials.

        Returns:
            self, for chaining

        Raises:
            ConnectionSetupError: If the engine cannot be reached or rejects the login
        """
        try:
            self._request("GET", "/")
        except APIError as e:
            self.close()
            raise ConnectionSetupError(f"failed to initialize connection to ovirt-engine at {self.base_url}: {e}") from e
        logger.debug(f"Connected to {self.base_url}")
        return self

    def close(self) -> None:
        self.session.close()

    # -- VMs -------------------------------------------------------------------

    def list_vms(self, search: str) -> List[Dict[str, Any]]:
        return _collection(self._request("GET", "vms", params={"search": search}), "vm")

    def get_vm_status(self, vm_id: str) -> str:
        return self._request("GET", f"vms/{quote(vm_id)}").get("status", "")

    def stop_vm(self, vm_id: str) -> None:
        self._request("POST", f"vms/{quote(vm_id)}/stop", json_body={})

    def remove_vm(self, vm_id: str) -> None:
        self._request("DELETE", f"vms/{quote(vm_id)}")

    # -- tags ------------------------------------------------------------------

    def list_tags(self) -> List[Dict[str, Any]]:
        return _collection(self._request("GET", "tags"), "tag")

    def remove_tag(self, tag_id: str) -> None:
        self._request("DELETE", f"tags/{quote(tag_id)}")

    # -- templates -------------------------------------------------------------

    def list_templates(self, search: str) -> List[Dict[str, Any]]:
        return _collection(self._request("GET", "templates", params={"search": search}), "template")

    def remove_template(self, template_id: str) -> None:
        self._request("DELETE", f"templates/{quote(template_id)}")

    # -- affinity groups -------------------------------------------------------

    def list_affinity_groups(self, cluster_id: str) -> List[Dict[str, Any]]:
        return _collection(self._request("GET", f"clusters/{quote(cluster_id)}/affinitygroups"), "affinity_group")

    def remove_affinity_group(self, cluster_id: str, group_id: str) -> None:
        self._request("DELETE", f"clusters/{quote(cluster_id)}/affinitygroups/{quote(group_id)}")


def _collection(payload: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """Extract a collection; the engine omits the key entirely when it is empty."""
    items = payload.get(key) or []
    return [
        {"id": item.get("id"), "name": item.get("name", ""), "status": item.get("status")}
        for item in items
    ]


def _fault_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    return body.get("detail") or body.get("reason") or str(body)[:200]
