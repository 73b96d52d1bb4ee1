"""
Tests for the oVirt REST client (requests mocked).
"""

import pytest
import requests
from unittest.mock import Mock, MagicMock

from clusterdown.errors import APIError, ConnectionSetupError, NotFoundError
from clusterdown.ovirt.client import OvirtClient
from clusterdown.ovirt.credentials import OvirtCredentials


def _response(status_code=200, payload=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.content = b"x" if payload is not None else b""
    response.json.return_value = payload
    response.text = text
    return response


@pytest.fixture
def session():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    credentials = OvirtCredentials(
        url="https://engine.example.com/ovirt-engine/api/",
        username="admin@internal",
        password="secret",
        ca_file="/etc/pki/ovirt.pem",
    )
    return OvirtClient(credentials, session=session)


class TestOvirtClient:
    """Test request building and error classification."""

    def test_session_configuration(self, client, session):
        """Test auth, CA file and JSON headers on the session."""
        assert session.auth == ("admin@internal", "secret")
        assert session.verify == "/etc/pki/ovirt.pem"
        assert session.headers["Accept"] == "application/json"

    def test_list_vms_uses_search(self, client, session):
        """Test that VM listing passes the search expression."""
        session.request.return_value = _response(payload={
            "vm": [{"id": "vm-1", "name": "abc123-worker-0", "status": "up", "memory": 1}]
        })

        vms = client.list_vms("tag=abc123")

        assert vms == [{"id": "vm-1", "name": "abc123-worker-0", "status": "up"}]
        method, url = session.request.call_args[0]
        assert method == "GET"
        assert url == "https://engine.example.com/ovirt-engine/api/vms"
        assert session.request.call_args[1]["params"] == {"search": "tag=abc123"}

    def test_empty_collection(self, client, session):
        """Test that an empty body lists nothing."""
        session.request.return_value = _response(payload={})

        assert client.list_tags() == []
        assert client.list_templates("name=abc123-rhcos*") == []

    def test_affinity_groups_path(self, client, session):
        """Test that affinity groups are listed under their cluster."""
        session.request.return_value = _response(payload={"affinity_group": [{"id": "ag-1", "name": "abc123-ag1"}]})

        groups = client.list_affinity_groups("c-1")

        assert groups[0]["id"] == "ag-1"
        assert session.request.call_args[0][1].endswith("/clusters/c-1/affinitygroups")

    def test_stop_posts_action(self, client, session):
        """Test that stop is a POST to the VM's stop action."""
        session.request.return_value = _response(payload={"status": "complete"})

        client.stop_vm("vm-1")

        method, url = session.request.call_args[0]
        assert method == "POST"
        assert url.endswith("/vms/vm-1/stop")
        assert session.request.call_args[1]["json"] == {}

    def test_remove_calls_delete(self, client, session):
        """Test that every removal is a DELETE."""
        session.request.return_value = _response()

        client.remove_vm("vm-1")
        client.remove_tag("t-1")
        client.remove_template("tpl-1")
        client.remove_affinity_group("c-1", "ag-1")

        calls = [c[0] for c in session.request.call_args_list]
        assert all(method == "DELETE" for method, _ in calls)
        assert calls[-1][1].endswith("/clusters/c-1/affinitygroups/ag-1")

    def test_get_vm_status(self, client, session):
        """Test reading a VM's status."""
        session.request.return_value = _response(payload={"id": "vm-1", "status": "down"})

        assert client.get_vm_status("vm-1") == "down"

    def test_404_raises_not_found(self, client, session):
        """Test that 404 maps to NotFoundError."""
        session.request.return_value = _response(404, payload={"detail": "Entity not found"})

        with pytest.raises(NotFoundError):
            client.remove_vm("vm-1")

    @pytest.mark.parametrize("status_code", [408, 429, 503])
    def test_transient_status_is_retryable(self, client, session, status_code):
        """Test that throttling and transient server errors are retryable."""
        session.request.return_value = _response(status_code, payload={"detail": "busy"})

        with pytest.raises(APIError) as exc_info:
            client.remove_vm("vm-1")

        assert exc_info.value.retryable
        assert exc_info.value.status_code == status_code

    def test_conflict_is_terminal(self, client, session):
        """Test that removing a running VM (409) is not retried."""
        session.request.return_value = _response(409, payload={"detail": "Cannot remove VM. VM is running."})

        with pytest.raises(APIError, match="VM is running") as exc_info:
            client.remove_vm("vm-1")

        assert not exc_info.value.retryable
        assert exc_info.value.status_code == 409

    def test_client_error_is_terminal(self, client, session):
        """Test that other client errors are not retryable."""
        session.request.return_value = _response(400, payload={"detail": "Cannot remove VM. VM is running."})

        with pytest.raises(APIError, match="VM is running") as exc_info:
            client.remove_vm("vm-1")

        assert not exc_info.value.retryable

    def test_connection_error_is_retryable(self, client, session):
        """Test that connection failures are retryable."""
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(APIError) as exc_info:
            client.list_tags()

        assert exc_info.value.retryable

    def test_connect_failure(self, client, session):
        """Test that rejected credentials fail setup and close the session."""
        session.request.return_value = _response(401, payload={"detail": "Unauthorized"})

        with pytest.raises(ConnectionSetupError, match="failed to initialize connection"):
            client.connect()

        session.close.assert_called_once()

    def test_connect_success(self, client, session):
        """Test that a reachable engine returns the client."""
        session.request.return_value = _response(payload={"product_info": {"name": "oVirt Engine"}})

        assert client.connect() is client


def test_insecure_disables_verification():
    """Test that the insecure flag turns off TLS verification."""
    credentials = OvirtCredentials(url="https://engine", username="u", password="p", insecure=True)

    assert credentials.verify is False
