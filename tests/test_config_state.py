"""
Tests for settings, metadata, credentials, local state and events.
"""

import json

import pytest
import yaml

from clusterdown.config import ClusterMetadata, TeardownSettings, load_settings
from clusterdown.events import (
    EventTypes, emit_event, get_last_event, get_status_from_events, read_events, tail_events
)
from clusterdown.ovirt.credentials import load_credentials
from clusterdown.state import is_valid_infra_id, list_clusters, read_report_json, write_report_json


class TestSettings:
    """Test teardown settings loading."""

    def test_defaults(self):
        """Test the default waits, timeouts and retry policy."""
        settings = load_settings()

        assert settings.vm_stop_timeout == 600
        assert settings.retry.initial_wait == 3
        assert settings.retry.wait_increment == 3
        assert settings.retry.max_duration == 300

    def test_yaml_file_and_env_override(self, tmp_path, monkeypatch):
        """Test YAML values with an environment override on top."""
        config = tmp_path / "settings.yaml"
        config.write_text("vm_stop_timeout: 120\nmax_workers: 3\nretry:\n  initial_wait: 1\n")
        monkeypatch.setenv("CLUSTERDOWN_MAX_WORKERS", "7")

        settings = load_settings(config)

        assert settings.vm_stop_timeout == 120
        assert settings.max_workers == 7
        assert settings.retry.initial_wait == 1
        assert settings.retry.wait_increment == 3

    def test_invalid_values_rejected(self):
        """Test validation of out-of-range settings."""
        with pytest.raises(ValueError):
            TeardownSettings(max_workers=0)
        with pytest.raises(ValueError):
            TeardownSettings(poll_interval=0)

    def test_non_mapping_file_rejected(self, tmp_path):
        """Test that a settings file must be a mapping."""
        config = tmp_path / "settings.yaml"
        config.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="mapping"):
            load_settings(config)

    def test_malformed_file_raises_yaml_error(self, tmp_path):
        """Test that unparseable YAML surfaces as a YAML error."""
        config = tmp_path / "settings.yaml"
        config.write_text("retry: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_settings(config)


class TestClusterMetadata:
    """Test parsing of the installer metadata."""

    def test_parse_installer_metadata(self, tmp_path):
        """Test identity fields derived from metadata.json."""
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps({
            "clusterName": "ocp",
            "clusterID": "0d5c0c5e",
            "infraID": "ocp-x7k2p",
            "ovirt": {"ovirt_cluster_id": "c-1", "ovirt_remove_template": True},
        }))

        identity = ClusterMetadata.from_file(path).to_identity()

        assert identity.infra_id == "ocp-x7k2p"
        assert identity.cluster_id == "c-1"
        assert identity.remove_template
        assert identity.tag_scopes == ["ocp-x7k2p", "ocp-x7k2p-bootstrap"]
        assert identity.template_name == "ocp-x7k2p-rhcos"
        assert identity.name_prefix == "ocp-x7k2p-"

    def test_missing_ovirt_section(self, tmp_path):
        """Test defaults when the ovirt section is absent."""
        (tmp_path / "metadata.json").write_text(json.dumps({"infraID": "abc123"}))

        identity = ClusterMetadata.from_file(tmp_path).to_identity()

        assert identity.cluster_id is None
        assert not identity.remove_template

    def test_missing_file(self, tmp_path):
        """Test an install directory without metadata.json."""
        with pytest.raises(FileNotFoundError):
            ClusterMetadata.from_file(tmp_path)


class TestCredentials:
    """Test oVirt credential loading."""

    def test_from_yaml(self, tmp_path, monkeypatch):
        """Test reading the installer oVirt config file."""
        for name in ("OVIRT_URL", "OVIRT_USERNAME", "OVIRT_PASSWORD", "OVIRT_CAFILE", "OVIRT_INSECURE"):
            monkeypatch.delenv(name, raising=False)
        config = tmp_path / "ovirt-config.yaml"
        config.write_text(
            "ovirt_url: https://engine/ovirt-engine/api/\n"
            "ovirt_username: admin@internal\n"
            "ovirt_password: secret\n"
            "ovirt_insecure: true\n"
        )

        credentials = load_credentials(config)

        assert credentials.url == "https://engine/ovirt-engine/api"
        assert credentials.username == "admin@internal"
        assert credentials.insecure

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        """Test OVIRT_* variables overriding file values."""
        config = tmp_path / "ovirt-config.yaml"
        config.write_text("ovirt_url: https://a\novirt_username: u\novirt_password: p\n")
        monkeypatch.setenv("OVIRT_URL", "https://b")
        monkeypatch.setenv("OVIRT_INSECURE", "no")

        credentials = load_credentials(config)

        assert credentials.url == "https://b"
        assert not credentials.insecure

    def test_missing_values(self, tmp_path, monkeypatch):
        """Test the error naming every missing credential."""
        for name in ("OVIRT_URL", "OVIRT_USERNAME", "OVIRT_PASSWORD"):
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(ValueError, match="url, username, password"):
            load_credentials(tmp_path / "nope.yaml")


class TestState:
    """Test local state handling."""

    def test_infra_id_validation(self):
        """Test infra ID validation."""
        assert is_valid_infra_id("abc123")
        assert is_valid_infra_id("ocp-x7k2p")
        assert not is_valid_infra_id("")
        assert not is_valid_infra_id("ABC")
        assert not is_valid_infra_id("-abc")
        assert not is_valid_infra_id("../etc")

    def test_report_round_trip(self):
        """Test writing and reading report.json."""
        assert read_report_json("abc123") is None

        write_report_json("abc123", {"status": "completed"})

        assert read_report_json("abc123") == {"status": "completed"}
        assert list_clusters() == ["abc123"]


class TestEvents:
    """Test the NDJSON event log."""

    def test_status_progression(self):
        """Test status derived from the most recent run."""
        assert get_status_from_events("abc123") == "unknown"

        emit_event("abc123", EventTypes.TEARDOWN_START, {})
        assert get_status_from_events("abc123") == "running"

        emit_event("abc123", EventTypes.TEARDOWN_DONE, {"status": "completed_with_failures"})
        assert get_status_from_events("abc123") == "completed_with_failures"

        emit_event("abc123", EventTypes.TEARDOWN_START, {})
        assert get_status_from_events("abc123") == "running"

    def test_malformed_lines_skipped(self, clusterdown_home):
        """Test that unparseable lines are skipped."""
        emit_event("abc123", EventTypes.STEP_START, {"step": "vms:abc123"})
        with open(clusterdown_home / "abc123" / "logs.ndjson", "a") as f:
            f.write("not json\n")
        emit_event("abc123", EventTypes.STEP_DONE, {"step": "vms:abc123"})

        assert [e["type"] for e in read_events("abc123")] == ["STEP_START", "STEP_DONE"]
        assert get_last_event("abc123")["type"] == "STEP_DONE"

    def test_tail_follow_stops_at_done(self):
        """Test that following stops at TEARDOWN_DONE."""
        emit_event("abc123", EventTypes.TEARDOWN_START, {})
        emit_event("abc123", EventTypes.TEARDOWN_DONE, {"status": "completed"})

        events = list(tail_events("abc123", follow=True, poll=0.01))

        assert [e["type"] for e in events] == ["TEARDOWN_START", "TEARDOWN_DONE"]
