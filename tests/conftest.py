import pytest

from clusterdown.config import RetryPolicy, TeardownSettings
from clusterdown.context import TeardownContext
from clusterdown.models import ClusterIdentity

from .fakes import FakeClusterAPI


@pytest.fixture(autouse=True)
def clusterdown_home(tmp_path, monkeypatch):
    """Keep event logs and reports inside the test's tmp dir."""
    monkeypatch.setenv("CLUSTERDOWN_HOME", str(tmp_path / "home"))
    for name in ("CLUSTERDOWN_VM_STOP_TIMEOUT", "CLUSTERDOWN_POLL_INTERVAL", "CLUSTERDOWN_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "home"


@pytest.fixture
def fast_settings():
    return TeardownSettings(
        vm_stop_timeout=0.05,
        poll_interval=0.01,
        max_workers=4,
        retry=RetryPolicy(initial_wait=0, wait_increment=0, max_duration=1),
    )


@pytest.fixture
def api():
    return FakeClusterAPI()


@pytest.fixture
def identity():
    return ClusterIdentity(infra_id="abc123", cluster_id="c-1", remove_template=True)


@pytest.fixture
def ctx(api, identity, fast_settings):
    return TeardownContext(api=api, identity=identity, settings=fast_settings)
