import pytest

from airgradient_bridge.utils.mocks import FakeTelemetrySource, make_snapshot


@pytest.fixture()
def pushed():
    """List collecting (field, value) pairs from a poller's on_push."""
    return []


@pytest.fixture()
def fake_source():
    source = FakeTelemetrySource([make_snapshot()])
    yield source
    source.close()
