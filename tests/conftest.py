"""Global pytest configuration and shared fixtures."""

import inspect
import logging

import pytest
import pytest_asyncio

from toolrelay.relay import RelayGateway
from toolrelay.settings import RelayConfig

from relay_fakes import ScriptedChannel

# Configure logging for tests
logging.basicConfig(level=logging.DEBUG, format='%(name)s - %(levelname)s - %(message)s')


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scripted_channel():
    """A worker stand-in that only knows the handshake until a test adds handlers."""
    return ScriptedChannel()


@pytest.fixture
def relay_config():
    return RelayConfig(request_timeout=1.0, resource_read_timeout=0.2)


@pytest_asyncio.fixture
async def gateway(relay_config, scripted_channel, clock):
    """A gateway wired to the scripted channel; closed after the test."""
    gw = RelayGateway(relay_config, channel=scripted_channel, clock=clock)
    yield gw
    await gw.close()


# Test Markers
def pytest_configure(config):
    """Configure custom test markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# Test Collection Configuration
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on location."""
    for item in items:
        # Add markers based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        # Mark async tests
        if inspect.iscoroutinefunction(getattr(item, "function", None)):
            item.add_marker(pytest.mark.asyncio)
