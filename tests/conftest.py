"""Pytest configuration and fixtures for Aqara W100 tests."""

from collections.abc import Callable
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.aqara_w100.models import ClimateState

DEVICE_ID = "0x54ef441000a1b2c3"


def create_report(payload: str, prefix: bytes = b"\xaa\x71\x1f\x44\x01\x02") -> bytes:
    """Create a device report carrying a PMTSD payload.

    Args:
        payload: ASCII payload, e.g. "P0_M1_T22".
        prefix: Bytes preceding the payload marker.

    Returns:
        Raw attribute buffer as reported by the device.

    """
    encoded = payload.encode("ascii")
    return prefix + bytes([0x08, 0x44, len(encoded)]) + encoded


class FakeClock:
    """Manually advanced wall clock, in seconds."""

    def __init__(self, now: float = 1_000.0) -> None:
        """Initialize the clock."""
        self.now = now

    def __call__(self) -> float:
        """Return the current time."""
        return self.now

    def advance(self, seconds: float) -> None:
        """Move the clock forward."""
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Fixture providing a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def mock_endpoint() -> Mock:
    """Fixture providing a writable device endpoint."""
    endpoint = Mock()
    endpoint.write = AsyncMock()
    return endpoint


@pytest.fixture
def enabled_state() -> ClimateState:
    """Fixture providing a state with thermostat mode ON."""
    return ClimateState(thermostat_enabled=True)


@pytest.fixture
def report_factory() -> Callable[[str], bytes]:
    """Fixture providing the device report builder."""
    return create_report
