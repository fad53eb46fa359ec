"""Pytest configuration for fastcs-ft232r tests."""

import pytest

from fastcs_ft232r.device import Ft232RDevice
from fastcs_ft232r.simulator import SimulatedTransport


def pytest_addoption(parser):
    """Add command line options for testing."""
    parser.addoption(
        "--device",
        action="store",
        default=None,
        help="FT232R device URL (e.g., loc://0x1234 or sn://A12345)",
    )
    parser.addoption(
        "--prefix",
        action="store",
        default="FT232R-TEST",
        help="EPICS PV prefix for integration tests",
    )


@pytest.fixture
def sim():
    """An opened-on-demand simulated FT232R."""
    return SimulatedTransport("test")


@pytest.fixture
def device(sim):
    """A device session over the simulator."""
    device = Ft232RDevice(sim, description="FT232R sim", serial_number="SIM0001")
    yield device
    device.close()


@pytest.fixture
def gpio(device):
    """A GPIO controller with CBUS bit-bang mode enabled."""
    return device.create_gpio()
