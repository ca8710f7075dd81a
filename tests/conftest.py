# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""Pytest configuration for integration tests."""

import pytest

# pyserial loopback: everything written is read back
LOOPBACK_URL = "loop://"


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--device",
        action="store",
        default=None,
        help="Serial port with TX wired to RX (default: pyserial loop://)",
    )
    parser.addoption(
        "--baudrate",
        action="store",
        type=int,
        default=115200,
        help="Baud rate for --device",
    )


@pytest.fixture(scope="session")
def device_port(request):
    """Get the loopback port from command line, or pyserial's loop://."""
    return request.config.getoption("--device") or LOOPBACK_URL


@pytest.fixture(scope="session")
def baudrate(request):
    """Baud rate for the loopback port."""
    return request.config.getoption("--baudrate")


@pytest.fixture
def link(device_port, baudrate):
    """
    Open a SerialLink on the loopback port.

    Function-scoped so each test starts with an empty line and a fresh
    decoder.
    """
    from cobs_framing.transport import SerialLink

    link = SerialLink(device_port, baudrate, timeout=0.5)
    yield link
    link.close()
