import socket

import pytest

from wgpunch.signal.config import (
    SignalConfig,
)
from wgpunch.signal.memory import (
    MemorySignalChannel,
)


@pytest.fixture
def signal_config():
    return SignalConfig(poll_interval=1.0, poll_timeout=5.0)


@pytest.fixture
def memory_channel(signal_config):
    return MemorySignalChannel(signal_config)


@pytest.fixture
def free_udp_port():
    """A UDP port on 127.0.0.1 that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
