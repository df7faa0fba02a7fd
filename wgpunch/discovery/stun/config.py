"""
Configuration constants for STUN endpoint discovery.
"""

from dataclasses import (
    dataclass,
    field,
)

from multiaddr import Multiaddr

# Server Configuration
DEFAULT_STUN_SERVER = "/dns4/stun.l.google.com/udp/19302"

# Network Configuration
DEFAULT_TIMEOUT = 3.0
DEFAULT_BIND_HOST = "0.0.0.0"
MAX_DATAGRAM_SIZE = 2048


@dataclass
class StunConfig:
    server: Multiaddr = field(default_factory=lambda: Multiaddr(DEFAULT_STUN_SERVER))
    timeout: float = DEFAULT_TIMEOUT
    bind_host: str = DEFAULT_BIND_HOST
