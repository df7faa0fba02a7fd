"""
Configuration constants for NAT keepalive probes.
"""

from dataclasses import (
    dataclass,
)

# Seconds between probes, below the common ~30 s UDP idle timeout of NATs
DEFAULT_INTERVAL = 28.0

# Low enough to refresh our own NAT without reaching the peer's
DEFAULT_TTL = 4

DEFAULT_COUNT = 20
DEFAULT_BIND_HOST = "0.0.0.0"

MIN_TTL = 1
MAX_TTL = 255


@dataclass
class KeepaliveConfig:
    interval: float = DEFAULT_INTERVAL
    ttl: int = DEFAULT_TTL
    count: int = DEFAULT_COUNT
    bind_host: str = DEFAULT_BIND_HOST
