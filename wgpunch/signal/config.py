"""
Configuration constants for the signaling channel.
"""

from dataclasses import (
    dataclass,
)

from wgpunch.custom_types import (
    TTopic,
)

# Message Configuration
DEFAULT_PREFIX = "WG"
DEFAULT_TOPIC = TTopic("wgpunch")

# Ports drawn when an announcement omits them (RANDOM + 32767 in a shell)
EPHEMERAL_PORT_MIN = 32767
EPHEMERAL_PORT_MAX = 65534

# Polling Configuration
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_POLL_TIMEOUT = 30.0

# Seen lines never expire within one subscription
DEFAULT_SEEN_TTL: float | None = None


@dataclass
class SignalConfig:
    topic: TTopic = DEFAULT_TOPIC
    prefix: str = DEFAULT_PREFIX
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float = DEFAULT_POLL_TIMEOUT
    seen_ttl: float | None = DEFAULT_SEEN_TTL
