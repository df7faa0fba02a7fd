"""
STUN based discovery of a peer's NAT-mapped UDP endpoint.
"""

from .client import StunEndpointDiscoverer
from .config import StunConfig
from .errors import (
    DiscoveryError,
    DiscoveryStatus,
    MalformedResponseError,
    UnreachableError,
)

__all__ = [
    "StunEndpointDiscoverer",
    "StunConfig",
    "DiscoveryError",
    "DiscoveryStatus",
    "MalformedResponseError",
    "UnreachableError",
]
