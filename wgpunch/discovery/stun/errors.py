"""
Endpoint discovery error handling.
"""

from enum import IntEnum

from wgpunch.exceptions import (
    BaseWgPunchError,
)


class DiscoveryStatus(IntEnum):
    UNREACHABLE = 1
    MALFORMED_RESPONSE = 2


class DiscoveryError(BaseWgPunchError):
    """Base exception for endpoint discovery errors."""

    def __init__(self, status: DiscoveryStatus, message: str = ""):
        self.status = status
        self.message = message
        super().__init__(f"Discovery error {status.name}: {message}")


class UnreachableError(DiscoveryError):
    """Raised when the STUN server cannot be resolved, reached or timed out."""

    def __init__(self, message: str = "STUN server unreachable"):
        super().__init__(DiscoveryStatus.UNREACHABLE, message)


class MalformedResponseError(DiscoveryError):
    """Raised when the STUN response does not yield one IPv4 address."""

    def __init__(self, message: str = "Malformed STUN response"):
        super().__init__(DiscoveryStatus.MALFORMED_RESPONSE, message)
