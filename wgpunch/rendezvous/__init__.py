"""
Rendezvous of two NATed peers over a high-latency signal channel.
"""

from .config import RendezvousConfig, TimeoutConfig
from .coordinator import RendezvousCoordinator
from .errors import (
    LaunchFailedError,
    SessionError,
    SessionStatus,
    SessionTimeoutError,
)
from .session import RendezvousSession, Role, SessionState

__all__ = [
    "RendezvousConfig",
    "TimeoutConfig",
    "RendezvousCoordinator",
    "LaunchFailedError",
    "SessionError",
    "SessionStatus",
    "SessionTimeoutError",
    "RendezvousSession",
    "Role",
    "SessionState",
]
