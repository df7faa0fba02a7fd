"""
Rendezvous session error handling.
"""

from enum import IntEnum

from wgpunch.exceptions import (
    BaseWgPunchError,
)

from .session import (
    SessionState,
)


class SessionStatus(IntEnum):
    TIMEOUT = 1
    LAUNCH_FAILED = 2


class SessionError(BaseWgPunchError):
    """
    Terminal session failure.

    ``state`` is the last state the session reached before failing.
    """

    def __init__(self, status: SessionStatus, state: SessionState, message: str = ""):
        self.status = status
        self.state = state
        self.message = message
        super().__init__(f"Session error {status.name} in {state.name}: {message}")


class SessionTimeoutError(SessionError):
    """Raised when the deadline expires before the tunnel becomes active."""

    def __init__(self, state: SessionState, message: str = "Session deadline expired"):
        super().__init__(SessionStatus.TIMEOUT, state, message)


class LaunchFailedError(SessionError):
    """Raised when the tunnel launcher fails or does not finish in time."""

    def __init__(self, state: SessionState, message: str = "Tunnel launch failed"):
        super().__init__(SessionStatus.LAUNCH_FAILED, state, message)
