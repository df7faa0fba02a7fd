"""
Signaling error handling.
"""

from enum import IntEnum

from wgpunch.exceptions import (
    BaseWgPunchError,
)


class SignalStatus(IntEnum):
    UNAVAILABLE = 1
    MALFORMED = 2


class SignalError(BaseWgPunchError):
    """Base exception for signaling errors."""

    def __init__(self, status: SignalStatus, message: str = ""):
        self.status = status
        self.message = message
        super().__init__(f"Signal error {status.name}: {message}")


class SignalUnavailableError(SignalError):
    """Raised when the transport cannot be written or polled."""

    def __init__(self, message: str = "Signal channel unavailable"):
        super().__init__(SignalStatus.UNAVAILABLE, message)


class MalformedSignalError(SignalError):
    """Raised when a prefixed line does not follow the announcement grammar."""

    def __init__(self, line: str, message: str = "Malformed signal line"):
        self.line = line
        super().__init__(SignalStatus.MALFORMED, f"{message}: {line!r}")
