"""
Asynchronous, high-latency signaling used to exchange endpoint announcements.
"""

from .config import SignalConfig
from .errors import (
    MalformedSignalError,
    SignalError,
    SignalStatus,
    SignalUnavailableError,
)
from .file import FileSignalChannel
from .memory import MemorySignalChannel
from .messages import SignalMessage, decode_signal, encode_signal
from .subscription import PollingSignalChannel, SignalSubscription

__all__ = [
    "SignalConfig",
    "MalformedSignalError",
    "SignalError",
    "SignalStatus",
    "SignalUnavailableError",
    "FileSignalChannel",
    "MemorySignalChannel",
    "SignalMessage",
    "decode_signal",
    "encode_signal",
    "PollingSignalChannel",
    "SignalSubscription",
]
