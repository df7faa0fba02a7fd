from .config import KeepaliveConfig
from .probe import UdpProbeSender
from .runner import KeepaliveJob, KeepaliveRunner

__all__ = [
    "KeepaliveConfig",
    "UdpProbeSender",
    "KeepaliveJob",
    "KeepaliveRunner",
]
