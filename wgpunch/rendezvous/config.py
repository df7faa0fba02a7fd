"""
Configuration for a rendezvous session.

This module aggregates the configuration of every component the coordinator
drives, plus the session-level timeouts and retry backoff.
"""

from dataclasses import (
    dataclass,
    field,
)

from wgpunch.discovery.stun.config import (
    StunConfig,
)
from wgpunch.keepalive.config import (
    KeepaliveConfig,
)
from wgpunch.signal.config import (
    SignalConfig,
)
from wgpunch.tunnel.config import (
    TunnelConfig,
)

from .session import (
    Role,
)

# Reserved UDP port for discovery, keepalive and the tunnel
DEFAULT_SOURCE_PORT = 51820

# Timeout Configuration
DEFAULT_SESSION_TIMEOUT = 15 * 60.0  # 15 minutes
DEFAULT_LAUNCH_TIMEOUT = 30.0
DEFAULT_FIRST_PROBE_GRACE = 5.0

# Backoff Configuration
DEFAULT_BACKOFF_INITIAL = 1.0
DEFAULT_BACKOFF_MAX = 60.0


@dataclass
class TimeoutConfig:
    session: float = DEFAULT_SESSION_TIMEOUT
    launch: float = DEFAULT_LAUNCH_TIMEOUT
    first_probe_grace: float = DEFAULT_FIRST_PROBE_GRACE
    # How long to keep the tunnel up once active; None holds until the deadline
    hold: float | None = None


@dataclass
class RendezvousConfig:
    role: Role
    source_port: int = DEFAULT_SOURCE_PORT
    # WireGuard keys in base64; our private key is generated when omitted.
    # A responder without the peer's public key generates the peer's pair and
    # hands the private half out in the connection descriptor.
    private_key: str | None = None
    peer_public_key: str | None = None
    session_id: str | None = None
    backoff_initial: float = DEFAULT_BACKOFF_INITIAL
    backoff_max: float = DEFAULT_BACKOFF_MAX
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    stun: StunConfig = field(default_factory=StunConfig)
    signal: SignalConfig = field(default_factory=SignalConfig)
    keepalive: KeepaliveConfig = field(default_factory=KeepaliveConfig)
    tunnel: TunnelConfig = field(default_factory=TunnelConfig)
