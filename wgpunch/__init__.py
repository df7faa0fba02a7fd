"""NAT traversal rendezvous for WireGuard tunnels."""

from importlib.metadata import version as __version

from wgpunch.utils.logging import (
    setup_logging,
)

# Initialize logging configuration
setup_logging()

from wgpunch.abc import (  # noqa: E402
    ISignalChannel,
)
from wgpunch.custom_types import (  # noqa: E402
    DescriptorSinkFn,
)
from wgpunch.discovery.stun import (  # noqa: E402
    StunConfig,
    StunEndpointDiscoverer,
)
from wgpunch.endpoint import (  # noqa: E402
    Endpoint,
)
from wgpunch.keepalive import (  # noqa: E402
    KeepaliveConfig,
    KeepaliveRunner,
)
from wgpunch.rendezvous import (  # noqa: E402
    RendezvousConfig,
    RendezvousCoordinator,
    Role,
    SessionState,
    TimeoutConfig,
)
from wgpunch.signal import (  # noqa: E402
    FileSignalChannel,
    MemorySignalChannel,
    SignalConfig,
    SignalMessage,
)
from wgpunch.tunnel import (  # noqa: E402
    TunnelConfig,
    WireGuardLauncher,
)


def new_coordinator(
    config: RendezvousConfig,
    channel: ISignalChannel,
    descriptor_sink: DescriptorSinkFn | None = None,
) -> RendezvousCoordinator:
    """
    Build a coordinator wired to STUN discovery and the WireGuard launcher.
    """
    return RendezvousCoordinator(
        config,
        discoverer=StunEndpointDiscoverer(config.stun),
        channel=channel,
        launcher=WireGuardLauncher(config.tunnel),
        descriptor_sink=descriptor_sink,
    )


__version__ = __version("wgpunch")

__all__ = [
    "Endpoint",
    "FileSignalChannel",
    "KeepaliveConfig",
    "KeepaliveRunner",
    "MemorySignalChannel",
    "RendezvousConfig",
    "RendezvousCoordinator",
    "Role",
    "SessionState",
    "SignalConfig",
    "SignalMessage",
    "StunConfig",
    "StunEndpointDiscoverer",
    "TimeoutConfig",
    "TunnelConfig",
    "WireGuardLauncher",
    "new_coordinator",
]
