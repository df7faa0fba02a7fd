"""
Bring-up of the WireGuard interface once the NAT mappings are open.
"""

from .config import TunnelConfig
from .descriptor import render_descriptor
from .errors import TunnelLaunchError
from .keys import WireGuardKeyPair, generate_keypair, keypair_from_private
from .request import TunnelHandle, TunnelRequest
from .wireguard import WireGuardLauncher

__all__ = [
    "TunnelConfig",
    "render_descriptor",
    "TunnelLaunchError",
    "WireGuardKeyPair",
    "generate_keypair",
    "keypair_from_private",
    "TunnelHandle",
    "TunnelRequest",
    "WireGuardLauncher",
]
