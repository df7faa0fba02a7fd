from wgpunch.utils.multiaddr_utils import (
    extract_host_from_multiaddr,
    extract_udp_port,
    udp_address_from_multiaddr,
    udp_multiaddr,
)

__all__ = [
    "extract_host_from_multiaddr",
    "extract_udp_port",
    "udp_address_from_multiaddr",
    "udp_multiaddr",
]
