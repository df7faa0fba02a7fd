"""
Multiaddr helpers for UDP host/port addresses.

Configuration and logs describe UDP endpoints as multiaddrs, e.g.
``/dns4/stun.l.google.com/udp/19302`` or ``/ip4/198.51.100.9/udp/40000``.
"""

from multiaddr import Multiaddr
from multiaddr.exceptions import ProtocolLookupError

from wgpunch.exceptions import (
    ValidationError,
)

HOST_PROTOCOLS = ("ip4", "dns4", "dns")


def extract_host_from_multiaddr(maddr: Multiaddr) -> str | None:
    """
    Extract an IPv4 address or DNS name from a multiaddr.

    :param maddr: Multiaddr to extract from
    :return: host string or None if the multiaddr carries no IPv4/DNS component
    """
    for protocol in HOST_PROTOCOLS:
        try:
            return maddr.value_for_protocol(protocol)
        except ProtocolLookupError:
            continue
    return None


def extract_udp_port(maddr: Multiaddr) -> int | None:
    try:
        return int(maddr.value_for_protocol("udp"))
    except ProtocolLookupError:
        return None


def udp_address_from_multiaddr(maddr: Multiaddr) -> tuple[str, int]:
    """
    Split a UDP multiaddr into a ``(host, port)`` pair.

    :raises ValidationError: if the multiaddr lacks a host or a UDP port
    """
    host = extract_host_from_multiaddr(maddr)
    port = extract_udp_port(maddr)
    if host is None or port is None:
        raise ValidationError(f"Not a UDP host address: {maddr}")
    return host, port


def udp_multiaddr(host: str, port: int) -> Multiaddr:
    return Multiaddr(f"/ip4/{host}/udp/{port}")
