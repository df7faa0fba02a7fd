import errno
import logging
import socket
import struct

import trio

from wgpunch.abc import (
    IProbeSender,
)

from .config import (
    DEFAULT_BIND_HOST,
)

logger = logging.getLogger(__name__)

PROBE_PAYLOAD = b""
UDP_HEADER_LENGTH = 8


def build_udp_datagram(source_port: int, target_port: int, payload: bytes) -> bytes:
    """
    Build a UDP header followed by ``payload``.

    The checksum is left at zero, which IPv4 receivers treat as "not computed".
    """
    header = struct.pack(
        "!HHHH", source_port, target_port, UDP_HEADER_LENGTH + len(payload), 0
    )
    return header + payload


class UdpProbeSender(IProbeSender):
    """
    Sends one empty datagram per call from the given source port.

    While the port is free the datagram leaves through a freshly bound UDP
    socket that is closed right after the send, so the tunnel can bind the
    port between probes. Once another socket (the WireGuard interface) owns
    the port, probes are written through a raw socket carrying a hand-built
    UDP header, which needs no bind and requires CAP_NET_RAW. Without that
    privilege the original ``EADDRINUSE`` is raised.
    """

    def __init__(self, bind_host: str = DEFAULT_BIND_HOST) -> None:
        self.bind_host = bind_host

    async def send(self, source_port: int, target: tuple[str, int], ttl: int) -> None:
        try:
            await self._send_bound(source_port, target, ttl)
        except OSError as error:
            if error.errno != errno.EADDRINUSE:
                raise
            try:
                await self._send_raw(source_port, target, ttl)
            except PermissionError as raw_error:
                logger.debug(f"Raw probe not permitted: {raw_error}")
                raise error from None

    async def _send_bound(
        self, source_port: int, target: tuple[str, int], ttl: int
    ) -> None:
        sock = trio.socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        with sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, ttl)
            await sock.bind((self.bind_host, source_port))
            await sock.sendto(PROBE_PAYLOAD, target)

    def _open_raw_socket(self) -> trio.socket.SocketType:
        return trio.socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_UDP)

    async def _send_raw(
        self, source_port: int, target: tuple[str, int], ttl: int
    ) -> None:
        datagram = build_udp_datagram(source_port, target[1], PROBE_PAYLOAD)
        sock = self._open_raw_socket()
        with sock:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, ttl)
            # Raw sockets take no port; the kernel fills in the IP header
            await sock.sendto(datagram, (target[0], 0))
