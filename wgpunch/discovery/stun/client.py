"""
STUN endpoint discovery.
"""

import logging
import socket

import trio

from wgpunch.abc import (
    IEndpointDiscoverer,
)
from wgpunch.endpoint import (
    Endpoint,
    MAX_PORT,
)
from wgpunch.exceptions import (
    ValidationError,
)
from wgpunch.utils.multiaddr_utils import (
    udp_address_from_multiaddr,
)

from .config import (
    MAX_DATAGRAM_SIZE,
    StunConfig,
)
from .errors import (
    MalformedResponseError,
    UnreachableError,
)
from .messages import (
    create_binding_request,
    new_transaction_id,
    parse_binding_response,
    peek_transaction_id,
)

logger = logging.getLogger(__name__)


class StunEndpointDiscoverer(IEndpointDiscoverer):
    """
    Learns the public ``(ip, mapped_port)`` of a local UDP source port by
    sending a single Binding Request to a STUN server.

    The socket is bound with ``SO_REUSEADDR`` and closed as soon as the answer
    arrives, so the same port can be reused for keepalive and tunnel traffic.
    No retries are made here; the caller decides on backoff.
    """

    def __init__(self, config: StunConfig | None = None) -> None:
        self.config = config or StunConfig()

    async def discover(self, source_port: int) -> Endpoint:
        """
        Discover the public endpoint for ``source_port``.

        Args:
            source_port: Local UDP port to send from; 0 lets the OS pick one
                and the returned endpoint reports the port actually bound

        Raises:
            UnreachableError: If the server cannot be resolved or reached, or no
                matching response arrives within the timeout
            MalformedResponseError: If the response yields no single IPv4 address

        """
        if isinstance(source_port, bool) or not 0 <= source_port <= MAX_PORT:
            raise ValidationError(f"Invalid source port: {source_port!r}")

        server_addr = await self._resolve_server()

        sock = trio.socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        with sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                await sock.bind((self.config.bind_host, source_port))
            except OSError as error:
                raise UnreachableError(
                    f"Cannot bind UDP source port {source_port}: {error}"
                ) from error
            local_port = sock.getsockname()[1]

            transaction_id = new_transaction_id()
            try:
                await sock.sendto(create_binding_request(transaction_id), server_addr)
            except OSError as error:
                raise UnreachableError(
                    f"Failed to send Binding Request to {self.config.server}: {error}"
                ) from error

            logger.debug(
                f"Sent Binding Request from port {local_port} to {self.config.server}"
            )
            data = await self._receive_response(sock, server_addr, transaction_id)

        ip, mapped_port = parse_binding_response(data).public_address
        try:
            endpoint = Endpoint(ip, mapped_port, local_port)
        except ValidationError as error:
            raise MalformedResponseError(str(error)) from error

        logger.info(f"Discovered public endpoint {endpoint}")
        return endpoint

    async def _resolve_server(self) -> tuple[str, int]:
        host, port = udp_address_from_multiaddr(self.config.server)
        try:
            infos = await trio.socket.getaddrinfo(
                host, port, family=socket.AF_INET, type=socket.SOCK_DGRAM
            )
        except OSError as error:
            raise UnreachableError(
                f"Cannot resolve STUN server {host}: {error}"
            ) from error
        if not infos:
            raise UnreachableError(f"No IPv4 address for STUN server {host}")
        sockaddr = infos[0][4]
        return sockaddr[0], sockaddr[1]

    async def _receive_response(
        self,
        sock: trio.socket.SocketType,
        server_addr: tuple[str, int],
        transaction_id: bytes,
    ) -> bytes:
        with trio.move_on_after(self.config.timeout):
            while True:
                try:
                    data, addr = await sock.recvfrom(MAX_DATAGRAM_SIZE)
                except OSError as error:
                    raise UnreachableError(
                        f"STUN server {self.config.server} refused: {error}"
                    ) from error
                if (addr[0], addr[1]) != server_addr:
                    logger.debug(f"Ignoring datagram from unexpected source {addr}")
                    continue
                if peek_transaction_id(data) != transaction_id:
                    logger.debug("Ignoring datagram with foreign transaction id")
                    continue
                return data

        raise UnreachableError(
            f"No response from {self.config.server} after {self.config.timeout}s"
        )
