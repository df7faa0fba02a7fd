from dataclasses import (
    dataclass,
)
import ipaddress

from wgpunch.endpoint import (
    Endpoint,
    validate_port,
)


@dataclass(frozen=True)
class TunnelRequest:
    """
    Everything a launcher needs to bring up one point-to-point tunnel.

    ``listen_port`` is our reserved UDP port, the one the NAT mapping was
    discovered and kept alive for. ``local_bind_port`` is the pre-NAT port the
    initiator's end binds. Only a request with ``dial_peer`` set configures
    the peer endpoint and persistent keepalive; the other side waits for the
    handshake.
    """

    private_key: str
    peer_public_key: str
    peer_endpoint: Endpoint
    listen_port: int
    local_bind_port: int
    address: ipaddress.IPv4Interface
    allowed_ips: ipaddress.IPv4Network
    persistent_keepalive: int
    dial_peer: bool

    def __post_init__(self) -> None:
        validate_port(self.listen_port, "listen_port")
        validate_port(self.local_bind_port, "local_bind_port")


@dataclass(frozen=True)
class TunnelHandle:
    interface: str
    request: TunnelRequest
