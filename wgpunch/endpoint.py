"""
NAT endpoint model.

An :class:`Endpoint` describes how one peer is reachable from the internet: its
public IPv4 address, the NAT-translated (mapped) UDP port and the pre-NAT
(local) source port that produced that mapping.
"""

from dataclasses import (
    dataclass,
)
import ipaddress

from multiaddr import Multiaddr

from wgpunch.exceptions import (
    ValidationError,
)
from wgpunch.utils.multiaddr_utils import (
    udp_address_from_multiaddr,
    udp_multiaddr,
)

MIN_PORT = 1
MAX_PORT = 65535


def validate_port(port: int, name: str = "port") -> int:
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValidationError(f"{name} must be an integer, got {port!r}")
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValidationError(
            f"{name} must be in range {MIN_PORT}-{MAX_PORT}, got {port}"
        )
    return port


def validate_ipv4(ip: str) -> str:
    try:
        return str(ipaddress.IPv4Address(ip))
    except ipaddress.AddressValueError as error:
        raise ValidationError(f"Invalid IPv4 address: {ip!r}") from error


@dataclass(frozen=True)
class Endpoint:
    """
    Public endpoint of a peer for one reserved source port.

    If the peer's NAT is port-preserving (or there is no NAT at all),
    ``mapped_port == local_port``.
    """

    ip: str
    mapped_port: int
    local_port: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "ip", validate_ipv4(self.ip))
        validate_port(self.mapped_port, "mapped_port")
        validate_port(self.local_port, "local_port")

    @property
    def address(self) -> tuple[str, int]:
        """The externally reachable ``(ip, mapped_port)`` pair."""
        return self.ip, self.mapped_port

    @property
    def is_port_preserving(self) -> bool:
        return self.mapped_port == self.local_port

    def to_multiaddr(self) -> Multiaddr:
        return udp_multiaddr(self.ip, self.mapped_port)

    @classmethod
    def from_multiaddr(
        cls, maddr: Multiaddr, local_port: int | None = None
    ) -> "Endpoint":
        """
        Build an endpoint from ``/ip4/<ip>/udp/<mapped_port>``.

        ``local_port`` defaults to the mapped port (port-preserving NAT).
        """
        ip, port = udp_address_from_multiaddr(maddr)
        return cls(ip, port, port if local_port is None else local_port)

    def __str__(self) -> str:
        return f"{self.ip}:{self.mapped_port}:{self.local_port}"
