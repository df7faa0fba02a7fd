"""
Configuration constants for the WireGuard tunnel.
"""

from dataclasses import (
    dataclass,
    field,
)
import ipaddress

# Interface Configuration
DEFAULT_INTERFACE = "wg0"

# Point-to-point addressing: responder .1, initiator .2
DEFAULT_SUBNET = "192.168.166.0/30"
DEFAULT_RESPONDER_ADDRESS = "192.168.166.1"
DEFAULT_INITIATOR_ADDRESS = "192.168.166.2"

# Seconds between WireGuard keepalives once the tunnel is up
DEFAULT_PERSISTENT_KEEPALIVE = 25

# Ports forwarded by the onetun command in the connection descriptor
DEFAULT_FORWARDS: tuple[tuple[int, int], ...] = ((2222, 22),)

# Network Configuration
DEFAULT_COMMAND_TIMEOUT = 10.0


@dataclass
class TunnelConfig:
    interface: str = DEFAULT_INTERFACE
    subnet: str = DEFAULT_SUBNET
    responder_address: str = DEFAULT_RESPONDER_ADDRESS
    initiator_address: str = DEFAULT_INITIATOR_ADDRESS
    persistent_keepalive: int = DEFAULT_PERSISTENT_KEEPALIVE
    forwards: tuple[tuple[int, int], ...] = DEFAULT_FORWARDS
    # Prepended to every ip/wg invocation, e.g. ("sudo",)
    command_prefix: tuple[str, ...] = field(default_factory=tuple)
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT

    def __post_init__(self) -> None:
        network = ipaddress.IPv4Network(self.subnet)
        for address in (self.responder_address, self.initiator_address):
            if ipaddress.IPv4Address(address) not in network:
                raise ValueError(f"{address} is not inside {self.subnet}")
        if self.responder_address == self.initiator_address:
            raise ValueError("Responder and initiator need distinct addresses")

    @property
    def prefix_length(self) -> int:
        return ipaddress.IPv4Network(self.subnet).prefixlen
