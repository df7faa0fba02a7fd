"""
Endpoint announcements exchanged over the signal channel.

An announcement is one line of text::

    WG: 198.51.100.9:40000:50000

i.e. a prefix, an optional colon, whitespace and ``ip[:mapped_port[:local_port]]``.
"""

from dataclasses import (
    dataclass,
    field,
)
import random
import re

from wgpunch.endpoint import (
    Endpoint,
    validate_ipv4,
    validate_port,
)
from wgpunch.exceptions import (
    ValidationError,
)

from .config import (
    DEFAULT_PREFIX,
    EPHEMERAL_PORT_MAX,
    EPHEMERAL_PORT_MIN,
)
from .errors import (
    MalformedSignalError,
)

_BODY_PATTERN = (
    r":?\s+(?P<ip>[0-9.]+)"
    r"(?::(?P<mapped_port>\d+)(?::(?P<local_port>\d+))?)?\s*$"
)


@dataclass(frozen=True)
class SignalMessage:
    """
    A peer's endpoint announcement.

    ``sequence`` is the position of the line in the channel history. It is not
    part of the content, so two messages with the same address compare equal.
    """

    ip: str
    mapped_port: int | None = None
    local_port: int | None = None
    sequence: int = field(default=0, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "ip", validate_ipv4(self.ip))
        if self.mapped_port is None and self.local_port is not None:
            raise ValidationError("local_port requires mapped_port")
        if self.mapped_port is not None:
            validate_port(self.mapped_port, "mapped_port")
        if self.local_port is not None:
            validate_port(self.local_port, "local_port")

    @classmethod
    def from_endpoint(cls, endpoint: Endpoint, sequence: int = 0) -> "SignalMessage":
        return cls(endpoint.ip, endpoint.mapped_port, endpoint.local_port, sequence)

    @property
    def has_ports(self) -> bool:
        return self.mapped_port is not None

    def resolve_endpoint(self, rng: random.Random) -> Endpoint:
        """
        Resolve the announced endpoint.

        A missing local port equals the mapped port. When both ports are
        missing a port is drawn from the ephemeral range with ``rng`` and used
        for both, which only works for port-preserving NATs.
        """
        if self.mapped_port is None:
            port = rng.randint(EPHEMERAL_PORT_MIN, EPHEMERAL_PORT_MAX)
            return Endpoint(self.ip, port, port)
        local_port = self.mapped_port if self.local_port is None else self.local_port
        return Endpoint(self.ip, self.mapped_port, local_port)


def encode_signal(message: SignalMessage, prefix: str = DEFAULT_PREFIX) -> str:
    body = message.ip
    if message.mapped_port is not None:
        body += f":{message.mapped_port}"
        if message.local_port is not None:
            body += f":{message.local_port}"
    return f"{prefix}: {body}"


def has_prefix(line: str, prefix: str = DEFAULT_PREFIX) -> bool:
    """True if ``line`` is addressed to us, i.e. starts with ``prefix``."""
    return re.match(rf"{re.escape(prefix)}(?=[:\s]|$)", line.strip()) is not None


def decode_signal(
    line: str, prefix: str = DEFAULT_PREFIX, sequence: int = 0
) -> SignalMessage | None:
    """
    Decode one line of channel history.

    :return: the message, or None if the line is unrelated traffic
    :raises MalformedSignalError: if the line has our prefix but does not parse
    """
    text = line.strip()
    if not has_prefix(text, prefix):
        return None

    match = re.match(re.escape(prefix) + _BODY_PATTERN, text)
    if match is None:
        raise MalformedSignalError(line)

    mapped_port = match.group("mapped_port")
    local_port = match.group("local_port")
    try:
        return SignalMessage(
            match.group("ip"),
            None if mapped_port is None else int(mapped_port),
            None if local_port is None else int(local_port),
            sequence,
        )
    except ValidationError as error:
        raise MalformedSignalError(line, str(error)) from error
