"""
STUN (RFC 5389) Binding Request/Response codec.

Only the parts needed to learn the reflexive transport address are
implemented: the 20-byte header, MAPPED-ADDRESS and XOR-MAPPED-ADDRESS.
"""

from dataclasses import (
    dataclass,
)
from enum import IntEnum
import ipaddress
import secrets
import struct

from .errors import (
    MalformedResponseError,
)

MAGIC_COOKIE = 0x2112A442
HEADER_LENGTH = 20
TRANSACTION_ID_LENGTH = 12

ADDRESS_FAMILY_IPV4 = 0x01
ADDRESS_FAMILY_IPV6 = 0x02


class StunMessageType(IntEnum):
    BINDING_REQUEST = 0x0001
    BINDING_SUCCESS_RESPONSE = 0x0101
    BINDING_ERROR_RESPONSE = 0x0111


class StunAttributeType(IntEnum):
    MAPPED_ADDRESS = 0x0001
    XOR_MAPPED_ADDRESS = 0x0020


@dataclass(frozen=True)
class BindingResponse:
    transaction_id: bytes
    mapped_address: tuple[str, int] | None = None
    xor_mapped_address: tuple[str, int] | None = None

    @property
    def public_address(self) -> tuple[str, int]:
        """
        The reflexive ``(ip, port)``.

        :raises MalformedResponseError: if no IPv4 address is present or
            the two address attributes disagree
        """
        if (
            self.mapped_address is not None
            and self.xor_mapped_address is not None
            and self.mapped_address != self.xor_mapped_address
        ):
            raise MalformedResponseError(
                f"XOR-MAPPED-ADDRESS {self.xor_mapped_address} disagrees with "
                f"MAPPED-ADDRESS {self.mapped_address}"
            )
        address = self.xor_mapped_address or self.mapped_address
        if address is None:
            raise MalformedResponseError("Response carries no IPv4 mapped address")
        return address


def new_transaction_id() -> bytes:
    return secrets.token_bytes(TRANSACTION_ID_LENGTH)


def create_binding_request(transaction_id: bytes) -> bytes:
    if len(transaction_id) != TRANSACTION_ID_LENGTH:
        raise ValueError(
            f"Transaction id must be {TRANSACTION_ID_LENGTH} bytes, "
            f"got {len(transaction_id)}"
        )
    header = struct.pack("!HHI", StunMessageType.BINDING_REQUEST, 0, MAGIC_COOKIE)
    return header + transaction_id


def peek_transaction_id(data: bytes) -> bytes | None:
    """Return the transaction id of a STUN datagram, or None if it is not STUN."""
    if len(data) < HEADER_LENGTH:
        return None
    (cookie,) = struct.unpack("!I", data[4:8])
    if cookie != MAGIC_COOKIE:
        return None
    return data[8:HEADER_LENGTH]


def _parse_address(data: bytes) -> tuple[str, int] | None:
    if len(data) < 8:
        raise MalformedResponseError("Truncated MAPPED-ADDRESS attribute")
    _, family, port = struct.unpack("!BBH", data[:4])
    if family != ADDRESS_FAMILY_IPV4:
        return None
    return str(ipaddress.IPv4Address(data[4:8])), port


def _parse_xor_address(data: bytes) -> tuple[str, int] | None:
    if len(data) < 8:
        raise MalformedResponseError("Truncated XOR-MAPPED-ADDRESS attribute")
    _, family, xor_port = struct.unpack("!BBH", data[:4])
    if family != ADDRESS_FAMILY_IPV4:
        return None
    # Port is XORed with the most significant 16 bits of the cookie
    port = xor_port ^ (MAGIC_COOKIE >> 16)
    cookie_bytes = struct.pack("!I", MAGIC_COOKIE)
    ip_bytes = bytes(a ^ b for a, b in zip(data[4:8], cookie_bytes))
    return str(ipaddress.IPv4Address(ip_bytes)), port


def parse_binding_response(data: bytes) -> BindingResponse:
    """
    Parse a Binding Success Response.

    :raises MalformedResponseError: if ``data`` is not a well-formed success
        response
    """
    if peek_transaction_id(data) is None:
        raise MalformedResponseError("Not a STUN message")

    msg_type, msg_length = struct.unpack("!HH", data[:4])
    transaction_id = data[8:HEADER_LENGTH]
    if msg_type != StunMessageType.BINDING_SUCCESS_RESPONSE:
        raise MalformedResponseError(
            f"Unexpected STUN message type: 0x{msg_type:04x}"
        )
    if HEADER_LENGTH + msg_length > len(data):
        raise MalformedResponseError("STUN message shorter than its length field")

    mapped = None
    xor_mapped = None
    pos = HEADER_LENGTH
    end = HEADER_LENGTH + msg_length
    while pos + 4 <= end:
        attr_type, attr_length = struct.unpack("!HH", data[pos : pos + 4])
        pos += 4
        if pos + attr_length > end:
            raise MalformedResponseError("Truncated STUN attribute")
        attr_data = data[pos : pos + attr_length]
        # Attributes are padded to a 4-byte boundary
        pos += attr_length + (-attr_length % 4)

        if attr_type == StunAttributeType.MAPPED_ADDRESS:
            mapped = _parse_address(attr_data)
        elif attr_type == StunAttributeType.XOR_MAPPED_ADDRESS:
            xor_mapped = _parse_xor_address(attr_data)

    return BindingResponse(transaction_id, mapped, xor_mapped)


def create_binding_response(
    transaction_id: bytes,
    address: tuple[str, int],
    xor: bool = True,
) -> bytes:
    """Build a Binding Success Response reflecting ``address``."""
    ip, port = address
    ip_bytes = ipaddress.IPv4Address(ip).packed
    if xor:
        attr_type = StunAttributeType.XOR_MAPPED_ADDRESS
        port ^= MAGIC_COOKIE >> 16
        cookie_bytes = struct.pack("!I", MAGIC_COOKIE)
        ip_bytes = bytes(a ^ b for a, b in zip(ip_bytes, cookie_bytes))
    else:
        attr_type = StunAttributeType.MAPPED_ADDRESS
    value = struct.pack("!BBH", 0, ADDRESS_FAMILY_IPV4, port) + ip_bytes
    attribute = struct.pack("!HH", attr_type, len(value)) + value
    header = struct.pack(
        "!HHI",
        StunMessageType.BINDING_SUCCESS_RESPONSE,
        len(attribute),
        MAGIC_COOKIE,
    )
    return header + transaction_id + attribute
