import dataclasses

import pytest
from multiaddr import Multiaddr

from wgpunch.endpoint import (
    Endpoint,
)
from wgpunch.exceptions import (
    ValidationError,
)


def test_endpoint_fields():
    endpoint = Endpoint("203.0.113.5", 40000, 50000)
    assert endpoint.address == ("203.0.113.5", 40000)
    assert endpoint.is_port_preserving is False
    assert str(endpoint) == "203.0.113.5:40000:50000"


def test_port_preserving_endpoint():
    assert Endpoint("203.0.113.5", 51820, 51820).is_port_preserving


@pytest.mark.parametrize("port", [0, 65536, -1, True, "80", 80.0])
def test_invalid_mapped_port(port):
    with pytest.raises(ValidationError):
        Endpoint("203.0.113.5", port, 51820)


@pytest.mark.parametrize("port", [0, 70000])
def test_invalid_local_port(port):
    with pytest.raises(ValidationError):
        Endpoint("203.0.113.5", 51820, port)


@pytest.mark.parametrize("ip", ["", "256.1.1.1", "2001:db8::1", "example.com"])
def test_invalid_ip(ip):
    with pytest.raises(ValidationError):
        Endpoint(ip, 51820, 51820)


def test_endpoint_is_immutable():
    endpoint = Endpoint("203.0.113.5", 51820, 51820)
    with pytest.raises(dataclasses.FrozenInstanceError):
        endpoint.mapped_port = 1  # type: ignore[misc]


def test_endpoint_multiaddr_round_trip():
    endpoint = Endpoint("198.51.100.9", 1, 65535)
    maddr = endpoint.to_multiaddr()
    assert maddr == Multiaddr("/ip4/198.51.100.9/udp/1")
    assert Endpoint.from_multiaddr(maddr, local_port=65535) == endpoint


def test_from_multiaddr_defaults_local_port_to_mapped_port():
    endpoint = Endpoint.from_multiaddr(Multiaddr("/ip4/198.51.100.9/udp/40000"))
    assert endpoint.local_port == 40000


def test_from_multiaddr_requires_udp():
    with pytest.raises(ValidationError):
        Endpoint.from_multiaddr(Multiaddr("/ip4/198.51.100.9/tcp/40000"))
