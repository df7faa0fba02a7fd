from wgpunch.endpoint import (
    Endpoint,
)
from wgpunch.tunnel.config import (
    TunnelConfig,
)
from wgpunch.tunnel.descriptor import (
    render_descriptor,
    render_onetun_command,
)

OWN = Endpoint("203.0.113.5", 51820, 51820)
PEER = Endpoint("198.51.100.9", 40000, 50000)


def test_descriptor_for_generated_peer_keys():
    descriptor = render_descriptor(
        own_endpoint=OWN,
        own_public_key="OWNPUB=",
        own_tunnel_ip="192.168.166.1",
        peer_endpoint=PEER,
        peer_tunnel_ip="192.168.166.2",
        peer_private_key="PEERPRIV=",
        config=TunnelConfig(),
    )

    assert descriptor.startswith(
        "[Interface]\nListenPort = 50000\nAddress = 192.168.166.2/30\n"
        "PrivateKey = PEERPRIV=\n"
    )
    assert "PublicKey = OWNPUB=" in descriptor
    assert "Endpoint = 203.0.113.5:51820" in descriptor
    assert "AllowedIPs = 192.168.166.1/32" in descriptor
    assert "PersistentKeepalive = 25" in descriptor
    assert (
        "onetun --endpoint-addr 203.0.113.5:51820 --endpoint-public-key 'OWNPUB=' "
        "--private-key 'PEERPRIV=' --source-peer-ip 192.168.166.2 "
        "--endpoint-bind-addr 0.0.0.0:50000 --keep-alive 25 "
        "2222:192.168.166.1:22"
    ) in descriptor


def test_descriptor_without_peer_private_key():
    descriptor = render_descriptor(
        own_endpoint=OWN,
        own_public_key="OWNPUB=",
        own_tunnel_ip="192.168.166.2",
        peer_endpoint=PEER,
        peer_tunnel_ip="192.168.166.1",
        peer_private_key=None,
        config=TunnelConfig(persistent_keepalive=15, forwards=()),
    )
    assert "PrivateKey" not in descriptor
    assert "--private-key '<private key>'" in descriptor
    assert "PersistentKeepalive = 15" in descriptor


def test_onetun_with_several_forwards():
    command = render_onetun_command(
        endpoint=OWN,
        peer_public_key="K=",
        private_key="P=",
        source_peer_ip="192.168.166.2",
        bind_port=50000,
        keepalive=25,
        forwards=["2222:192.168.166.1:22", "8080:192.168.166.1:80"],
    )
    assert command.endswith("2222:192.168.166.1:22 8080:192.168.166.1:80")
