"""
Connection descriptor handed to the operator once the tunnel is active.

It tells the other side how to reach us: a ``wg-quick`` configuration and the
equivalent ``onetun`` command for hosts without a WireGuard kernel module.
"""

from wgpunch.endpoint import (
    Endpoint,
)

from .config import (
    TunnelConfig,
)


def render_wg_quick_config(
    *,
    listen_port: int,
    address: str,
    private_key: str | None,
    peer_public_key: str,
    endpoint: Endpoint,
    allowed_ips: str,
    persistent_keepalive: int,
) -> str:
    lines = [
        "[Interface]",
        f"ListenPort = {listen_port}",
        f"Address = {address}",
    ]
    if private_key is not None:
        lines.append(f"PrivateKey = {private_key}")
    lines += [
        "",
        "[Peer]",
        f"PublicKey = {peer_public_key}",
        f"Endpoint = {endpoint.ip}:{endpoint.mapped_port}",
        f"AllowedIPs = {allowed_ips}",
        f"PersistentKeepalive = {persistent_keepalive}",
    ]
    return "\n".join(lines)


def render_onetun_command(
    *,
    endpoint: Endpoint,
    peer_public_key: str,
    private_key: str | None,
    source_peer_ip: str,
    bind_port: int,
    keepalive: int,
    forwards: list[str],
) -> str:
    parts = [
        "onetun",
        f"--endpoint-addr {endpoint.ip}:{endpoint.mapped_port}",
        f"--endpoint-public-key '{peer_public_key}'",
        f"--private-key '{private_key or '<private key>'}'",
        f"--source-peer-ip {source_peer_ip}",
        f"--endpoint-bind-addr 0.0.0.0:{bind_port}",
        f"--keep-alive {keepalive}",
        *forwards,
    ]
    return " ".join(parts)


def render_descriptor(
    *,
    own_endpoint: Endpoint,
    own_public_key: str,
    own_tunnel_ip: str,
    peer_endpoint: Endpoint,
    peer_tunnel_ip: str,
    peer_private_key: str | None,
    config: TunnelConfig,
) -> str:
    """
    Render the configuration the peer uses to connect to us.

    The peer binds its announced local port, addresses us at our public
    ``ip:mapped_port`` and routes only our tunnel address. Its private key is
    included only when we generated it.
    """
    wg_quick = render_wg_quick_config(
        listen_port=peer_endpoint.local_port,
        address=f"{peer_tunnel_ip}/{config.prefix_length}",
        private_key=peer_private_key,
        peer_public_key=own_public_key,
        endpoint=own_endpoint,
        allowed_ips=f"{own_tunnel_ip}/32",
        persistent_keepalive=config.persistent_keepalive,
    )
    onetun = render_onetun_command(
        endpoint=own_endpoint,
        peer_public_key=own_public_key,
        private_key=peer_private_key,
        source_peer_ip=peer_tunnel_ip,
        bind_port=peer_endpoint.local_port,
        keepalive=config.persistent_keepalive,
        forwards=[
            f"{local}:{own_tunnel_ip}:{remote}" for local, remote in config.forwards
        ],
    )
    return f"{wg_quick}\n\n{onetun}\n"
