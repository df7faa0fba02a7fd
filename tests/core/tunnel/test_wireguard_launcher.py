import ipaddress
from unittest.mock import (
    AsyncMock,
    Mock,
)

import pytest
import trio

from wgpunch.endpoint import (
    Endpoint,
)
from wgpunch.tunnel.config import (
    TunnelConfig,
)
from wgpunch.tunnel.errors import (
    TunnelLaunchError,
)
from wgpunch.tunnel.request import (
    TunnelHandle,
    TunnelRequest,
)
from wgpunch.tunnel.wireguard import (
    WireGuardLauncher,
)

PRIVATE_KEY = "cHJpdmF0ZS1rZXktcGxhY2Vob2xkZXItMzItYnl0ZXM="
PEER_PUBLIC_KEY = "cHVibGljLWtleS1wbGFjZWhvbGRlci0zMi1ieXRlcyE="


def make_request(dial_peer=False):
    return TunnelRequest(
        private_key=PRIVATE_KEY,
        peer_public_key=PEER_PUBLIC_KEY,
        peer_endpoint=Endpoint("198.51.100.9", 40000, 50000),
        listen_port=51820,
        local_bind_port=50000,
        address=ipaddress.IPv4Interface("192.168.166.1/30"),
        allowed_ips=ipaddress.IPv4Network("192.168.166.2/32"),
        persistent_keepalive=25,
        dial_peer=dial_peer,
    )


def completed(returncode=0, stderr=b""):
    return Mock(returncode=returncode, stderr=stderr)


@pytest.fixture
def run_process(monkeypatch):
    mock = AsyncMock(return_value=completed())
    monkeypatch.setattr(trio, "run_process", mock)
    return mock


def commands(run_process):
    return [call.args[0] for call in run_process.call_args_list]


@pytest.mark.trio
async def test_responder_launch(run_process):
    launcher = WireGuardLauncher(TunnelConfig(command_prefix=("sudo",)))
    handle = await launcher.launch(make_request())

    assert handle == TunnelHandle("wg0", make_request())
    assert commands(run_process) == [
        ["sudo", "ip", "link", "add", "dev", "wg0", "type", "wireguard"],
        ["sudo", "ip", "address", "add", "dev", "wg0", "192.168.166.1/30"],
        [
            "sudo",
            "wg",
            "set",
            "wg0",
            "listen-port",
            "51820",
            "private-key",
            "/dev/stdin",
            "peer",
            PEER_PUBLIC_KEY,
            "allowed-ips",
            "192.168.166.2/32",
        ],
        ["sudo", "ip", "link", "set", "dev", "wg0", "up"],
    ]
    wg_call = run_process.call_args_list[2]
    assert wg_call.kwargs["stdin"] == PRIVATE_KEY.encode() + b"\n"
    assert PRIVATE_KEY not in wg_call.args[0]


@pytest.mark.trio
async def test_initiator_dials_the_peer(run_process):
    await WireGuardLauncher().launch(make_request(dial_peer=True))

    wg_command = commands(run_process)[2]
    assert wg_command[0] == "wg"
    assert wg_command[-4:] == [
        "endpoint",
        "198.51.100.9:40000",
        "persistent-keepalive",
        "25",
    ]


@pytest.mark.trio
async def test_failed_step_removes_the_interface(run_process):
    run_process.side_effect = [
        completed(),
        completed(),
        completed(returncode=1, stderr=b"Invalid key"),
        completed(),
    ]

    with pytest.raises(TunnelLaunchError, match="Invalid key"):
        await WireGuardLauncher().launch(make_request())

    assert commands(run_process)[-1] == ["ip", "link", "del", "dev", "wg0"]


@pytest.mark.trio
async def test_missing_tools(run_process):
    run_process.side_effect = FileNotFoundError("ip")
    with pytest.raises(TunnelLaunchError, match="Cannot run ip"):
        await WireGuardLauncher().launch(make_request())


@pytest.mark.trio
async def test_hanging_command_times_out(monkeypatch, autojump_clock):
    async def hang(*args, **kwargs):
        await trio.sleep_forever()

    monkeypatch.setattr(trio, "run_process", hang)
    with pytest.raises(TunnelLaunchError, match="timed out"):
        await WireGuardLauncher(TunnelConfig(command_timeout=2.0)).launch(
            make_request()
        )


@pytest.mark.trio
async def test_shutdown_deletes_the_link(run_process):
    launcher = WireGuardLauncher(TunnelConfig(interface="wgpunch0"))
    await launcher.shutdown(TunnelHandle("wgpunch0", make_request()))
    assert commands(run_process) == [["ip", "link", "del", "dev", "wgpunch0"]]


def test_tunnel_config_validation():
    with pytest.raises(ValueError):
        TunnelConfig(responder_address="10.0.0.1")
    with pytest.raises(ValueError):
        TunnelConfig(initiator_address="192.168.166.1")
    assert TunnelConfig().prefix_length == 30
