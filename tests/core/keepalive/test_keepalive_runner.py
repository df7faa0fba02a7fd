import errno
import os
import socket
import struct

import pytest
import trio

from wgpunch.abc import (
    IProbeSender,
)
from wgpunch.endpoint import (
    Endpoint,
)
from wgpunch.exceptions import (
    ValidationError,
)
from wgpunch.keepalive.config import (
    KeepaliveConfig,
)
from wgpunch.keepalive.probe import (
    UdpProbeSender,
    build_udp_datagram,
)
from wgpunch.keepalive.runner import (
    KeepaliveJob,
    KeepaliveRunner,
)
from wgpunch.tools.factories import (
    KeepaliveJobFactory,
)

PEER = Endpoint("198.51.100.9", 40000, 50000)


class RecordingSender(IProbeSender):
    def __init__(self, errors=()):
        self.probes = []
        self.errors = list(errors)

    async def send(self, source_port, target, ttl):
        if self.errors:
            error = self.errors.pop(0)
            if error is not None:
                raise error
        self.probes.append((trio.current_time(), source_port, target, ttl))


async def run_job(runner, job):
    async with trio.open_nursery() as nursery:
        runner.set_nursery(nursery)
        await runner.start(job)
        await runner.finished.wait()


@pytest.mark.trio
async def test_sends_exactly_count_probes_with_capped_ttl(autojump_clock):
    sender = RecordingSender()
    runner = KeepaliveRunner(sender)
    job = KeepaliveJob(PEER, 51820, interval=28.0, ttl=4, remaining_count=5)

    await run_job(runner, job)

    assert runner.probes_sent == 5
    assert len(sender.probes) == 5
    for _, source_port, target, ttl in sender.probes:
        assert source_port == 51820
        assert target == ("198.51.100.9", 40000)
        assert ttl == 4
    times = [probe[0] for probe in sender.probes]
    assert all(later - earlier >= 28.0 for earlier, later in zip(times, times[1:]))


@pytest.mark.trio
async def test_first_probe_is_sent_immediately(autojump_clock):
    sender = RecordingSender()
    runner = KeepaliveRunner(sender)

    async with trio.open_nursery() as nursery:
        runner.set_nursery(nursery)
        start = trio.current_time()
        await runner.start(KeepaliveJobFactory(target=PEER))
        await runner.first_probe_sent.wait()
        assert trio.current_time() == start
        runner.stop()

    assert runner.probes_sent == 1


@pytest.mark.trio
async def test_stop_ends_the_schedule(autojump_clock):
    sender = RecordingSender()
    runner = KeepaliveRunner(sender)

    async with trio.open_nursery() as nursery:
        runner.set_nursery(nursery)
        await runner.start(KeepaliveJobFactory(target=PEER, interval=10.0))
        await trio.sleep(25)
        runner.stop()
        await runner.finished.wait()

    assert runner.probes_sent == 3


@pytest.mark.trio
async def test_stop_before_start_sends_nothing(autojump_clock):
    sender = RecordingSender()
    runner = KeepaliveRunner(sender)
    runner.stop()
    runner.stop()

    await run_job(runner, KeepaliveJobFactory(target=PEER))
    assert sender.probes == []


@pytest.mark.trio
async def test_zero_count_sends_nothing(autojump_clock):
    runner = KeepaliveRunner(RecordingSender())
    await run_job(runner, KeepaliveJobFactory(target=PEER, remaining_count=0))
    assert runner.probes_sent == 0
    assert not runner.first_probe_sent.is_set()


@pytest.mark.trio
async def test_port_taken_over_stops_the_runner(autojump_clock):
    sender = RecordingSender(
        errors=[None, OSError(errno.EADDRINUSE, "Address already in use")]
    )
    runner = KeepaliveRunner(sender)
    await run_job(runner, KeepaliveJobFactory(target=PEER, remaining_count=10))
    assert runner.probes_sent == 1


@pytest.mark.trio
async def test_transient_send_errors_are_skipped(autojump_clock):
    sender = RecordingSender(
        errors=[OSError(errno.ENETUNREACH, "Network is unreachable")]
    )
    runner = KeepaliveRunner(sender)
    await run_job(runner, KeepaliveJobFactory(target=PEER, remaining_count=3))
    assert runner.probes_sent == 2


@pytest.mark.trio
async def test_port_released_holds_off_probes(autojump_clock):
    sender = RecordingSender()
    runner = KeepaliveRunner(sender)

    async with trio.open_nursery() as nursery:
        runner.set_nursery(nursery)
        async with runner.port_released():
            start = trio.current_time()
            await runner.start(KeepaliveJobFactory(target=PEER, remaining_count=1))
            await trio.sleep(100)
            assert sender.probes == []
        await runner.finished.wait()

    assert sender.probes[0][0] >= start + 100


@pytest.mark.trio
async def test_start_requires_a_nursery():
    runner = KeepaliveRunner(RecordingSender())
    with pytest.raises(RuntimeError):
        await runner.start(KeepaliveJobFactory(target=PEER))


@pytest.mark.trio
async def test_runner_starts_once(autojump_clock):
    runner = KeepaliveRunner(RecordingSender())
    async with trio.open_nursery() as nursery:
        runner.set_nursery(nursery)
        await runner.start(KeepaliveJobFactory(target=PEER, remaining_count=1))
        with pytest.raises(RuntimeError):
            await runner.start(KeepaliveJobFactory(target=PEER))


@pytest.mark.parametrize(
    "overrides",
    [
        {"interval": 0},
        {"ttl": 0},
        {"ttl": 256},
        {"remaining_count": -1},
        {"source_port": 0},
    ],
)
def test_invalid_jobs(overrides):
    with pytest.raises(ValidationError):
        KeepaliveJobFactory(target=PEER, **overrides)


def test_job_from_config():
    job = KeepaliveJob.from_config(PEER, 51820, KeepaliveConfig())
    assert job == KeepaliveJob(PEER, 51820, 28.0, 4, 20)


@pytest.mark.trio
async def test_udp_probe_is_sent_from_the_source_port(free_udp_port):
    receiver = trio.socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    with receiver:
        await receiver.bind(("127.0.0.1", 0))
        target = receiver.getsockname()

        sender = UdpProbeSender(bind_host="127.0.0.1")
        await sender.send(free_udp_port, target, ttl=4)

        with trio.fail_after(5):
            data, addr = await receiver.recvfrom(64)

    assert data == b""
    assert addr[1] == free_udp_port


class FakeRawSocket:
    def __init__(self, sent):
        self.sent = sent
        self.ttl = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return None

    def setsockopt(self, level, option, value):
        if (level, option) == (socket.IPPROTO_IP, socket.IP_TTL):
            self.ttl = value

    async def sendto(self, data, address):
        self.sent.append((data, address, self.ttl))


@pytest.fixture
def blocked_udp_port(free_udp_port):
    """A UDP port held by a socket without address reuse, like a wg interface."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as blocker:
        blocker.bind(("0.0.0.0", free_udp_port))
        yield free_udp_port


def test_build_udp_datagram():
    assert build_udp_datagram(51820, 40000, b"") == struct.pack(
        "!HHHH", 51820, 40000, 8, 0
    )
    assert build_udp_datagram(1, 2, b"ab") == b"\x00\x01\x00\x02\x00\x0a\x00\x00ab"


@pytest.mark.trio
async def test_all_probes_sent_while_tunnel_owns_the_port(blocked_udp_port):
    raw_sent = []
    sender = UdpProbeSender()
    sender._open_raw_socket = lambda: FakeRawSocket(raw_sent)
    runner = KeepaliveRunner(sender)

    job = KeepaliveJob(
        PEER, blocked_udp_port, interval=0.05, ttl=4, remaining_count=5
    )
    await run_job(runner, job)

    assert runner.probes_sent == 5
    expected = struct.pack("!HHHH", blocked_udp_port, 40000, 8, 0)
    assert raw_sent == [(expected, ("198.51.100.9", 0), 4)] * 5


@pytest.mark.trio
async def test_taken_port_without_raw_privilege_reports_address_in_use(
    blocked_udp_port,
):
    def deny():
        raise PermissionError(errno.EPERM, "Operation not permitted")

    sender = UdpProbeSender()
    sender._open_raw_socket = deny

    with pytest.raises(OSError) as exc_info:
        await sender.send(blocked_udp_port, ("198.51.100.9", 40000), ttl=4)
    assert exc_info.value.errno == errno.EADDRINUSE

    runner = KeepaliveRunner(sender)
    await run_job(
        runner, KeepaliveJobFactory(target=PEER, source_port=blocked_udp_port)
    )
    assert runner.probes_sent == 0


@pytest.mark.trio
@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() != 0,
    reason="raw sockets need root",
)
async def test_raw_probe_carries_the_taken_source_port(blocked_udp_port):
    receiver = trio.socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    with receiver:
        await receiver.bind(("127.0.0.1", 0))

        await UdpProbeSender().send(blocked_udp_port, receiver.getsockname(), ttl=4)

        with trio.fail_after(5):
            data, addr = await receiver.recvfrom(64)

    assert data == b""
    assert addr == ("127.0.0.1", blocked_udp_port)
