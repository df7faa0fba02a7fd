"""
Keepalive runner: refreshes the local NAT mapping toward the peer.
"""

from collections.abc import (
    AsyncIterator,
)
from contextlib import (
    asynccontextmanager,
)
from dataclasses import (
    dataclass,
)
import errno
import logging

import trio
from trio_typing import (
    TaskStatus,
)

from wgpunch.abc import (
    IProbeSender,
)
from wgpunch.endpoint import (
    Endpoint,
    validate_port,
)
from wgpunch.exceptions import (
    ValidationError,
)

from .config import (
    MAX_TTL,
    MIN_TTL,
    KeepaliveConfig,
)
from .probe import (
    UdpProbeSender,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeepaliveJob:
    target: Endpoint
    source_port: int
    interval: float
    ttl: int
    remaining_count: int

    def __post_init__(self) -> None:
        validate_port(self.source_port, "source_port")
        if self.interval <= 0:
            raise ValidationError(f"interval must be positive, got {self.interval}")
        if not MIN_TTL <= self.ttl <= MAX_TTL:
            raise ValidationError(f"ttl must be in range {MIN_TTL}-{MAX_TTL}")
        if self.remaining_count < 0:
            raise ValidationError("remaining_count must not be negative")

    @classmethod
    def from_config(
        cls, target: Endpoint, source_port: int, config: KeepaliveConfig
    ) -> "KeepaliveJob":
        return cls(target, source_port, config.interval, config.ttl, config.count)


class KeepaliveRunner:
    """
    Emits TTL-capped UDP probes from the reserved port on its own schedule.

    The runner is started in a nursery set by its owner and stops when it has
    sent ``remaining_count`` probes, when :meth:`stop` is called, or when the
    nursery is cancelled. It also stops early if the sender reports the
    source port as taken (``EADDRINUSE``), which the UDP sender only does
    when it lacks the privilege to send around the bound port.
    """

    def __init__(self, sender: IProbeSender | None = None) -> None:
        self.sender = sender or UdpProbeSender()
        self.probes_sent = 0
        self.first_probe_sent = trio.Event()
        self.finished = trio.Event()
        self._nursery: trio.Nursery | None = None
        self._started = False
        self._port_lock = trio.Lock()
        self._stop_send, self._stop_receive = trio.open_memory_channel[None](1)

    def set_nursery(self, nursery: trio.Nursery) -> None:
        """Set the nursery the keepalive task runs in."""
        self._nursery = nursery

    async def start(self, job: KeepaliveJob) -> None:
        if self._nursery is None:
            raise RuntimeError("No nursery set for the keepalive task")
        if self._started:
            raise RuntimeError("Keepalive runner already started")
        self._started = True
        await self._nursery.start(self._run, job)

    def stop(self) -> None:
        try:
            self._stop_send.send_nowait(None)
        except trio.WouldBlock:
            # A stop request is already pending
            pass

    def _stop_pending(self) -> bool:
        try:
            self._stop_receive.receive_nowait()
        except trio.WouldBlock:
            return False
        return True

    @asynccontextmanager
    async def port_released(self) -> AsyncIterator[None]:
        """Hold off probes so the source port is free for another binder."""
        async with self._port_lock:
            yield

    async def _run(
        self,
        job: KeepaliveJob,
        task_status: TaskStatus[None] = trio.TASK_STATUS_IGNORED,
    ) -> None:
        target = job.target.address
        logger.info(
            f"Keepalive from port {job.source_port} to {target[0]}:{target[1]}: "
            f"{job.remaining_count} probes every {job.interval}s, TTL {job.ttl}"
        )
        task_status.started()
        try:
            for index in range(job.remaining_count):
                if index:
                    with trio.move_on_after(job.interval):
                        await self._stop_receive.receive()
                        logger.debug("Keepalive stopped on request")
                        return
                elif self._stop_pending():
                    logger.debug("Keepalive stopped before the first probe")
                    return

                async with self._port_lock:
                    try:
                        await self.sender.send(job.source_port, target, job.ttl)
                    except OSError as error:
                        if error.errno == errno.EADDRINUSE:
                            logger.info(
                                f"Port {job.source_port} taken over, keepalive done"
                            )
                            return
                        logger.warning(f"Keepalive probe {index + 1} failed: {error}")
                        continue

                self.probes_sent += 1
                self.first_probe_sent.set()
                logger.debug(f"Keepalive probe {self.probes_sent} sent")
        finally:
            self.finished.set()
