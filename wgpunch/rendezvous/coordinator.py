"""
Rendezvous coordinator.

Drives one session through discovery, announcement, peer discovery,
hole punching and tunnel bring-up::

    IDLE -> SELF_DISCOVERING -> ANNOUNCING -> AWAITING_PEER
         -> PUNCHING -> LAUNCHING -> ACTIVE -> TERMINATED
"""

from collections.abc import (
    Awaitable,
    Callable,
)
import ipaddress
import logging
import secrets
from typing import (
    TypeVar,
)

import trio

from wgpunch.abc import (
    IEndpointDiscoverer,
    IProbeSender,
    ISignalChannel,
    ITunnelLauncher,
)
from wgpunch.custom_types import (
    DescriptorSinkFn,
)
from wgpunch.discovery.stun.errors import (
    DiscoveryError,
)
from wgpunch.endpoint import (
    Endpoint,
)
from wgpunch.exceptions import (
    BaseWgPunchError,
    ValidationError,
)
from wgpunch.keepalive.runner import (
    KeepaliveJob,
    KeepaliveRunner,
)
from wgpunch.signal.errors import (
    SignalError,
)
from wgpunch.signal.messages import (
    SignalMessage,
)
from wgpunch.tools.backoff import (
    ExponentialBackoff,
)
from wgpunch.tunnel.descriptor import (
    render_descriptor,
)
from wgpunch.tunnel.errors import (
    TunnelLaunchError,
)
from wgpunch.tunnel.keys import (
    WireGuardKeyPair,
    decode_key,
    generate_keypair,
    keypair_from_private,
)
from wgpunch.tunnel.request import (
    TunnelHandle,
    TunnelRequest,
)

from .config import (
    RendezvousConfig,
)
from .errors import (
    LaunchFailedError,
    SessionTimeoutError,
)
from .session import (
    RendezvousSession,
    Role,
    SessionState,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (DiscoveryError, SignalError)


class RendezvousCoordinator:
    """
    Coordinates one NAT traversal rendezvous between two peers.

    Both peers run the same sequence: learn their own public endpoint for the
    reserved port, announce it on the signal channel and wait for the other
    side's announcement. Once it arrives, low-TTL keepalive probes open the
    local NAT mapping toward the peer before the tunnel is launched on the
    same port.
    """

    def __init__(
        self,
        config: RendezvousConfig,
        discoverer: IEndpointDiscoverer,
        channel: ISignalChannel,
        launcher: ITunnelLauncher,
        probe_sender: IProbeSender | None = None,
        descriptor_sink: DescriptorSinkFn | None = None,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            config: Session configuration
            discoverer: Source of our public endpoint
            channel: Channel the announcements are exchanged on
            launcher: Brings up the tunnel once the mappings are open
            probe_sender: Keepalive probe sender, a UDP sender by default
            descriptor_sink: Called once with the connection descriptor

        Raises:
            ValidationError: If an initiator has no peer public key

        """
        self.config = config
        self.discoverer = discoverer
        self.channel = channel
        self.launcher = launcher
        self.probe_sender = probe_sender
        self.descriptor_sink = descriptor_sink
        self.session: RendezvousSession | None = None

        self.keys = (
            keypair_from_private(config.private_key)
            if config.private_key is not None
            else generate_keypair()
        )
        self.peer_keys: WireGuardKeyPair | None = None
        if config.peer_public_key is not None:
            decode_key(config.peer_public_key)
            self.peer_public_key = config.peer_public_key
        elif config.role is Role.RESPONDER:
            self.peer_keys = generate_keypair()
            self.peer_public_key = self.peer_keys.public_key
        else:
            raise ValidationError("An initiator needs the responder's public key")

    async def run(self) -> RendezvousSession:
        """
        Run a session to completion.

        Returns the terminated session after the tunnel was active and the
        hold period (or the deadline) has passed.

        Raises:
            SessionTimeoutError: If the tunnel never became active in time
            LaunchFailedError: If the launcher failed
            BaseWgPunchError: Any other library error raised by a component,
                e.g. a ValidationError for an invalid source port

        """
        now = trio.current_time()
        session = RendezvousSession(
            role=self.config.role,
            session_id=self.config.session_id or secrets.token_hex(8),
            started_at=now,
            deadline=now + self.config.timeouts.session,
        )
        self.session = session
        logger.info(
            f"Starting {session.role.value} session {session.session_id}, "
            f"deadline in {self.config.timeouts.session}s"
        )

        failure: BaseWgPunchError | None = None
        with trio.move_on_at(session.deadline):
            async with trio.open_nursery() as nursery:
                try:
                    await self._run_session(session, nursery)
                except BaseWgPunchError as error:
                    failure = error
                nursery.cancel_scope.cancel()

        last_state = session.state
        session.transition(SessionState.TERMINATED)

        if failure is not None:
            logger.error(f"Session {session.session_id} failed: {failure}")
            raise failure
        if not session.reached_active:
            message = f"Deadline expired in {last_state.name}"
            if session.last_error is not None:
                message += f", last error: {session.last_error}"
            error = SessionTimeoutError(last_state, message)
            logger.error(f"Session {session.session_id} failed: {error}")
            raise error
        return session

    async def _run_session(
        self, session: RendezvousSession, nursery: trio.Nursery
    ) -> None:
        session.transition(SessionState.SELF_DISCOVERING)
        self_endpoint = await self._retry(
            session, lambda: self.discoverer.discover(self.config.source_port)
        )
        session.self_endpoint = self_endpoint

        session.transition(SessionState.ANNOUNCING)
        topic = self.config.signal.topic
        own_message = SignalMessage.from_endpoint(self_endpoint)
        line = await self._retry(
            session, lambda: self.channel.publish(topic, own_message)
        )
        logger.info(f"Announced {line!r} on '{topic}'")

        session.transition(SessionState.AWAITING_PEER)
        peer_message = await self._retry(
            session, lambda: self._await_peer(own_message)
        )
        peer_endpoint = peer_message.resolve_endpoint(session.rng)
        if not peer_message.has_ports:
            logger.warning(
                f"Peer announced no ports, assuming a port-preserving NAT "
                f"on port {peer_endpoint.mapped_port}"
            )
        session.peer_endpoint = peer_endpoint

        session.transition(SessionState.PUNCHING)
        runner = KeepaliveRunner(self.probe_sender)
        runner.set_nursery(nursery)
        await runner.start(
            KeepaliveJob.from_config(
                peer_endpoint, self_endpoint.local_port, self.config.keepalive
            )
        )
        with trio.move_on_after(self.config.timeouts.first_probe_grace):
            await runner.first_probe_sent.wait()
        if not runner.first_probe_sent.is_set():
            logger.warning(
                f"No keepalive probe sent within "
                f"{self.config.timeouts.first_probe_grace}s, launching anyway"
            )

        session.transition(SessionState.LAUNCHING)
        request = self._build_request(self_endpoint, peer_endpoint)
        session.tunnel = request
        handle = await self._launch(session, runner, request)

        session.transition(SessionState.ACTIVE)
        try:
            self._emit_descriptor(session, self_endpoint, peer_endpoint)
            await self._hold(session)
        finally:
            runner.stop()
            with trio.CancelScope(shield=True):
                await self._shutdown(handle)

    async def _retry(
        self, session: RendezvousSession, operation: Callable[[], Awaitable[T]]
    ) -> T:
        """Retry ``operation`` with bounded backoff; the deadline ends it."""
        backoff = ExponentialBackoff(
            self.config.backoff_initial, self.config.backoff_max
        )
        while True:
            try:
                return await operation()
            except RETRYABLE_ERRORS as error:
                session.last_error = error
                delay = backoff.next_delay()
                logger.warning(
                    f"{session.state.name} failed: {error}; retrying in {delay}s"
                )
                await trio.sleep(delay)

    async def _await_peer(self, own_message: SignalMessage) -> SignalMessage:
        subscription = self.channel.subscribe(self.config.signal.topic)
        while True:
            batch = await subscription.receive_batch()
            # Announcements from our own public IP, stale ones included, are ours
            peer_messages = [
                message for message in batch if message.ip != own_message.ip
            ]
            if peer_messages:
                # The most recent announcement wins
                message = peer_messages[-1]
                logger.info(f"Peer announced {message.ip} (line {message.sequence})")
                return message

    def _build_request(
        self, self_endpoint: Endpoint, peer_endpoint: Endpoint
    ) -> TunnelRequest:
        tunnel = self.config.tunnel
        if self.config.role is Role.RESPONDER:
            own_ip, peer_ip = tunnel.responder_address, tunnel.initiator_address
            local_bind_port = peer_endpoint.local_port
        else:
            own_ip, peer_ip = tunnel.initiator_address, tunnel.responder_address
            local_bind_port = self_endpoint.local_port
        return TunnelRequest(
            private_key=self.keys.private_key,
            peer_public_key=self.peer_public_key,
            peer_endpoint=peer_endpoint,
            listen_port=self_endpoint.local_port,
            local_bind_port=local_bind_port,
            address=ipaddress.IPv4Interface(f"{own_ip}/{tunnel.prefix_length}"),
            allowed_ips=ipaddress.IPv4Network(f"{peer_ip}/32"),
            persistent_keepalive=tunnel.persistent_keepalive,
            dial_peer=self.config.role is Role.INITIATOR,
        )

    async def _launch(
        self,
        session: RendezvousSession,
        runner: KeepaliveRunner,
        request: TunnelRequest,
    ) -> TunnelHandle:
        timeout = self.config.timeouts.launch
        try:
            async with runner.port_released():
                with trio.fail_after(timeout):
                    return await self.launcher.launch(request)
        except TunnelLaunchError as error:
            session.last_error = error
            raise LaunchFailedError(session.state, str(error)) from error
        except trio.TooSlowError as error:
            session.last_error = error
            raise LaunchFailedError(
                session.state, f"Tunnel not up after {timeout}s"
            ) from error

    def _emit_descriptor(
        self,
        session: RendezvousSession,
        self_endpoint: Endpoint,
        peer_endpoint: Endpoint,
    ) -> None:
        tunnel = self.config.tunnel
        if self.config.role is Role.RESPONDER:
            own_ip, peer_ip = tunnel.responder_address, tunnel.initiator_address
        else:
            own_ip, peer_ip = tunnel.initiator_address, tunnel.responder_address
        descriptor = render_descriptor(
            own_endpoint=self_endpoint,
            own_public_key=self.keys.public_key,
            own_tunnel_ip=own_ip,
            peer_endpoint=peer_endpoint,
            peer_tunnel_ip=peer_ip,
            peer_private_key=self.peer_keys.private_key if self.peer_keys else None,
            config=tunnel,
        )
        session.descriptor = descriptor
        logger.info(f"Tunnel active, connection descriptor:\n{descriptor}")
        if self.descriptor_sink is not None:
            self.descriptor_sink(descriptor)

    async def _hold(self, session: RendezvousSession) -> None:
        hold = self.config.timeouts.hold
        if hold is None:
            logger.info(f"Holding tunnel for {session.remaining():.0f}s")
            await trio.sleep_until(session.deadline)
        else:
            logger.info(f"Holding tunnel for {hold}s")
            await trio.sleep(hold)

    async def _shutdown(self, handle: TunnelHandle) -> None:
        try:
            with trio.move_on_after(self.config.timeouts.launch):
                await self.launcher.shutdown(handle)
        except TunnelLaunchError as error:
            logger.warning(f"Tunnel shutdown failed: {error}")
