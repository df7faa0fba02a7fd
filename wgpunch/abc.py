from abc import (
    ABC,
    abstractmethod,
)
from collections.abc import (
    AsyncIterator,
)
from typing import (
    TYPE_CHECKING,
)

from wgpunch.custom_types import (
    TTopic,
)
from wgpunch.endpoint import (
    Endpoint,
)

if TYPE_CHECKING:
    from wgpunch.signal.messages import (
        SignalMessage,
    )
    from wgpunch.tunnel.request import (
        TunnelHandle,
        TunnelRequest,
    )

# -------------------------- discovery interface --------------------------


class IEndpointDiscoverer(ABC):
    """
    Learns the public endpoint that the NAT maps a local UDP port to.
    """

    @abstractmethod
    async def discover(self, source_port: int) -> Endpoint:
        """
        Discover the public endpoint for a local source port.

        Parameters
        ----------
        source_port : int
            The local UDP port that later carries keepalive and tunnel traffic.

        Returns
        -------
        Endpoint
            The public IP, the mapped port and the local port.

        Raises
        ------
        DiscoveryError
            If the server is unreachable or its response is malformed.

        """


# -------------------------- signal interface --------------------------


class ISignalSubscription(ABC):
    @abstractmethod
    async def receive_batch(self) -> "list[SignalMessage]":
        """
        Wait for new announcements.

        Returns
        -------
        list[SignalMessage]
            The non-empty list of messages observed since the previous call,
            ordered by publication.

        """

    @abstractmethod
    def __aiter__(self) -> "AsyncIterator[SignalMessage]": ...


class ISignalChannel(ABC):
    """
    Asynchronous, at-least-once message bus keyed by topic.

    Delivery latency is unbounded; subscribers poll.
    """

    @abstractmethod
    async def publish(self, topic: TTopic, message: "SignalMessage") -> str:
        """
        Publish an announcement.

        Parameters
        ----------
        topic : TTopic
            The shared topic both peers use.
        message : SignalMessage
            The announcement to publish.

        Returns
        -------
        str
            The line that was written.

        Raises
        ------
        SignalUnavailableError
            If the transport write fails.

        """

    @abstractmethod
    def subscribe(self, topic: TTopic) -> ISignalSubscription:
        """
        Subscribe to a topic.

        Every call returns a fresh subscription that replays the topic from
        the start, deduplicated by line content.
        """


# -------------------------- keepalive interface --------------------------


class IProbeSender(ABC):
    @abstractmethod
    async def send(self, source_port: int, target: tuple[str, int], ttl: int) -> None:
        """
        Send one empty UDP datagram from ``source_port`` with the given IP TTL.

        Raises
        ------
        OSError
            If the port cannot be bound or the datagram cannot be sent.

        """


# -------------------------- tunnel interface --------------------------


class ITunnelLauncher(ABC):
    @abstractmethod
    async def launch(self, request: "TunnelRequest") -> "TunnelHandle":
        """
        Bring up the tunnel interface.

        Raises
        ------
        TunnelLaunchError
            If the interface cannot be configured.

        """

    @abstractmethod
    async def shutdown(self, handle: "TunnelHandle") -> None:
        """Tear down an interface returned by :meth:`launch`."""
