"""
Polling subscriptions shared by the concrete signal channels.

A channel only has to append a line to a topic and read lines from an offset;
:class:`PollingSignalChannel` turns that into the publish/subscribe contract
with content deduplication and malformed-line skipping.
"""

from abc import (
    abstractmethod,
)
from collections.abc import (
    AsyncIterator,
    Awaitable,
    Callable,
)
import logging

import trio

from wgpunch.abc import (
    ISignalChannel,
    ISignalSubscription,
)
from wgpunch.custom_types import (
    TTopic,
)
from wgpunch.tools.seen_cache import (
    FirstSeenCache,
)

from .config import (
    SignalConfig,
)
from .errors import (
    MalformedSignalError,
    SignalUnavailableError,
)
from .messages import (
    SignalMessage,
    decode_signal,
    encode_signal,
)

logger = logging.getLogger(__name__)

ReadLinesFn = Callable[[TTopic, int], Awaitable[list[str]]]


class SignalSubscription(ISignalSubscription):
    """
    Restartable view of one topic's history.

    Each poll reads the lines appended since the previous poll. Lines whose
    exact content was already observed are dropped; lines without our prefix
    are unrelated traffic; prefixed lines that do not parse are logged and
    skipped.
    """

    def __init__(
        self, topic: TTopic, read_lines: ReadLinesFn, config: SignalConfig
    ) -> None:
        self.topic = topic
        self.config = config
        self._read_lines = read_lines
        self._cursor = 0
        self._seen = FirstSeenCache(config.seen_ttl)

    async def poll(self) -> list[SignalMessage]:
        """
        Read new history once.

        :raises SignalUnavailableError: if the transport cannot be read in time
        """
        try:
            with trio.fail_after(self.config.poll_timeout):
                lines = await self._read_lines(self.topic, self._cursor)
        except trio.TooSlowError as error:
            raise SignalUnavailableError(
                f"Polling topic '{self.topic}' timed out "
                f"after {self.config.poll_timeout}s"
            ) from error
        except OSError as error:
            raise SignalUnavailableError(
                f"Polling topic '{self.topic}' failed: {error}"
            ) from error

        messages = []
        for offset, line in enumerate(lines):
            sequence = self._cursor + offset
            if not self._seen.add(line.strip().encode()):
                continue
            try:
                message = decode_signal(line, self.config.prefix, sequence)
            except MalformedSignalError as error:
                logger.warning(f"Skipping line {sequence} on '{self.topic}': {error}")
                continue
            if message is None:
                logger.debug(f"Ignoring unrelated line {sequence} on '{self.topic}'")
                continue
            messages.append(message)

        self._cursor += len(lines)
        return messages

    async def receive_batch(self) -> list[SignalMessage]:
        """Poll until at least one new message arrives and return all of them."""
        while True:
            messages = await self.poll()
            if messages:
                return messages
            await trio.sleep(self.config.poll_interval)

    async def __aiter__(self) -> AsyncIterator[SignalMessage]:
        while True:
            for message in await self.receive_batch():
                yield message


class PollingSignalChannel(ISignalChannel):
    """Base for channels that store each topic as an append-only list of lines."""

    def __init__(self, config: SignalConfig | None = None) -> None:
        self.config = config or SignalConfig()

    async def publish(self, topic: TTopic, message: SignalMessage) -> str:
        line = encode_signal(message, self.config.prefix)
        await self.publish_line(topic, line)
        return line

    async def publish_line(self, topic: TTopic, line: str) -> None:
        """Append a raw line, e.g. one written by hand or by another tool."""
        if "\n" in line or "\r" in line:
            raise ValueError("Signal lines must not contain line breaks")
        try:
            await self._append_line(topic, line)
        except OSError as error:
            raise SignalUnavailableError(
                f"Publishing to topic '{topic}' failed: {error}"
            ) from error
        logger.debug(f"Published {line!r} to '{topic}'")

    def subscribe(self, topic: TTopic) -> SignalSubscription:
        return SignalSubscription(topic, self._read_lines, self.config)

    @abstractmethod
    async def _append_line(self, topic: TTopic, line: str) -> None:
        """Append one line to the topic history."""

    @abstractmethod
    async def _read_lines(self, topic: TTopic, offset: int) -> list[str]:
        """Return the topic history starting at ``offset``."""
