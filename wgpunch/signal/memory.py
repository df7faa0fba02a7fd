from collections import (
    defaultdict,
)

from wgpunch.custom_types import (
    TTopic,
)

from .config import (
    SignalConfig,
)
from .subscription import (
    PollingSignalChannel,
)


class MemorySignalChannel(PollingSignalChannel):
    """In-process channel; two coordinators sharing one instance can rendezvous."""

    def __init__(self, config: SignalConfig | None = None) -> None:
        super().__init__(config)
        self.topics: defaultdict[TTopic, list[str]] = defaultdict(list)

    async def _append_line(self, topic: TTopic, line: str) -> None:
        self.topics[topic].append(line)

    async def _read_lines(self, topic: TTopic, offset: int) -> list[str]:
        return list(self.topics.get(topic, [])[offset:])
