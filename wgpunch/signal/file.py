"""
Signal channel backed by append-only text files.

Each topic is one file ``<directory>/<topic>.log``; every line is one
publication. Any process able to append to the file (a sync job, a shared
mount, a person with an editor) can take part in the rendezvous.
"""

from pathlib import (
    Path,
)
import re

import trio

from wgpunch.custom_types import (
    TTopic,
)
from wgpunch.exceptions import (
    ValidationError,
)

from .config import (
    SignalConfig,
)
from .subscription import (
    PollingSignalChannel,
)

TOPIC_FILE_SUFFIX = ".log"
_TOPIC_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class FileSignalChannel(PollingSignalChannel):
    def __init__(self, directory: str | Path, config: SignalConfig | None = None):
        super().__init__(config)
        self.directory = trio.Path(directory)

    def topic_path(self, topic: TTopic) -> trio.Path:
        if not _TOPIC_PATTERN.match(topic):
            raise ValidationError(f"Topic is not a valid file name: {topic!r}")
        return self.directory / f"{topic}{TOPIC_FILE_SUFFIX}"

    async def _append_line(self, topic: TTopic, line: str) -> None:
        path = self.topic_path(topic)
        await self.directory.mkdir(parents=True, exist_ok=True)
        async with await trio.open_file(path, "a", encoding="utf-8") as f:
            await f.write(line + "\n")

    async def _read_lines(self, topic: TTopic, offset: int) -> list[str]:
        path = self.topic_path(topic)
        if not await path.exists():
            return []
        # Undecodable bytes become U+FFFD, so such lines are skipped when parsed
        text = await path.read_text(encoding="utf-8", errors="replace")
        # The last element is empty or a line still being written
        return text.split("\n")[:-1][offset:]
