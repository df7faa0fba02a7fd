from dataclasses import (
    dataclass,
    field,
)
from enum import Enum
import logging
import random

import trio

from wgpunch.endpoint import (
    Endpoint,
)
from wgpunch.tunnel.request import (
    TunnelRequest,
)

logger = logging.getLogger(__name__)


class Role(Enum):
    INITIATOR = "initiator"
    RESPONDER = "responder"


class SessionState(Enum):
    IDLE = "idle"
    SELF_DISCOVERING = "self_discovering"
    ANNOUNCING = "announcing"
    AWAITING_PEER = "awaiting_peer"
    PUNCHING = "punching"
    LAUNCHING = "launching"
    ACTIVE = "active"
    TERMINATED = "terminated"


@dataclass
class RendezvousSession:
    """
    State of one rendezvous attempt, owned by its coordinator.

    ``started_at`` and ``deadline`` are on the trio clock.
    """

    role: Role
    session_id: str
    started_at: float
    deadline: float
    state: SessionState = SessionState.IDLE
    self_endpoint: Endpoint | None = None
    peer_endpoint: Endpoint | None = None
    last_error: Exception | None = None
    tunnel: TunnelRequest | None = None
    descriptor: str | None = None
    history: list[SessionState] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.history.append(self.state)
        # Seeded by the session id so every choice is repeatable within it
        self.rng = random.Random(self.session_id)

    def transition(self, state: SessionState) -> None:
        logger.info(f"Session {self.session_id}: {self.state.name} -> {state.name}")
        self.state = state
        self.history.append(state)

    @property
    def reached_active(self) -> bool:
        return SessionState.ACTIVE in self.history

    def remaining(self) -> float:
        """Seconds left before the deadline, never negative."""
        return max(0.0, self.deadline - trio.current_time())
