import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from .constants import (
    EVENT_MAKE_OFFER,
    EVENT_MATCH_FOUND,
    EVENT_PARTNER_DISCONNECTED,
    MODE_VIDEO,
    ROOM_PREFIX,
)
from .events import Outbox
from .registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    return f"{ROOM_PREFIX}{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Session:
    id: str
    mode: str
    members: Tuple[str, str]
    initiator: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def has_member(self, channel_name: str) -> bool:
        return channel_name in self.members

    def partner_of(self, channel_name: str) -> Optional[str]:
        first, second = self.members
        if channel_name == first:
            return second
        if channel_name == second:
            return first
        return None


class SessionManager:
    """Owns the session table. Both members' `room_id` point at the session."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry
        self._sessions: Dict[str, Session] = {}

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def current(self, connection: Connection) -> Optional[Session]:
        session = self.get(connection.room_id)
        if session is None or not session.has_member(connection.channel_name):
            return None
        return session

    def create(self, requester: Connection, waiting: Connection, mode: str, outbox: Outbox) -> Session:
        session_id = generate_session_id()
        while session_id in self._sessions:
            session_id = generate_session_id()

        initiator = requester.channel_name if mode == MODE_VIDEO else None
        session = Session(
            id=session_id,
            mode=mode,
            members=(waiting.channel_name, requester.channel_name),
            initiator=initiator,
        )
        self._sessions[session_id] = session
        waiting.room_id = session_id
        requester.room_id = session_id

        for channel_name in session.members:
            outbox.send(channel_name, EVENT_MATCH_FOUND, {"roomId": session_id})
        if initiator:
            outbox.send(initiator, EVENT_MAKE_OFFER, {"roomId": session_id})

        logger.info(
            "Session %s created (%s): %s <-> %s",
            session_id,
            mode,
            waiting.channel_name,
            requester.channel_name,
        )
        return session

    def end(self, connection: Connection, outbox: Outbox) -> Optional[Session]:
        """
        End the connection's session and tell the partner. Returns the ended
        session, or None when there was nothing to end.
        """
        session = self.current(connection)
        connection.room_id = None
        if session is None:
            return None

        del self._sessions[session.id]
        partner = self.registry.get(session.partner_of(connection.channel_name))
        if partner is not None:
            if partner.room_id == session.id:
                partner.room_id = None
            outbox.send(partner.channel_name, EVENT_PARTNER_DISCONNECTED)

        logger.info("Session %s ended by %s", session.id, connection.channel_name)
        return session

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self):
        return iter(list(self._sessions.values()))
