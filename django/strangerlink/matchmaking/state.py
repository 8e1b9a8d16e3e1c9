import logging
from typing import Any, Optional

from .constants import (
    EVENT_MESSAGE,
    EVENT_SIGNAL,
    EVENT_WAITING,
    MODES,
    PARTNER_SENDER,
    POLICY_LIFO,
    STATE_GONE,
    STATE_IDLE,
    STATE_PAIRED,
    STATE_WAITING,
)
from .events import Outbox
from .exceptions import InvalidModeError, UnknownConnectionError
from .payloads import ChatText
from .presence import PresenceCounter
from .queues import MatchmakingQueues
from .registry import Connection, ConnectionRegistry
from .relay import RelayRouter
from .sessions import Session, SessionManager

logger = logging.getLogger(__name__)


class MatchmakingState:
    """
    All matchmaking state of the process: registry, queues, sessions and the
    presence count.

    Methods are synchronous and never await, so a caller that holds one lock
    around each call gets fully serialized mutations. Outbound traffic is
    collected in the given Outbox, never sent from here.
    """

    def __init__(self, queue_policy: str = POLICY_LIFO):
        self.registry = ConnectionRegistry()
        self.queues = MatchmakingQueues(queue_policy)
        self.sessions = SessionManager(self.registry)
        self.router = RelayRouter(self.sessions)
        self.presence = PresenceCounter()

    # connection lifecycle

    def connect(self, channel_name: str, outbox: Outbox) -> Connection:
        connection = self.registry.get(channel_name)
        if connection is not None:
            return connection
        connection = self.registry.add(channel_name)
        self.presence.increment(outbox)
        logger.info("Connection %s registered (%d online)", channel_name, self.presence.count)
        return connection

    def disconnect(self, channel_name: str, outbox: Outbox) -> bool:
        connection = self.registry.get(channel_name)
        if connection is None:
            return False
        self.end_session(channel_name, outbox)
        self.queues.purge(channel_name)
        self.registry.remove(channel_name)
        self.presence.decrement(outbox)
        logger.info("Connection %s gone (%d online)", channel_name, self.presence.count)
        return True

    # matchmaking

    def request_match(self, channel_name: str, mode: str, interests: Any, outbox: Outbox) -> Optional[Session]:
        if mode not in MODES:
            raise InvalidModeError(mode)
        connection = self._require(channel_name)

        # stop-then-restart keeps a connection in at most one queue or session
        if connection.room_id is not None:
            self.end_session(channel_name, outbox)
        self.queues.purge(channel_name)

        connection.mode = mode
        connection.interests = interests

        partner_name = self.queues.take(mode, is_live=self._is_matchable)
        if partner_name is None:
            self.queues.enqueue(mode, channel_name)
            outbox.send(channel_name, EVENT_WAITING, {"message": f"Looking for a {mode} partner..."})
            logger.debug("Connection %s waiting for %s partner", channel_name, mode)
            return None

        partner = self.registry.get(partner_name)
        return self.sessions.create(connection, partner, mode, outbox)

    def end_session(self, channel_name: str, outbox: Outbox, room_id: Optional[str] = None) -> Optional[Session]:
        connection = self.registry.get(channel_name)
        if connection is None:
            self.queues.purge(channel_name)
            return None
        connection.touch()

        ended = None
        if room_id is None or room_id == connection.room_id:
            ended = self.sessions.end(connection, outbox)
        else:
            logger.debug("Ignoring leave for stale room %s from %s", room_id, channel_name)

        members = ended.members if ended else (channel_name,)
        self.queues.purge(*members)
        return ended

    # relay

    def relay_message(self, channel_name: str, room_id: Optional[str], chat: ChatText, outbox: Outbox) -> bool:
        sender = self._touch(channel_name)
        payload = {"text": chat.text, "sender": PARTNER_SENDER}
        return self.router.relay(sender, room_id, EVENT_MESSAGE, payload, outbox)

    def relay_signal(self, channel_name: str, room_id: Optional[str], payload: dict, outbox: Outbox) -> bool:
        sender = self._touch(channel_name)
        return self.router.relay(sender, room_id, EVENT_SIGNAL, payload, outbox)

    # lookups

    def partner_of(self, channel_name: str) -> Optional[str]:
        connection = self.registry.get(channel_name)
        if connection is None:
            return None
        session = self.sessions.current(connection)
        if session is None:
            return None
        return session.partner_of(channel_name)

    def state_of(self, channel_name: str) -> str:
        connection = self.registry.get(channel_name)
        if connection is None:
            return STATE_GONE
        if self.sessions.current(connection) is not None:
            return STATE_PAIRED
        if channel_name in self.queues:
            return STATE_WAITING
        return STATE_IDLE

    def snapshot(self) -> dict:
        return {
            "online": self.presence.count,
            "waiting": self.queues.sizes(),
            "sessions": len(self.sessions),
        }

    def _require(self, channel_name: str) -> Connection:
        connection = self._touch(channel_name)
        if connection is None:
            raise UnknownConnectionError(channel_name)
        return connection

    def _touch(self, channel_name: str) -> Optional[Connection]:
        connection = self.registry.get(channel_name)
        if connection is not None:
            connection.touch()
        return connection

    def _is_matchable(self, channel_name: str) -> bool:
        connection = self.registry.get(channel_name)
        return connection is not None and connection.room_id is None
