import logging
from typing import Any, Optional

from .events import Outbox
from .registry import Connection
from .sessions import SessionManager

logger = logging.getLogger(__name__)


class RelayRouter:
    """
    Forwards a payload from one session member to the other.

    Payloads are opaque: nothing here parses, validates or throttles them.
    Traffic for a session the sender is not currently in is dropped.
    """

    def __init__(self, sessions: SessionManager):
        self.sessions = sessions

    def relay(
        self,
        sender: Optional[Connection],
        room_id: Optional[str],
        event: str,
        payload: Any,
        outbox: Outbox,
    ) -> bool:
        if sender is None:
            logger.debug("Dropping %s from unknown connection", event)
            return False

        session = self.sessions.current(sender)
        if session is None or session.id != room_id:
            logger.debug(
                "Dropping stale %s from %s for room %s",
                event,
                sender.channel_name,
                room_id,
            )
            return False

        outbox.send(session.partner_of(sender.channel_name), event, payload)
        return True
