import asyncio
import logging
from typing import Any, Optional

from channels.exceptions import ChannelFull
from channels.layers import get_channel_layer
from django.conf import settings

from .constants import POLICY_LIFO, PRESENCE_GROUP
from .events import Outbox
from .payloads import ChatText
from .sessions import Session
from .state import MatchmakingState

logger = logging.getLogger(__name__)


class Lobby:
    """
    Async front of MatchmakingState for the WebSocket consumers.

    One lock serializes every operation. The outbox of an operation is
    delivered through the channel layer before the lock is released, so
    clients observe events in the order they were produced.
    """

    def __init__(self, queue_policy: str = POLICY_LIFO, channel_layer=None):
        self.state = MatchmakingState(queue_policy=queue_policy)
        self._channel_layer = channel_layer
        self._lock = asyncio.Lock()

    async def connect(self, channel_name: str) -> None:
        await self._run(self.state.connect, channel_name)

    async def disconnect(self, channel_name: str) -> None:
        await self._run(self.state.disconnect, channel_name)

    async def request_match(self, channel_name: str, mode: str, interests: Any = "") -> Optional[Session]:
        return await self._run(self.state.request_match, channel_name, mode, interests)

    async def leave(self, channel_name: str, room_id: Optional[str] = None) -> Optional[Session]:
        return await self._run(self.state.end_session, channel_name, room_id=room_id)

    async def relay_message(self, channel_name: str, room_id: Optional[str], chat: ChatText) -> bool:
        return await self._run(self.state.relay_message, channel_name, room_id, chat)

    async def relay_signal(self, channel_name: str, room_id: Optional[str], payload: dict) -> bool:
        return await self._run(self.state.relay_signal, channel_name, room_id, payload)

    async def reported_partner(self, channel_name: str, room_id: Optional[str]) -> Optional[str]:
        async with self._lock:
            connection = self.state.registry.get(channel_name)
            if connection is None or room_id not in (None, connection.room_id):
                return None
            return self.state.partner_of(channel_name)

    async def _run(self, operation, *args, **kwargs):
        async with self._lock:
            outbox = Outbox()
            result = operation(*args, outbox=outbox, **kwargs)
            await self._deliver(outbox)
        return result

    async def _deliver(self, outbox: Outbox) -> None:
        layer = self._channel_layer or get_channel_layer()
        for envelope in outbox:
            try:
                if envelope.is_broadcast:
                    await layer.group_send(PRESENCE_GROUP, envelope.as_message())
                else:
                    await layer.send(envelope.channel_name, envelope.as_message())
            except ChannelFull:
                logger.warning(
                    "Dropping %s for %s: channel full",
                    envelope.event,
                    envelope.channel_name or PRESENCE_GROUP,
                )


_lobby = None


def get_lobby() -> Lobby:
    global _lobby
    if _lobby is None:
        _lobby = Lobby(queue_policy=getattr(settings, "MATCHMAKING_QUEUE_POLICY", POLICY_LIFO))
    return _lobby
