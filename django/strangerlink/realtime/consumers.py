import json
import logging

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from rest_framework import serializers

from matchmaking.constants import (
    EVENT_ERROR,
    EVENT_FIND_PARTNER,
    EVENT_LEAVE_ROOM,
    EVENT_MESSAGE,
    EVENT_REPORT,
    EVENT_REPORT_RECEIVED,
    EVENT_SIGNAL,
    PRESENCE_GROUP,
)
from matchmaking.exceptions import MatchmakingError
from matchmaking.lobby import get_lobby
from matchmaking.serializers import (
    FindPartnerSerializer,
    LeaveRoomSerializer,
    MessageSerializer,
    ReportSerializer,
    SignalSerializer,
)
from matchmaking.tasks import record_report

logger = logging.getLogger(__name__)


class StrangerConsumer(AsyncWebsocketConsumer):
    """
    One anonymous visitor. Frames are {"event": name, "data": payload} in both
    directions; everything stateful happens in the lobby.
    """

    @property
    def lobby(self):
        return get_lobby()

    async def connect(self):
        await self.channel_layer.group_add(PRESENCE_GROUP, self.channel_name)
        await self.accept()
        await self.lobby.connect(self.channel_name)

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(PRESENCE_GROUP, self.channel_name)
        await self.lobby.disconnect(self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        try:
            msg = json.loads(text_data)
        except (TypeError, json.JSONDecodeError):
            await self._send_error(None, "Malformed frame")
            return
        if not isinstance(msg, dict):
            await self._send_error(None, "Malformed frame")
            return

        event = msg.get("event")
        handler = self._handlers().get(event)
        if handler is None:
            await self._send_error(event, "Unknown event")
            return

        try:
            await handler(msg.get("data"))
        except serializers.ValidationError as exc:
            await self._send_error(event, exc.detail)
        except MatchmakingError as exc:
            await self._send_error(event, str(exc))
        except Exception:
            logger.exception("Failed to handle %s from %s", event, self.channel_name)
            await self._send_error(event, "internal error")

    def _handlers(self):
        return {
            EVENT_FIND_PARTNER: self.find_partner,
            EVENT_LEAVE_ROOM: self.leave_room,
            EVENT_MESSAGE: self.chat_message,
            EVENT_SIGNAL: self.signal,
            EVENT_REPORT: self.report,
        }

    async def find_partner(self, data):
        s = FindPartnerSerializer(data=data or {})
        s.is_valid(raise_exception=True)
        await self.lobby.request_match(
            self.channel_name,
            s.validated_data["mode"],
            s.validated_data.get("interests", ""),
        )

    async def leave_room(self, data):
        # older clients send the bare room id instead of an object
        if data is None or isinstance(data, str):
            data = {"roomId": data}
        s = LeaveRoomSerializer(data=data)
        s.is_valid(raise_exception=True)
        await self.lobby.leave(self.channel_name, s.validated_data["roomId"])

    async def chat_message(self, data):
        s = MessageSerializer(data=data or {})
        s.is_valid(raise_exception=True)
        await self.lobby.relay_message(self.channel_name, s.validated_data["room"], s.to_chat())

    async def signal(self, data):
        s = SignalSerializer(data=data or {})
        s.is_valid(raise_exception=True)
        signal = s.to_signal()
        relayed = await self.lobby.relay_signal(self.channel_name, s.validated_data["room"], s.to_payload())
        if relayed:
            logger.debug("Relayed %s from %s", signal.kind, self.channel_name)

    async def report(self, data):
        s = ReportSerializer(data=data or {})
        s.is_valid(raise_exception=True)
        room_id = s.validated_data["room"]
        reported = await self.lobby.reported_partner(self.channel_name, room_id)
        if reported:
            await sync_to_async(record_report.delay)(
                self.channel_name,
                reported,
                room_id,
                s.validated_data["reason"],
            )
        await self._send_event(EVENT_REPORT_RECEIVED)

    async def lobby_event(self, event):
        await self._send_event(event["event"], event.get("data"))

    async def _send_event(self, name, data=None):
        await self.send(text_data=json.dumps({"event": name, "data": data}))

    async def _send_error(self, event, detail):
        await self._send_event(EVENT_ERROR, {"event": event, "detail": detail})
