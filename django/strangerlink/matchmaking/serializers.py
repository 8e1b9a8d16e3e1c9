from django.conf import settings
from rest_framework import serializers

from .constants import MODE_CHOICES, SIGNAL_ANSWER, SIGNAL_CANDIDATE, SIGNAL_OFFER, SIGNAL_TYPES
from .payloads import ChatText, build_signal


class FindPartnerSerializer(serializers.Serializer):
    mode = serializers.ChoiceField(choices=MODE_CHOICES)
    # passthrough only, matching never looks at it
    interests = serializers.JSONField(required=False, default="")


class LeaveRoomSerializer(serializers.Serializer):
    roomId = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)

    def validate_roomId(self, value):
        return value or None


class MessageSerializer(serializers.Serializer):
    room = serializers.CharField(allow_null=True, required=False, default=None)
    # relayed as typed, surrounding whitespace included
    text = serializers.CharField(trim_whitespace=False)

    def validate_text(self, value):
        max_length = getattr(settings, "CHAT_MAX_MESSAGE_LENGTH", 2000)
        if max_length and len(value) > max_length:
            raise serializers.ValidationError(f"text exceeds {max_length} characters")
        return value

    def to_chat(self) -> ChatText:
        return ChatText(text=self.validated_data["text"])


class SignalSerializer(serializers.Serializer):
    room = serializers.CharField(allow_null=True, required=False, default=None)
    type = serializers.ChoiceField(choices=SIGNAL_TYPES, required=False)
    sdp = serializers.JSONField(required=False)
    candidate = serializers.JSONField(required=False)

    def validate(self, attrs):
        kind = attrs.get("type")
        if not kind:
            # candidates are sent without a type, only the candidate field
            if attrs.get("candidate") is None:
                raise serializers.ValidationError("type or candidate is required")
            kind = SIGNAL_CANDIDATE
        if kind in {SIGNAL_OFFER, SIGNAL_ANSWER} and attrs.get("sdp") is None:
            raise serializers.ValidationError(f"sdp is required for {kind}")
        if kind == SIGNAL_CANDIDATE and attrs.get("candidate") is None:
            raise serializers.ValidationError("candidate is required")
        attrs["type"] = kind
        return attrs

    def to_signal(self):
        data = self.validated_data
        return build_signal(data["type"], sdp=data.get("sdp"), candidate=data.get("candidate"))

    def to_payload(self) -> dict:
        """The inbound object as sent, tagged with its resolved type."""
        payload = dict(self.initial_data)
        payload["type"] = self.validated_data["type"]
        return payload


class ReportSerializer(serializers.Serializer):
    room = serializers.CharField(allow_null=True, required=False, default=None)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
