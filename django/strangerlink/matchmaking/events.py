from dataclasses import dataclass
from typing import Any, Iterator, List, Optional


@dataclass(frozen=True)
class Envelope:
    event: str
    data: Any = None
    # None means broadcast to every connected client
    channel_name: Optional[str] = None

    @property
    def is_broadcast(self) -> bool:
        return self.channel_name is None

    def as_message(self) -> dict:
        return {"type": "lobby.event", "event": self.event, "data": self.data}


class Outbox:
    """Outbound events produced by one state operation, in emission order."""

    def __init__(self):
        self._envelopes: List[Envelope] = []

    def send(self, channel_name: str, event: str, data: Any = None) -> None:
        self._envelopes.append(Envelope(event=event, data=data, channel_name=channel_name))

    def broadcast(self, event: str, data: Any = None) -> None:
        self._envelopes.append(Envelope(event=event, data=data))

    def for_channel(self, channel_name: str) -> List[Envelope]:
        return [env for env in self._envelopes if env.channel_name == channel_name]

    def events(self) -> List[str]:
        return [env.event for env in self._envelopes]

    def __iter__(self) -> Iterator[Envelope]:
        return iter(self._envelopes)

    def __len__(self) -> int:
        return len(self._envelopes)
