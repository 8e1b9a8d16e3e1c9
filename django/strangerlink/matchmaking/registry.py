from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Connection:
    channel_name: str
    mode: Optional[str] = None
    interests: Any = ""
    room_id: Optional[str] = None
    connected_at: datetime = field(default_factory=_now)
    last_seen: datetime = field(default_factory=_now)

    def touch(self) -> None:
        self.last_seen = _now()


class ConnectionRegistry:
    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def add(self, channel_name: str) -> Connection:
        connection = Connection(channel_name=channel_name)
        self._connections[channel_name] = connection
        return connection

    def get(self, channel_name: Optional[str]) -> Optional[Connection]:
        if channel_name is None:
            return None
        return self._connections.get(channel_name)

    def remove(self, channel_name: str) -> Optional[Connection]:
        return self._connections.pop(channel_name, None)

    def __contains__(self, channel_name: str) -> bool:
        return channel_name in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))
