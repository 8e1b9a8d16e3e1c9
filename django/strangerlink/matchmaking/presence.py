from .constants import EVENT_UPDATE_COUNT
from .events import Outbox


class PresenceCounter:
    def __init__(self):
        self.count = 0

    def increment(self, outbox: Outbox) -> int:
        self.count += 1
        self._broadcast(outbox)
        return self.count

    def decrement(self, outbox: Outbox) -> int:
        self.count = max(self.count - 1, 0)
        self._broadcast(outbox)
        return self.count

    def _broadcast(self, outbox: Outbox) -> None:
        outbox.broadcast(EVENT_UPDATE_COUNT, self.count)
