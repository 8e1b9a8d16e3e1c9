"""
Per-mode waiting pools.

The default policy hands out the most recently enqueued connection first.
This is a stack, not a line: under a steady stream of new arrivals an early
arrival can wait indefinitely. Set MATCHMAKING_QUEUE_POLICY=fifo to match in
arrival order instead.
"""
from typing import Dict, Optional

from .constants import MODES, POLICY_FIFO, POLICY_LIFO, QUEUE_POLICIES
from .exceptions import InvalidModeError


class WaitingQueue:
    def __init__(self, mode: str, policy: str = POLICY_LIFO):
        if policy not in QUEUE_POLICIES:
            raise ValueError(f"Unknown queue policy: {policy!r}")
        self.mode = mode
        self.policy = policy
        # insertion-ordered, so both ends and arbitrary removal are O(1)
        self._entries: Dict[str, None] = {}

    def push(self, channel_name: str) -> None:
        self._entries.pop(channel_name, None)
        self._entries[channel_name] = None

    def pop(self) -> Optional[str]:
        if not self._entries:
            return None
        if self.policy == POLICY_FIFO:
            channel_name = next(iter(self._entries))
            del self._entries[channel_name]
            return channel_name
        channel_name, _ = self._entries.popitem()
        return channel_name

    def discard(self, channel_name: str) -> bool:
        if channel_name not in self._entries:
            return False
        del self._entries[channel_name]
        return True

    def __contains__(self, channel_name: str) -> bool:
        return channel_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))


class MatchmakingQueues:
    def __init__(self, policy: str = POLICY_LIFO):
        self.policy = policy
        self._queues = {mode: WaitingQueue(mode, policy) for mode in MODES}

    def for_mode(self, mode: str) -> WaitingQueue:
        try:
            return self._queues[mode]
        except KeyError:
            raise InvalidModeError(mode) from None

    def enqueue(self, mode: str, channel_name: str) -> None:
        self.purge(channel_name)
        self.for_mode(mode).push(channel_name)

    def take(self, mode: str, is_live=None) -> Optional[str]:
        """
        Remove and return a waiting partner for `mode`.
        Entries rejected by `is_live` are dropped on the way.
        """
        queue = self.for_mode(mode)
        while True:
            channel_name = queue.pop()
            if channel_name is None or is_live is None or is_live(channel_name):
                return channel_name

    def purge(self, *channel_names: str) -> bool:
        removed = False
        for channel_name in channel_names:
            for queue in self._queues.values():
                removed = queue.discard(channel_name) or removed
        return removed

    def mode_of(self, channel_name: str) -> Optional[str]:
        for mode, queue in self._queues.items():
            if channel_name in queue:
                return mode
        return None

    def sizes(self) -> Dict[str, int]:
        return {mode: len(queue) for mode, queue in sorted(self._queues.items())}

    def __contains__(self, channel_name: str) -> bool:
        return self.mode_of(channel_name) is not None
