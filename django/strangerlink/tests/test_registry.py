from matchmaking.constants import EVENT_UPDATE_COUNT
from matchmaking.events import Envelope, Outbox
from matchmaking.presence import PresenceCounter
from matchmaking.registry import ConnectionRegistry


def test_registry_add_get_remove():
    registry = ConnectionRegistry()
    connection = registry.add("a")

    assert registry.get("a") is connection
    assert "a" in registry
    assert len(registry) == 1
    assert connection.mode is None
    assert connection.room_id is None

    assert registry.remove("a") is connection
    assert registry.remove("a") is None
    assert registry.get("a") is None


def test_touch_updates_liveness():
    connection = ConnectionRegistry().add("a")
    before = connection.last_seen

    connection.touch()

    assert connection.last_seen >= before
    assert connection.connected_at <= connection.last_seen


def test_presence_broadcasts_every_change():
    presence = PresenceCounter()
    outbox = Outbox()

    presence.increment(outbox)
    presence.increment(outbox)
    presence.decrement(outbox)

    assert presence.count == 1
    assert list(outbox) == [
        Envelope(EVENT_UPDATE_COUNT, 1),
        Envelope(EVENT_UPDATE_COUNT, 2),
        Envelope(EVENT_UPDATE_COUNT, 1),
    ]
    assert all(envelope.is_broadcast for envelope in outbox)


def test_presence_never_negative():
    presence = PresenceCounter()

    assert presence.decrement(Outbox()) == 0
