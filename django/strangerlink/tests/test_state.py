"""
Tests for MatchmakingState, the single owner of registry, queues, sessions
and presence.
"""

import pytest

from matchmaking.constants import (
    EVENT_MAKE_OFFER,
    EVENT_MATCH_FOUND,
    EVENT_MESSAGE,
    EVENT_PARTNER_DISCONNECTED,
    EVENT_SIGNAL,
    EVENT_UPDATE_COUNT,
    EVENT_WAITING,
    MODE_TEXT,
    MODE_VIDEO,
    POLICY_FIFO,
    STATE_GONE,
    STATE_IDLE,
    STATE_PAIRED,
    STATE_WAITING,
)
from matchmaking.events import Envelope, Outbox
from matchmaking.exceptions import InvalidModeError, UnknownConnectionError
from matchmaking.payloads import ChatText
from matchmaking.serializers import MessageSerializer
from matchmaking.state import MatchmakingState


def _assert_exclusive(state):
    """Every connection is in at most one of: text queue, video queue, a session."""
    for connection in state.registry:
        places = 0
        places += connection.channel_name in state.queues.for_mode(MODE_TEXT)
        places += connection.channel_name in state.queues.for_mode(MODE_VIDEO)
        places += state.sessions.current(connection) is not None
        assert places <= 1, connection.channel_name


def _references(state, channel_name):
    in_queue = channel_name in state.queues
    in_session = any(session.has_member(channel_name) for session in state.sessions)
    return in_queue or in_session


class TestConnectionLifecycle:
    def test_connect_counts_and_broadcasts(self, state, outbox):
        state.connect("a", outbox)
        state.connect("b", outbox)

        assert state.presence.count == 2
        assert list(outbox) == [
            Envelope(EVENT_UPDATE_COUNT, 1),
            Envelope(EVENT_UPDATE_COUNT, 2),
        ]

    def test_connect_twice_counts_once(self, state, outbox):
        state.connect("a", outbox)
        state.connect("a", outbox)

        assert state.presence.count == 1
        assert len(outbox) == 1

    def test_disconnect_unknown_is_noop(self, state, outbox):
        assert state.disconnect("ghost", outbox) is False
        assert len(outbox) == 0

    def test_state_transitions(self, connected):
        state = connected("a", "b")
        assert state.state_of("a") == STATE_IDLE

        state.request_match("a", MODE_TEXT, "", Outbox())
        assert state.state_of("a") == STATE_WAITING

        state.request_match("b", MODE_TEXT, "", Outbox())
        assert state.state_of("a") == STATE_PAIRED
        assert state.state_of("b") == STATE_PAIRED

        state.end_session("b", Outbox())
        assert state.state_of("a") == STATE_IDLE
        assert state.state_of("b") == STATE_IDLE

        state.disconnect("a", Outbox())
        assert state.state_of("a") == STATE_GONE


class TestRequestMatch:
    def test_waiting_acknowledgment(self, connected):
        state = connected("a")
        outbox = Outbox()

        assert state.request_match("a", MODE_TEXT, ["music"], outbox) is None

        assert list(outbox) == [
            Envelope(EVENT_WAITING, {"message": "Looking for a text partner..."}, "a"),
        ]
        assert state.registry.get("a").mode == MODE_TEXT
        assert state.registry.get("a").interests == ["music"]

    def test_pairing_atomicity(self, connected):
        state = connected("a", "b")
        state.request_match("a", MODE_TEXT, "", Outbox())
        outbox = Outbox()

        session = state.request_match("b", MODE_TEXT, "", outbox)

        assert set(session.members) == {"a", "b"}
        assert len(state.sessions) == 1
        assert len(state.queues.for_mode(MODE_TEXT)) == 0
        assert outbox.for_channel("a") == [Envelope(EVENT_MATCH_FOUND, {"roomId": session.id}, "a")]
        assert outbox.for_channel("b") == [Envelope(EVENT_MATCH_FOUND, {"roomId": session.id}, "b")]

    def test_modes_never_cross(self, connected):
        state = connected("a", "b")
        state.request_match("a", MODE_TEXT, "", Outbox())

        assert state.request_match("b", MODE_VIDEO, "", Outbox()) is None
        assert state.state_of("a") == STATE_WAITING
        assert state.state_of("b") == STATE_WAITING
        _assert_exclusive(state)

    def test_most_recent_waiter_matched_first(self, connected):
        state = connected("a", "b", "c", "d")
        for name in ("a", "b", "c"):
            state.queues.enqueue(MODE_TEXT, name)

        session = state.request_match("d", MODE_TEXT, "", Outbox())

        assert set(session.members) == {"c", "d"}
        assert list(state.queues.for_mode(MODE_TEXT)) == ["a", "b"]
        assert state.state_of("a") == STATE_WAITING

    def test_fifo_policy_matches_oldest(self):
        state = MatchmakingState(queue_policy=POLICY_FIFO)
        for name in ("a", "b", "c", "d"):
            state.connect(name, Outbox())
        for name in ("a", "b", "c"):
            state.queues.enqueue(MODE_TEXT, name)

        session = state.request_match("d", MODE_TEXT, "", Outbox())

        assert set(session.members) == {"a", "d"}
        assert list(state.queues.for_mode(MODE_TEXT)) == ["b", "c"]

    def test_departed_waiter_is_skipped(self, connected):
        state = connected("a", "b", "c")
        for name in ("a", "b"):
            state.queues.enqueue(MODE_TEXT, name)
        state.registry.remove("b")

        session = state.request_match("c", MODE_TEXT, "", Outbox())

        assert set(session.members) == {"a", "c"}
        assert len(state.queues.for_mode(MODE_TEXT)) == 0

    def test_video_initiator_is_requester(self, connected):
        state = connected("a", "b")
        state.request_match("a", MODE_VIDEO, "", Outbox())
        outbox = Outbox()

        session = state.request_match("b", MODE_VIDEO, "", outbox)

        assert session.initiator == "b"
        assert [env.event for env in outbox.for_channel("b")] == [EVENT_MATCH_FOUND, EVENT_MAKE_OFFER]
        assert [env.event for env in outbox.for_channel("a")] == [EVENT_MATCH_FOUND]

    def test_repeat_request_while_waiting_does_not_duplicate(self, connected):
        state = connected("a")
        state.request_match("a", MODE_TEXT, "", Outbox())
        state.request_match("a", MODE_VIDEO, "", Outbox())

        assert state.queues.sizes() == {MODE_TEXT: 0, MODE_VIDEO: 1}
        _assert_exclusive(state)

    def test_request_while_paired_restarts(self, connected):
        state = connected("a", "b", "c")
        state.request_match("a", MODE_TEXT, "", Outbox())
        old = state.request_match("b", MODE_TEXT, "", Outbox())
        state.request_match("c", MODE_TEXT, "", Outbox())
        outbox = Outbox()

        new = state.request_match("a", MODE_TEXT, "", outbox)

        assert old.id not in state.sessions
        assert set(new.members) == {"a", "c"}
        assert Envelope(EVENT_PARTNER_DISCONNECTED, None, "b") in list(outbox)
        assert state.state_of("b") == STATE_IDLE
        _assert_exclusive(state)

    def test_invalid_mode_leaves_state_untouched(self, connected):
        state = connected("a")
        outbox = Outbox()

        with pytest.raises(InvalidModeError):
            state.request_match("a", "audio", "", outbox)

        assert len(outbox) == 0
        assert state.registry.get("a").mode is None
        assert state.state_of("a") == STATE_IDLE

    def test_unknown_connection(self, state):
        with pytest.raises(UnknownConnectionError):
            state.request_match("ghost", MODE_TEXT, "", Outbox())


class TestEndSession:
    def test_stop_notifies_partner(self, connected):
        state = connected("a", "b")
        state.request_match("a", MODE_TEXT, "", Outbox())
        session = state.request_match("b", MODE_TEXT, "", Outbox())
        outbox = Outbox()

        assert state.end_session("a", outbox, room_id=session.id) == session

        assert list(outbox) == [Envelope(EVENT_PARTNER_DISCONNECTED, None, "b")]
        assert state.registry.get("a").room_id is None
        assert state.registry.get("b").room_id is None

    def test_idempotent_teardown(self, connected):
        state = connected("a", "b")
        state.request_match("a", MODE_TEXT, "", Outbox())
        state.request_match("b", MODE_TEXT, "", Outbox())
        state.end_session("a", Outbox())
        outbox = Outbox()

        assert state.end_session("a", outbox) is None
        assert state.end_session("b", outbox) is None
        assert len(outbox) == 0
        assert len(state.sessions) == 0

    def test_stale_room_id_is_ignored(self, connected):
        state = connected("a", "b")
        state.request_match("a", MODE_TEXT, "", Outbox())
        session = state.request_match("b", MODE_TEXT, "", Outbox())
        outbox = Outbox()

        assert state.end_session("a", outbox, room_id="room_old") is None

        assert len(outbox) == 0
        assert state.sessions.get(session.id) is session

    def test_leave_while_waiting_purges_queue(self, connected):
        state = connected("a")
        state.request_match("a", MODE_VIDEO, "", Outbox())

        state.end_session("a", Outbox())

        assert state.state_of("a") == STATE_IDLE
        assert "a" not in state.queues


class TestRelay:
    def _paired(self, connected, mode=MODE_TEXT):
        state = connected("a", "b", "c")
        state.request_match("a", mode, "", Outbox())
        session = state.request_match("b", mode, "", Outbox())
        return state, session

    def test_chat_reaches_partner_tagged_as_stranger(self, connected):
        state, session = self._paired(connected)
        outbox = Outbox()

        assert state.relay_message("a", session.id, ChatText("hi"), outbox)

        assert list(outbox) == [Envelope(EVENT_MESSAGE, {"text": "hi", "sender": "stranger"}, "b")]

    def test_signal_forwarded_as_sent(self, connected):
        state, session = self._paired(connected, MODE_VIDEO)
        offer = {"room": session.id, "type": "offer", "sdp": {"type": "offer", "sdp": "v=0"}, "meta": 1}
        candidate = {"room": session.id, "type": "candidate", "candidate": {"candidate": "c1"}}
        outbox = Outbox()

        state.relay_signal("b", session.id, offer, outbox)
        state.relay_signal("a", session.id, candidate, outbox)

        assert list(outbox) == [
            Envelope(EVENT_SIGNAL, offer, "a"),
            Envelope(EVENT_SIGNAL, candidate, "b"),
        ]

    def test_chat_whitespace_kept(self, connected):
        state, session = self._paired(connected)
        s = MessageSerializer(data={"room": session.id, "text": "  hi  "})
        assert s.is_valid(), s.errors
        outbox = Outbox()

        state.relay_message("a", session.id, s.to_chat(), outbox)

        assert list(outbox) == [Envelope(EVENT_MESSAGE, {"text": "  hi  ", "sender": "stranger"}, "b")]

    def test_outsider_cannot_inject(self, connected):
        state, session = self._paired(connected)
        outbox = Outbox()

        assert state.relay_message("c", session.id, ChatText("hi"), outbox) is False
        assert state.relay_message("ghost", session.id, ChatText("hi"), outbox) is False
        assert len(outbox) == 0


class TestDisconnect:
    def test_paired_disconnect_cleans_everything(self, connected):
        state = connected("a", "b")
        state.request_match("a", MODE_TEXT, "", Outbox())
        state.request_match("b", MODE_TEXT, "", Outbox())
        outbox = Outbox()

        assert state.disconnect("a", outbox)

        assert outbox.events() == [EVENT_PARTNER_DISCONNECTED, EVENT_UPDATE_COUNT]
        assert not _references(state, "a")
        assert "a" not in state.registry
        assert state.state_of("b") == STATE_IDLE
        assert state.presence.count == 1

    def test_disconnect_twice(self, connected):
        state = connected("a")
        state.disconnect("a", Outbox())
        outbox = Outbox()

        assert state.disconnect("a", outbox) is False
        assert len(outbox) == 0
        assert state.presence.count == 0

    def test_orphan_free_under_mixed_activity(self, connected):
        names = [f"c{i}" for i in range(8)]
        state = connected(*names)
        for i, name in enumerate(names):
            state.request_match(name, MODE_TEXT if i % 2 else MODE_VIDEO, "", Outbox())
            _assert_exclusive(state)

        for name in names[::3]:
            state.disconnect(name, Outbox())
            _assert_exclusive(state)
            assert not _references(state, name)

        for session in state.sessions:
            for member in session.members:
                assert state.registry.get(member).room_id == session.id


def test_snapshot(connected):
    state = connected("a", "b", "c")
    state.request_match("a", MODE_TEXT, "", Outbox())
    state.request_match("b", MODE_TEXT, "", Outbox())
    state.request_match("c", MODE_VIDEO, "", Outbox())

    assert state.snapshot() == {
        "online": 3,
        "waiting": {MODE_TEXT: 0, MODE_VIDEO: 1},
        "sessions": 1,
    }
