import pytest

from matchmaking import lobby as lobby_module
from matchmaking.events import Outbox
from matchmaking.lobby import Lobby
from matchmaking.state import MatchmakingState


@pytest.fixture(autouse=True)
def in_memory_channel_layer(settings):
    settings.CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
    }


@pytest.fixture(autouse=True)
def lobby(monkeypatch):
    """Fresh process-wide lobby for every test."""
    fresh = Lobby()
    monkeypatch.setattr(lobby_module, "_lobby", fresh)
    return fresh


@pytest.fixture
def state():
    return MatchmakingState()


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def connected(state):
    def _connect(*channel_names):
        for name in channel_names:
            state.connect(name, Outbox())
        return state

    return _connect
