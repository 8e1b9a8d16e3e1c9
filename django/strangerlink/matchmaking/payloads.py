"""
Typed views of the payloads clients exchange through the relay.

The relay itself never looks inside them; these only exist at the WebSocket
boundary so handlers work with a known shape.
"""
from dataclasses import dataclass
from typing import Any, Union

from .constants import SIGNAL_ANSWER, SIGNAL_CANDIDATE, SIGNAL_OFFER


@dataclass(frozen=True)
class Offer:
    sdp: Any
    kind = SIGNAL_OFFER


@dataclass(frozen=True)
class Answer:
    sdp: Any
    kind = SIGNAL_ANSWER


@dataclass(frozen=True)
class Candidate:
    candidate: Any
    kind = SIGNAL_CANDIDATE


@dataclass(frozen=True)
class ChatText:
    text: str
    kind = "text"


SignalPayload = Union[Offer, Answer, Candidate]


def build_signal(kind: str, sdp: Any = None, candidate: Any = None) -> SignalPayload:
    if kind == SIGNAL_OFFER:
        return Offer(sdp=sdp)
    if kind == SIGNAL_ANSWER:
        return Answer(sdp=sdp)
    if kind == SIGNAL_CANDIDATE:
        return Candidate(candidate=candidate)
    raise ValueError(f"Unknown signal type: {kind!r}")
