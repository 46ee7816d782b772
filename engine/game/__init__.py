"""Round sequencing and events."""

from engine.game.events import EventEmitter, EventType, GameEvent
from engine.game.phases import GamePhase, PhaseMachine, TransitionReason
from engine.game.round import RoundController, TableState

__all__ = [
    "EventEmitter",
    "EventType",
    "GameEvent",
    "GamePhase",
    "PhaseMachine",
    "TransitionReason",
    "RoundController",
    "TableState",
]
