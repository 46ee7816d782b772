"""
Round events for the presentation layer.

The controller narrates each round as a stream of `GameEvent`s. Listeners
subscribe per event type or to everything; the emitter also keeps a short
history so a late listener can catch up on the current round.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 256


class EventType(Enum):
    """What happened at the table."""

    ROUND_STARTED = "round_started"
    ROUND_ENDED = "round_ended"
    ROUND_ABORTED = "round_aborted"
    PHASE_CHANGED = "phase_changed"
    SHOE_SHUFFLED = "shoe_shuffled"

    BET_PLACED = "bet_placed"
    SIDE_BET_PLACED = "side_bet_placed"
    BET_SETTLED = "bet_settled"
    SIDE_BET_SETTLED = "side_bet_settled"

    CARD_DEALT = "card_dealt"
    PLAYER_HIT = "player_hit"
    PLAYER_STAND = "player_stand"
    PLAYER_DOUBLE = "player_double"
    PLAYER_SPLIT = "player_split"
    PLAYER_SURRENDER = "player_surrender"
    PLAYER_BLACKJACK = "player_blackjack"
    PLAYER_BUSTS = "player_busts"

    INSURANCE_OFFERED = "insurance_offered"
    INSURANCE_TAKEN = "insurance_taken"
    INSURANCE_DECLINED = "insurance_declined"

    DEALER_REVEALS = "dealer_reveals"
    DEALER_STANDS = "dealer_stands"
    DEALER_BUSTS = "dealer_busts"
    DEALER_BLACKJACK = "dealer_blackjack"


@dataclass(frozen=True)
class GameEvent:
    """One event with its payload, e.g. the card dealt or the payout made."""

    event_type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.event_type.value} {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventEmitter:
    """
    Fan-out of round events to listeners.

    Typed listeners run before catch-all ones. History is capped at
    `history_limit` events; the round controller also clears it when a new
    round starts.
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._listeners: dict[EventType | None, list[EventHandler]] = {}
        self._recent: deque[GameEvent] = deque(maxlen=max(1, history_limit))

    def subscribe(self, handler: EventHandler, event_type: EventType | None = None) -> None:
        """Listen to one event type, or to every event when `event_type` is None."""
        self._listeners.setdefault(event_type, []).append(handler)

    def unsubscribe(self, handler: EventHandler, event_type: EventType | None = None) -> None:
        listeners = self._listeners.get(event_type, [])
        if handler in listeners:
            listeners.remove(handler)

    def emit(self, event: GameEvent) -> None:
        self._recent.append(event)
        logger.debug("Event %s", event)
        for key in (event.event_type, None):
            for handler in list(self._listeners.get(key, ())):
                handler(event)

    def emit_new(self, event_type: EventType, **data: Any) -> GameEvent:
        event = GameEvent(event_type=event_type, data=data)
        self.emit(event)
        return event

    @property
    def history(self) -> list[GameEvent]:
        return list(self._recent)

    def of_type(self, event_type: EventType) -> list[GameEvent]:
        return [event for event in self._recent if event.event_type is event_type]

    def clear_history(self) -> None:
        self._recent.clear()
