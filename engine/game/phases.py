"""Round phase state machine."""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Callable

from transitions import EventData, Machine, MachineError

from engine.errors import IllegalTransitionError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 64


class GamePhase(Enum):
    """
    Phases of a round.

    Flow: BETTING → DEALING → PLAYER_TURN → DEALER_TURN → SETTLEMENT → CLEANUP
    """

    BETTING = "betting"
    DEALING = "dealing"
    PLAYER_TURN = "player_turn"
    DEALER_TURN = "dealer_turn"
    SETTLEMENT = "settlement"
    CLEANUP = "cleanup"

    def __str__(self) -> str:
        return self.value.replace("_", " ").title()


class TransitionReason(Enum):
    """Why the phase changed."""

    BET_PLACED = auto()
    CARDS_DEALT = auto()
    DEALER_BLACKJACK = auto()
    PLAYER_BLACKJACK = auto()
    PLAYER_DONE = auto()
    ALL_HANDS_RESOLVED = auto()
    DEALER_DONE = auto()
    NEW_ROUND = auto()
    CLEANUP = auto()
    ROUND_ABORTED = auto()
    TIMEOUT = auto()
    MANUAL = auto()


# Valid phase transitions
LEGAL_TRANSITIONS: dict[GamePhase, frozenset[GamePhase]] = {
    GamePhase.BETTING: frozenset({GamePhase.DEALING, GamePhase.CLEANUP}),
    GamePhase.DEALING: frozenset(
        {GamePhase.PLAYER_TURN, GamePhase.DEALER_TURN, GamePhase.SETTLEMENT}
    ),
    GamePhase.PLAYER_TURN: frozenset({GamePhase.DEALER_TURN, GamePhase.SETTLEMENT}),
    GamePhase.DEALER_TURN: frozenset({GamePhase.SETTLEMENT}),
    GamePhase.SETTLEMENT: frozenset({GamePhase.BETTING, GamePhase.CLEANUP}),
    GamePhase.CLEANUP: frozenset({GamePhase.BETTING}),
}


def is_legal_transition(from_phase: GamePhase, to_phase: GamePhase) -> bool:
    return to_phase in LEGAL_TRANSITIONS.get(from_phase, frozenset())


@dataclass(frozen=True)
class PhaseTransition:
    """A recorded phase change."""

    from_phase: GamePhase
    to_phase: GamePhase
    timestamp: datetime
    reason: TransitionReason


Clock = Callable[[], datetime]


class PhaseMachine:
    """
    Gatekeeper for the round sequence.

    Wraps a `transitions.Machine` with one `advance_to_<phase>` trigger per
    target phase, whose sources are taken from LEGAL_TRANSITIONS. Illegal
    targets raise `IllegalTransitionError` and leave the phase unchanged.
    """

    STATES = [phase.value for phase in GamePhase]

    TRANSITIONS = [
        {
            "trigger": f"advance_to_{target.value}",
            "source": [
                source.value
                for source, targets in LEGAL_TRANSITIONS.items()
                if target in targets
            ],
            "dest": target.value,
        }
        for target in GamePhase
    ]

    def __init__(
        self,
        initial: GamePhase = GamePhase.BETTING,
        clock: Clock | None = None,
        auto_advance: dict[GamePhase, float] | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        """
        Initialize the phase machine.

        Args:
            initial: Starting phase
            clock: Time source, injectable for tests
            auto_advance: Seconds after which `poll` leaves a phase on its own
            history_limit: Most recent transitions kept in `history`
        """
        self._clock = clock or datetime.now
        self._auto_advance = dict(auto_advance or {})
        self._history: deque[PhaseTransition] = deque(maxlen=max(1, history_limit))
        self._previous_phase: GamePhase | None = None
        self._phase_started_at = self._clock()

        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial=initial.value,
            auto_transitions=False,
            send_event=True,
            after_state_change="_record_transition",
            model_attribute="_machine_state",
        )

    @property
    def phase(self) -> GamePhase:
        """Current phase as enum."""
        return GamePhase(self._machine_state)  # type: ignore[attr-defined]

    @property
    def previous_phase(self) -> GamePhase | None:
        return self._previous_phase

    @property
    def phase_started_at(self) -> datetime:
        return self._phase_started_at

    @property
    def history(self) -> list[PhaseTransition]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def legal_targets(self) -> frozenset[GamePhase]:
        return LEGAL_TRANSITIONS[self.phase]

    def can_transition_to(self, phase: GamePhase) -> bool:
        return is_legal_transition(self.phase, phase)

    def transition_to(
        self,
        phase: GamePhase,
        reason: TransitionReason = TransitionReason.MANUAL,
    ) -> PhaseTransition:
        """
        Move to `phase`.

        Raises:
            IllegalTransitionError: If `phase` is not a legal successor
        """
        current = self.phase
        if not self.can_transition_to(phase):
            raise IllegalTransitionError(current.value, phase.value)
        try:
            self.trigger(f"advance_to_{phase.value}", reason=reason)  # type: ignore[attr-defined]
        except MachineError as exc:
            raise IllegalTransitionError(current.value, phase.value) from exc
        return self._history[-1]

    def _record_transition(self, event: EventData) -> None:
        now = self._clock()
        transition = PhaseTransition(
            from_phase=GamePhase(event.transition.source),
            to_phase=GamePhase(event.transition.dest),
            timestamp=now,
            reason=event.kwargs.get("reason", TransitionReason.MANUAL),
        )
        self._history.append(transition)
        self._previous_phase = transition.from_phase
        self._phase_started_at = now
        logger.info(
            "Phase %s -> %s (%s)",
            transition.from_phase.value,
            transition.to_phase.value,
            transition.reason.name.lower(),
        )

    def set_auto_advance(self, phase: GamePhase, delay: float | None) -> None:
        """Enable (delay in seconds) or disable (None) auto-advance for a phase."""
        if delay is None:
            self._auto_advance.pop(phase, None)
        else:
            self._auto_advance[phase] = max(0.0, delay)

    def poll(self, now: datetime | None = None) -> PhaseTransition | None:
        """
        Fire a timeout transition if one is due.

        Only phases with an auto-advance delay and exactly one legal
        successor advance; anything else returns None.
        """
        delay = self._auto_advance.get(self.phase)
        if delay is None:
            return None
        targets = self.legal_targets()
        if len(targets) != 1:
            return None
        now = now or self._clock()
        if (now - self._phase_started_at).total_seconds() < delay:
            return None
        (target,) = targets
        return self.transition_to(target, TransitionReason.TIMEOUT)
