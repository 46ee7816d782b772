"""Exception hierarchy for the rules engine."""


class EngineError(Exception):
    """Base class for all engine errors."""


class ShoeExhaustedError(EngineError, IndexError):
    """Raised when a card is drawn from an empty shoe."""


class InvariantViolation(EngineError):
    """
    A programmer error: the caller asked for something the rules forbid.

    These are never recovered from inside the engine.
    """


class IllegalActionError(InvariantViolation):
    """A player or dealer action that is not legal for the hand or phase."""


class BetAlreadySettledError(InvariantViolation):
    """Attempt to settle (or cancel) a bet that is no longer pending."""


class IllegalTransitionError(InvariantViolation):
    """Attempt to move the phase machine along an edge outside the legal table."""

    def __init__(self, current: object, target: object) -> None:
        super().__init__(f"Illegal phase transition: {current} -> {target}")
        self.current = current
        self.target = target


class ShoeOwnershipError(InvariantViolation):
    """A shoe was claimed by a second owner while still bound to the first."""


class RoundAbortedError(InvariantViolation):
    """Operation on a round that was aborted by shoe exhaustion."""
