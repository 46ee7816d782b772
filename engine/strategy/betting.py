"""
Progressive betting strategies.

A strategy holds configuration only. Its progression state is a fold over
the settled main bets: `get_next_bet` replays a whole history, while a
`ProgressionTracker` folds bets in as they settle, so long sessions pay
once per bet. Outputs are clamped the same way for all strategies: first
into the table range, then down to the bankroll.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, Iterable, Sequence

from engine.bets import Bet, BetStatus
from engine.rules import TableLimits, clamp

logger = logging.getLogger(__name__)


class BetOutcome(Enum):
    """How a settled bet moves a progression."""

    WIN = "win"
    LOSS = "loss"
    NEUTRAL = "neutral"

    @classmethod
    def of(cls, bet: Bet) -> "BetOutcome":
        if bet.status is BetStatus.WON:
            return cls.WIN
        if bet.status in (BetStatus.LOST, BetStatus.SURRENDERED):
            return cls.LOSS
        return cls.NEUTRAL


def settled_main_bets(bets: Iterable[Bet]) -> list[Bet]:
    """Final main bets in the order they were placed."""
    return [bet for bet in bets if not bet.is_pending and not bet.is_side_bet]


def decisive_outcomes(bets: Iterable[Bet]) -> list[BetOutcome]:
    """Wins and losses only; pushes and cancelled bets do not move a progression."""
    outcomes = (BetOutcome.of(bet) for bet in settled_main_bets(bets))
    return [outcome for outcome in outcomes if outcome is not BetOutcome.NEUTRAL]


def clamp_bet(amount: Decimal, bankroll: Decimal, table_limits: TableLimits) -> Decimal:
    """Clamp into [minimum, maximum] and then to what the bankroll covers."""
    amount = clamp(Decimal(str(amount)), table_limits.minimum_bet, table_limits.maximum_bet)
    return max(Decimal("0"), min(amount, Decimal(str(bankroll))))


@lru_cache(maxsize=None)
def fibonacci(index: int) -> int:
    """Fibonacci term at `index`, starting 1, 1, 2, ..."""
    previous, current = 0, 1
    for _ in range(index):
        previous, current = current, previous + current
    return current


class BettingStrategy(ABC):
    """
    Base class for betting progressions.

    Subclasses define the progression as a fold: `initial_state`, `step`
    (or `advance` when the bet itself matters) and `amount` on the
    unclamped betting unit. The clamp is applied here so no strategy can
    skip it.
    """

    key: str = ""
    name: str = ""

    def __init__(self, base_unit: Decimal | int | None = None) -> None:
        self.base_unit = Decimal(str(base_unit)) if base_unit is not None else None

    def unit(self, table_limits: TableLimits) -> Decimal:
        """Betting unit: the configured base or the table minimum."""
        return self.base_unit if self.base_unit is not None else table_limits.minimum_bet

    def initial_state(self) -> Any:
        return None

    def advance(self, state: Any, bet: Bet) -> Any:
        """Fold one settled main bet into the progression state."""
        outcome = BetOutcome.of(bet)
        if outcome is BetOutcome.NEUTRAL:
            return state
        return self.step(state, outcome)

    def step(self, state: Any, outcome: BetOutcome) -> Any:
        return state

    def replay(self, outcomes: Iterable[BetOutcome]) -> Any:
        """State after a run of decisive outcomes."""
        state = self.initial_state()
        for outcome in outcomes:
            state = self.step(state, outcome)
        return state

    @abstractmethod
    def amount(self, state: Any, unit: Decimal) -> Decimal:
        """Unclamped next wager for a progression state."""

    def get_next_bet(
        self,
        previous_bets: Sequence[Bet],
        bankroll: Decimal,
        table_limits: TableLimits,
    ) -> Decimal:
        """
        Compute the next wager by replaying a full history.

        Args:
            previous_bets: Bet history, oldest first; pending and side bets are ignored
            bankroll: Funds available for the wager
            table_limits: Table minimum and maximum

        Returns:
            The clamped wager
        """
        state = self.initial_state()
        for bet in settled_main_bets(previous_bets):
            state = self.advance(state, bet)
        return clamp_bet(self.amount(state, self.unit(table_limits)), bankroll, table_limits)

    def tracker(self) -> "ProgressionTracker":
        return ProgressionTracker(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_unit={self.base_unit})"


class ProgressionTracker:
    """Running progression state for one session, fed bets as they settle."""

    def __init__(self, strategy: BettingStrategy) -> None:
        self.strategy = strategy
        self.state = strategy.initial_state()

    def observe(self, bets: Iterable[Bet]) -> None:
        """Fold in newly settled bets; pending and side bets are skipped."""
        for bet in settled_main_bets(bets):
            self.state = self.strategy.advance(self.state, bet)

    def next_bet(self, bankroll: Decimal, table_limits: TableLimits) -> Decimal:
        raw = self.strategy.amount(self.state, self.strategy.unit(table_limits))
        return clamp_bet(raw, bankroll, table_limits)


class FlatBetting(BettingStrategy):
    """Same wager every round."""

    key = "flat"
    name = "Flat"

    def amount(self, state: None, unit: Decimal) -> Decimal:
        return unit


class Martingale(BettingStrategy):
    """Double after each loss, back to one unit after a win."""

    key = "martingale"
    name = "Martingale"

    def __init__(self, base_unit: Decimal | int | None = None, max_steps: int = 5) -> None:
        super().__init__(base_unit)
        self.max_steps = max(1, max_steps)

    def initial_state(self) -> int:
        return 0

    def step(self, steps: int, outcome: BetOutcome) -> int:
        # A losing streak of max_steps resets to one unit
        if outcome is BetOutcome.WIN:
            return 0
        steps += 1
        return 0 if steps >= self.max_steps else steps

    def steps_after(self, outcomes: Iterable[BetOutcome]) -> int:
        """Doubling steps taken after a run of outcomes."""
        return self.replay(outcomes)

    def amount(self, steps: int, unit: Decimal) -> Decimal:
        return unit * (2 ** steps)


class Parlay(BettingStrategy):
    """Let a win ride for up to `max_wins` wins in a row, then bank it."""

    key = "parlay"
    name = "Parlay"

    def __init__(self, base_unit: Decimal | int | None = None, max_wins: int = 3) -> None:
        super().__init__(base_unit)
        self.max_wins = max(1, max_wins)

    def initial_state(self) -> tuple[int, Decimal | None]:
        """(winning streak, payout of the last win)."""
        return 0, None

    def advance(self, state: tuple[int, Decimal | None], bet: Bet) -> tuple[int, Decimal | None]:
        outcome = BetOutcome.of(bet)
        if outcome is BetOutcome.NEUTRAL:
            return state
        if outcome is BetOutcome.LOSS:
            return 0, None
        return state[0] + 1, bet.payout

    def amount(self, state: tuple[int, Decimal | None], unit: Decimal) -> Decimal:
        streak, last_payout = state
        if streak == 0 or streak % self.max_wins == 0:
            return unit
        return last_payout or unit


class Fibonacci(BettingStrategy):
    """Forward one Fibonacci step per loss, back two per win."""

    key = "fibonacci"
    name = "Fibonacci"

    @staticmethod
    def term(index: int) -> int:
        return fibonacci(index)

    def initial_state(self) -> int:
        return 0

    def step(self, index: int, outcome: BetOutcome) -> int:
        return max(0, index - 2) if outcome is BetOutcome.WIN else index + 1

    def index_after(self, outcomes: Iterable[BetOutcome]) -> int:
        return self.replay(outcomes)

    def amount(self, index: int, unit: Decimal) -> Decimal:
        return unit * fibonacci(index)


class DAlembert(BettingStrategy):
    """One unit up after a loss, one unit down after a win, never below one unit."""

    key = "dalembert"
    name = "D'Alembert"

    def initial_state(self) -> int:
        return 1

    def step(self, units: int, outcome: BetOutcome) -> int:
        return max(1, units - 1) if outcome is BetOutcome.WIN else units + 1

    def units_after(self, outcomes: Iterable[BetOutcome]) -> int:
        return self.replay(outcomes)

    def amount(self, units: int, unit: Decimal) -> Decimal:
        return unit * units


class OscarsGrind(BettingStrategy):
    """
    Grind out one unit of profit per cycle.

    The bet grows by one unit after a win while the cycle is short of its
    target, stays put after a loss, never exceeds `max_units` and is never
    larger than needed to finish the cycle.
    """

    key = "oscars_grind"
    name = "Oscar's Grind"

    def __init__(self, base_unit: Decimal | int | None = None, max_units: int = 4) -> None:
        super().__init__(base_unit)
        self.max_units = max(1, max_units)

    def initial_state(self) -> tuple[int, int]:
        """(cycle profit, next bet) in units."""
        return 0, 1

    def step(self, state: tuple[int, int], outcome: BetOutcome) -> tuple[int, int]:
        profit, bet_units = state
        if outcome is not BetOutcome.WIN:
            return profit - bet_units, bet_units
        profit += bet_units
        if profit >= 1:
            return 0, 1
        return profit, min(bet_units + 1, self.max_units, 1 - profit)

    def state_after(self, outcomes: Iterable[BetOutcome]) -> tuple[int, int]:
        return self.replay(outcomes)

    def amount(self, state: tuple[int, int], unit: Decimal) -> Decimal:
        return unit * state[1]


class Labouchere(BettingStrategy):
    """
    Cancellation system.

    Bet the first plus last numbers of the line; a win crosses both off, a
    loss writes the amount lost at the end. A cleared line starts over.
    """

    key = "labouchere"
    name = "Labouchere"

    DEFAULT_SEQUENCE = (1, 2, 3, 4, 5, 6)

    def __init__(
        self,
        base_unit: Decimal | int | None = None,
        sequence: Sequence[int] = DEFAULT_SEQUENCE,
    ) -> None:
        super().__init__(base_unit)
        self.sequence = tuple(sequence) or self.DEFAULT_SEQUENCE

    @staticmethod
    def stake(line: Sequence[int]) -> int:
        if len(line) == 1:
            return line[0]
        return line[0] + line[-1]

    def initial_state(self) -> tuple[int, ...]:
        return self.sequence

    def step(self, line: tuple[int, ...], outcome: BetOutcome) -> tuple[int, ...]:
        if outcome is BetOutcome.WIN:
            line = line[1:-1]
        else:
            line = line + (self.stake(line),)
        return line or self.sequence

    def sequence_after(self, outcomes: Iterable[BetOutcome]) -> list[int]:
        return list(self.replay(outcomes))

    def amount(self, line: tuple[int, ...], unit: Decimal) -> Decimal:
        return unit * self.stake(line)


BETTING_STRATEGIES: dict[str, type[BettingStrategy]] = {
    strategy.key: strategy
    for strategy in (
        FlatBetting,
        Martingale,
        Parlay,
        Fibonacci,
        DAlembert,
        OscarsGrind,
        Labouchere,
    )
}


def create_strategy(strategy_type: str, **options) -> BettingStrategy:
    """Build a strategy by key; unknown keys fall back to flat betting."""
    strategy_cls = BETTING_STRATEGIES.get(strategy_type)
    if strategy_cls is None:
        logger.warning("Unknown betting strategy %r, using flat betting", strategy_type)
        return FlatBetting()
    return strategy_cls(**options)


def get_next_bet(
    strategy_type: str,
    previous_bets: Sequence[Bet],
    bankroll: Decimal,
    table_limits: TableLimits,
) -> Decimal:
    """Next wager for the named strategy; unknown names bet the table minimum."""
    return create_strategy(strategy_type).get_next_bet(previous_bets, bankroll, table_limits)
