"""Monte Carlo simulation of repeated rounds."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from random import Random

from engine.bets import BetStatus
from engine.errors import ShoeExhaustedError
from engine.game.phases import GamePhase
from engine.game.round import RoundController, TableState
from engine.resolver import RoundResult
from engine.rules import GameRules, TableLimits
from engine.shoe import create_shoe
from engine.strategy.betting import BettingStrategy, create_strategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    """Aggregate outcome of a simulation run."""

    rounds_played: int
    hands_played: int
    wins: int
    losses: int
    pushes: int
    blackjacks: int
    surrenders: int
    aborted_rounds: int
    total_wagered: Decimal
    net_result: Decimal
    final_bankroll: Decimal

    @property
    def observed_edge(self) -> Decimal:
        """House edge seen in this run, in percent of money wagered."""
        if not self.total_wagered:
            return Decimal("0")
        return (-self.net_result / self.total_wagered * 100).quantize(Decimal("0.01"))

    @property
    def win_rate(self) -> float:
        return self.wins / self.hands_played if self.hands_played else 0.0


def simulate(
    rounds: int,
    rules: GameRules | None = None,
    limits: TableLimits | None = None,
    strategy: str | BettingStrategy = "flat",
    bankroll: Decimal | int = Decimal("1000"),
    seed: int | None = None,
    advisor: str = "basic",
) -> SimulationResult:
    """
    Play `rounds` rounds with the advisor's recommendations.

    Each call builds its own shoe, controller and table state, so runs are
    independent and a given seed always reproduces the same result. The run
    stops early once the bankroll cannot cover the table minimum.

    Args:
        rounds: Number of rounds to play
        rules: Table rules
        limits: Table limits
        strategy: Betting strategy key or instance
        bankroll: Starting bankroll
        seed: Seed for the shoe's random source
        advisor: Advisor key for playing decisions

    Returns:
        Aggregated counts and money totals
    """
    rules = rules or GameRules()
    limits = limits or TableLimits()
    if isinstance(strategy, str):
        strategy = create_strategy(strategy)

    rng = Random(seed)
    shoe = create_shoe(rules.num_decks, rules.penetration, rng)
    state = TableState(bankroll=Decimal(str(bankroll)))
    starting_bankroll = state.bankroll

    counts = {result: 0 for result in RoundResult}
    hands_played = 0
    aborted = 0
    played = 0

    progression = strategy.tracker()
    with RoundController(rules, limits, shoe, state, advisor=advisor) as controller:
        for _ in range(max(0, rounds)):
            amount = progression.next_bet(state.bankroll, limits)
            if amount < limits.minimum_bet or amount <= 0:
                logger.info("Bankroll %s below table minimum, stopping", state.bankroll)
                break

            try:
                controller.start_round(amount)
                if controller.insurance_offered:
                    controller.decline_insurance()
                while controller.phase is GamePhase.PLAYER_TURN:
                    controller.play(controller.recommended_action())
            except ShoeExhaustedError:
                aborted += 1
            else:
                for result in controller.results.values():
                    counts[result] += 1
                hands_played += len(controller.results)
            played += 1
            progression.observe(controller.round_bets)
            controller.finish_round()

    total_wagered = sum(
        (bet.amount for bet in state.main_bets if bet.status is not BetStatus.CANCELLED),
        Decimal("0"),
    )
    result = SimulationResult(
        rounds_played=played,
        hands_played=hands_played,
        wins=counts[RoundResult.WIN] + counts[RoundResult.BLACKJACK],
        losses=counts[RoundResult.LOSS] + counts[RoundResult.BUST] + counts[RoundResult.SURRENDER],
        pushes=counts[RoundResult.PUSH],
        blackjacks=counts[RoundResult.BLACKJACK],
        surrenders=counts[RoundResult.SURRENDER],
        aborted_rounds=aborted,
        total_wagered=total_wagered,
        net_result=state.bankroll - starting_bankroll,
        final_bankroll=state.bankroll,
    )
    logger.info(
        "Simulated %d rounds: net %s on %s wagered",
        played,
        result.net_result,
        total_wagered,
    )
    return result
