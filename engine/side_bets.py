"""
Side-bet evaluators.

Each evaluator is a pure function of the player's first two cards. 21+3 and
Lucky Lucky also look at the dealer up-card, Lucky Ladies and insurance at
whether the dealer holds blackjack. Multipliers are "to one": a 30 pays 30
times the stake on top of the stake itself.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Sequence

from engine.bets import Bet, BetStatus, SideBetType
from engine.cards import Card, Rank, Suit
from engine.hand import best_value, calculate_values, is_blackjack

logger = logging.getLogger(__name__)

# Perfect Pairs
PERFECT_PAIR = 30
COLORED_PAIR = 10
MIXED_PAIR = 5

# 21+3
STRAIGHT_FLUSH = 40
THREE_OF_A_KIND = 30
STRAIGHT = 10
FLUSH = 5
PAIR = 1

# Lucky Ladies
QUEEN_OF_HEARTS_PAIR_WITH_DEALER_BLACKJACK = 1000
QUEEN_OF_HEARTS_PAIR = 200
MATCHED_QUEENS = 25
QUEEN_PAIR = 10
ANY_TWENTY = 4

# Lucky Lucky
SUITED_SEVENS = 100
SEVENS = 50
SUITED_TWENTY_ONE = 25
TWENTY_ONE = 15
THREE_CARD_TWENTY = 3
THREE_CARD_NINETEEN = 2

# Royal Match
SUITED_BLACKJACK = 50
ROYAL_MATCH = 25
SUITED_PAIR = 10

# Over/Under 13
OVER_OR_UNDER_13 = 1
EXACTLY_13 = 10

INSURANCE_PAYOUT = 2


@dataclass(frozen=True)
class SideBetOutcome:
    """Result of a side-bet evaluation."""

    is_win: bool
    outcome: str
    multiplier: int = 0

    @classmethod
    def lose(cls) -> "SideBetOutcome":
        return cls(is_win=False, outcome="lose")

    def payout(self, amount: Decimal) -> Decimal:
        """Total returned for a stake of `amount`."""
        if not self.is_win:
            return Decimal("0")
        return Decimal(str(amount)) * (1 + self.multiplier)


@dataclass(frozen=True)
class SideBetContext:
    """Everything a side bet can look at once the initial deal is done."""

    player_cards: tuple[Card, ...]
    dealer_up_card: Card
    dealer_has_blackjack: bool = False


def _first_two(cards: Sequence[Card]) -> tuple[Card, Card]:
    if len(cards) < 2:
        raise ValueError(f"Side bets need two player cards, got {len(cards)}")
    return cards[0], cards[1]


def evaluate_perfect_pairs(cards: Sequence[Card]) -> SideBetOutcome:
    """Same rank: perfect (same suit), colored (same colour) or mixed."""
    first, second = _first_two(cards)
    if first.rank is not second.rank:
        return SideBetOutcome.lose()
    if first.suit is second.suit:
        return SideBetOutcome(True, "perfect_pair", PERFECT_PAIR)
    if first.suit.is_red == second.suit.is_red:
        return SideBetOutcome(True, "colored_pair", COLORED_PAIR)
    return SideBetOutcome(True, "mixed_pair", MIXED_PAIR)


def _is_straight(ranks: list[int]) -> bool:
    ranks = sorted(ranks)
    if len(set(ranks)) != 3:
        return False
    # Ace plays low only in A-2-3; K-A-2 does not wrap.
    if ranks == [Rank.TWO.value, Rank.THREE.value, Rank.ACE.value]:
        return True
    return ranks[2] - ranks[0] == 2


def evaluate_21_plus_3(cards: Sequence[Card], dealer_up_card: Card) -> SideBetOutcome:
    """Three-card poker hand from the player's two cards and the dealer up-card."""
    first, second = _first_two(cards)
    hand = (first, second, dealer_up_card)
    ranks = [card.rank.value for card in hand]
    flush = len({card.suit for card in hand}) == 1
    straight = _is_straight(ranks)
    distinct_ranks = len(set(ranks))

    if straight and flush:
        return SideBetOutcome(True, "straight_flush", STRAIGHT_FLUSH)
    if distinct_ranks == 1:
        return SideBetOutcome(True, "three_of_a_kind", THREE_OF_A_KIND)
    if straight:
        return SideBetOutcome(True, "straight", STRAIGHT)
    if flush:
        return SideBetOutcome(True, "flush", FLUSH)
    if distinct_ranks == 2:
        return SideBetOutcome(True, "pair", PAIR)
    return SideBetOutcome.lose()


def evaluate_lucky_ladies(
    cards: Sequence[Card],
    dealer_has_blackjack: bool = False,
) -> SideBetOutcome:
    """Queen pairs pay the top tiers; any other two-card 20 pays the base tier."""
    first, second = _first_two(cards)
    if 20 not in calculate_values([first.turned_up(), second.turned_up()]):
        return SideBetOutcome.lose()

    if first.rank is Rank.QUEEN and second.rank is Rank.QUEEN:
        if first.suit is Suit.HEARTS and second.suit is Suit.HEARTS:
            if dealer_has_blackjack:
                return SideBetOutcome(
                    True, "queen_of_hearts_pair_dealer_blackjack",
                    QUEEN_OF_HEARTS_PAIR_WITH_DEALER_BLACKJACK,
                )
            return SideBetOutcome(True, "queen_of_hearts_pair", QUEEN_OF_HEARTS_PAIR)
        if first.suit is second.suit:
            return SideBetOutcome(True, "matched_queens", MATCHED_QUEENS)
        return SideBetOutcome(True, "queen_pair", QUEEN_PAIR)

    return SideBetOutcome(True, "any_twenty", ANY_TWENTY)


def evaluate_lucky_lucky(cards: Sequence[Card], dealer_up_card: Card) -> SideBetOutcome:
    """Player's two cards plus the up-card totalling 19, 20 or 21; aces count 1 or 11."""
    first, second = _first_two(cards)
    hand = (first.turned_up(), second.turned_up(), dealer_up_card.turned_up())
    total = best_value(calculate_values(hand))
    suited = len({card.suit for card in hand}) == 1

    if total == 21:
        if all(card.rank is Rank.SEVEN for card in hand):
            if suited:
                return SideBetOutcome(True, "suited_777", SUITED_SEVENS)
            return SideBetOutcome(True, "777", SEVENS)
        if suited:
            return SideBetOutcome(True, "suited_21", SUITED_TWENTY_ONE)
        return SideBetOutcome(True, "21", TWENTY_ONE)
    if total == 20:
        return SideBetOutcome(True, "20", THREE_CARD_TWENTY)
    if total == 19:
        return SideBetOutcome(True, "19", THREE_CARD_NINETEEN)
    return SideBetOutcome.lose()


def evaluate_royal_match(cards: Sequence[Card]) -> SideBetOutcome:
    """Suited first two cards: two royals, a blackjack or a pair."""
    first, second = _first_two(cards)
    if first.suit is not second.suit:
        return SideBetOutcome.lose()

    royals = (Rank.JACK, Rank.QUEEN, Rank.KING)
    if first.rank in royals and second.rank in royals:
        return SideBetOutcome(True, "royal_match", ROYAL_MATCH)
    if is_blackjack([first.turned_up(), second.turned_up()]):
        return SideBetOutcome(True, "suited_blackjack", SUITED_BLACKJACK)
    if first.rank is second.rank:
        return SideBetOutcome(True, "suited_pair", SUITED_PAIR)
    return SideBetOutcome.lose()


def two_card_count(cards: Sequence[Card]) -> int:
    """First two cards summed with aces as 1, the count Over/Under 13 uses."""
    return sum(min(card.values) for card in _first_two(cards))


def evaluate_over_13(cards: Sequence[Card]) -> SideBetOutcome:
    if two_card_count(cards) > 13:
        return SideBetOutcome(True, "over_13", OVER_OR_UNDER_13)
    return SideBetOutcome.lose()


def evaluate_under_13(cards: Sequence[Card]) -> SideBetOutcome:
    if two_card_count(cards) < 13:
        return SideBetOutcome(True, "under_13", OVER_OR_UNDER_13)
    return SideBetOutcome.lose()


def evaluate_exactly_13(cards: Sequence[Card]) -> SideBetOutcome:
    """Exactly 13 pays its own price and loses both Over and Under."""
    if two_card_count(cards) == 13:
        return SideBetOutcome(True, "exactly_13", EXACTLY_13)
    return SideBetOutcome.lose()


def evaluate_insurance(dealer_has_blackjack: bool) -> SideBetOutcome:
    """Insurance wins exactly when the dealer holds blackjack."""
    if dealer_has_blackjack:
        return SideBetOutcome(True, "dealer_blackjack", INSURANCE_PAYOUT)
    return SideBetOutcome.lose()


SideBetEvaluator = Callable[[SideBetContext], SideBetOutcome]

SIDE_BET_EVALUATORS: dict[SideBetType, SideBetEvaluator] = {
    SideBetType.PERFECT_PAIRS: lambda ctx: evaluate_perfect_pairs(ctx.player_cards),
    SideBetType.TWENTY_ONE_PLUS_THREE: lambda ctx: evaluate_21_plus_3(
        ctx.player_cards, ctx.dealer_up_card
    ),
    SideBetType.LUCKY_LADIES: lambda ctx: evaluate_lucky_ladies(
        ctx.player_cards, ctx.dealer_has_blackjack
    ),
    SideBetType.LUCKY_LUCKY: lambda ctx: evaluate_lucky_lucky(
        ctx.player_cards, ctx.dealer_up_card
    ),
    SideBetType.ROYAL_MATCH: lambda ctx: evaluate_royal_match(ctx.player_cards),
    SideBetType.OVER_13: lambda ctx: evaluate_over_13(ctx.player_cards),
    SideBetType.UNDER_13: lambda ctx: evaluate_under_13(ctx.player_cards),
    SideBetType.EXACTLY_13: lambda ctx: evaluate_exactly_13(ctx.player_cards),
    SideBetType.INSURANCE: lambda ctx: evaluate_insurance(ctx.dealer_has_blackjack),
}


def evaluate_side_bet(side_bet: SideBetType, context: SideBetContext) -> SideBetOutcome:
    return SIDE_BET_EVALUATORS[side_bet](context)


def settle_side_bet(bet: Bet, outcome: SideBetOutcome) -> Bet:
    """Settle a pending side bet from its outcome."""
    status = BetStatus.WON if outcome.is_win else BetStatus.LOST
    bet.settle(status, outcome.payout(bet.amount))
    logger.debug(
        "Side bet %s settled: %s pays %s",
        bet.side_bet.value if bet.side_bet else "?",
        outcome.outcome,
        bet.payout,
    )
    return bet


def max_insurance(main_bet: Decimal) -> Decimal:
    """Insurance stake is capped at half the main bet."""
    return Decimal(str(main_bet)) / 2
