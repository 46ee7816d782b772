"""
Hand outcome probabilities.

Dealer results come from precomputed infinite-deck tables, one per soft 17
rule. The player's chance of busting on the next card is counted exactly
against the cards a shoe has left.
"""

from dataclasses import dataclass
from typing import Sequence

from engine.cards import Card, build_deck
from engine.hand import calculate_values, is_blackjack, is_busted
from engine.rules import GameRules
from engine.shoe import Shoe

DEALER_TOTALS = (17, 18, 19, 20, 21)


@dataclass(frozen=True)
class DealerDistribution:
    """
    How the dealer finishes from one up-card.

    `totals` covers the non-natural finishes 17 through 21; a natural is
    counted apart in `blackjack`, so it is included in no total.
    """

    up_card: int  # 2-11, 11 is an ace
    bust: float
    totals: tuple[float, float, float, float, float]
    blackjack: float = 0.0

    def __post_init__(self) -> None:
        total = self.bust + sum(self.totals) + self.blackjack
        if abs(total - 1.0) > 0.001:
            raise ValueError(f"Probabilities must sum to 1.0, got {total}")

    def probability(self, total: int) -> float:
        """Chance of a non-natural finish on `total` (17-21)."""
        if total not in DEALER_TOTALS:
            return 0.0
        return self.totals[total - 17]

    def as_dict(self) -> dict[int | str, float]:
        table: dict[int | str, float] = dict(zip(DEALER_TOTALS, self.totals))
        table["blackjack"] = self.blackjack
        table["bust"] = self.bust
        return table


def _table(rows: dict[int, tuple[float, ...]]) -> dict[int, DealerDistribution]:
    # Row layout: bust, 17, 18, 19, 20, 21[, blackjack]
    return {
        up_card: DealerDistribution(up_card, row[0], tuple(row[1:6]), *row[6:])
        for up_card, row in rows.items()
    }


DEALER_STANDS_SOFT_17 = _table({
    2: (0.3536, 0.1395, 0.1324, 0.1233, 0.1218, 0.1294),
    3: (0.3723, 0.1305, 0.1260, 0.1199, 0.1184, 0.1329),
    4: (0.3926, 0.1310, 0.1140, 0.1136, 0.1136, 0.1352),
    5: (0.4168, 0.1228, 0.1097, 0.1085, 0.1092, 0.1330),
    6: (0.4234, 0.1065, 0.1063, 0.1059, 0.1060, 0.1519),
    7: (0.2618, 0.3686, 0.1379, 0.0786, 0.0786, 0.0745),
    8: (0.2439, 0.1286, 0.3598, 0.1289, 0.0686, 0.0702),
    9: (0.2278, 0.1198, 0.1082, 0.3544, 0.1210, 0.0688),
    10: (0.2122, 0.1118, 0.1122, 0.1119, 0.3396, 0.0353, 0.0770),
    11: (0.1169, 0.1307, 0.1307, 0.1307, 0.1307, 0.0294, 0.3309),
})

DEALER_HITS_SOFT_17 = _table({
    2: (0.3551, 0.1380, 0.1320, 0.1228, 0.1217, 0.1304),
    3: (0.3742, 0.1291, 0.1255, 0.1192, 0.1179, 0.1341),
    4: (0.3946, 0.1296, 0.1134, 0.1127, 0.1129, 0.1368),
    5: (0.4189, 0.1215, 0.1091, 0.1076, 0.1084, 0.1345),
    6: (0.4256, 0.1050, 0.1057, 0.1050, 0.1051, 0.1536),
    7: (0.2620, 0.3684, 0.1378, 0.0785, 0.0786, 0.0747),
    8: (0.2442, 0.1284, 0.3597, 0.1288, 0.0685, 0.0704),
    9: (0.2281, 0.1196, 0.1081, 0.3543, 0.1209, 0.0690),
    10: (0.2124, 0.1116, 0.1121, 0.1118, 0.3394, 0.0357, 0.0770),
    11: (0.1271, 0.1195, 0.1195, 0.1297, 0.1297, 0.0436, 0.3309),
})


@dataclass(frozen=True)
class OutcomeProbabilities:
    """Win, loss and push chances for a hand that stands now."""

    win: float
    lose: float
    push: float

    @property
    def expected_value(self) -> float:
        """Average result per unit staked, counting every win at even money."""
        return self.win - self.lose


def up_card_value(card: Card) -> int:
    """Table key for a dealer up-card: 2-10, with 11 for an ace."""
    if not card.face_up:
        raise ValueError("The dealer up-card must be face up")
    return card.value


def dealer_distribution(up_card: Card, hit_soft_17: bool = True) -> DealerDistribution:
    table = DEALER_HITS_SOFT_17 if hit_soft_17 else DEALER_STANDS_SOFT_17
    return table[up_card_value(up_card)]


def bust_probability(cards: Sequence[Card], remaining: Sequence[Card] | None = None) -> float:
    """
    Chance that one more card busts the hand.

    Args:
        cards: The hand's cards
        remaining: Cards left to draw from; a full deck's mix when omitted

    Returns:
        Probability between 0 and 1; 1 for a hand that is already bust and
        0 when nothing is left to draw
    """
    values = calculate_values(cards)
    if is_busted(values):
        return 1.0
    pool = build_deck() if remaining is None else remaining
    if not pool:
        return 0.0
    low = min(values)
    busting = sum(1 for card in pool if low + min(card.values) > 21)
    return busting / len(pool)


def outcome_probabilities(
    cards: Sequence[Card],
    up_card: Card,
    hit_soft_17: bool = True,
) -> OutcomeProbabilities:
    """
    Chances of winning, losing and pushing if the hand stands now.

    A dealer natural beats every hand but a player natural, which it pushes.
    """
    values = calculate_values(cards)
    if is_busted(values):
        return OutcomeProbabilities(win=0.0, lose=1.0, push=0.0)

    dealer = dealer_distribution(up_card, hit_soft_17)
    if is_blackjack(cards):
        return OutcomeProbabilities(win=1.0 - dealer.blackjack, lose=0.0, push=dealer.blackjack)

    total = max(v for v in values if v <= 21)
    win, lose, push = dealer.bust, dealer.blackjack, 0.0
    for dealer_total, chance in zip(DEALER_TOTALS, dealer.totals):
        if dealer_total < total:
            win += chance
        elif dealer_total > total:
            lose += chance
        else:
            push += chance
    return OutcomeProbabilities(win=win, lose=lose, push=push)


class ProbabilityEngine:
    """Outcome probabilities under one table's rules."""

    def __init__(self, rules: GameRules | None = None) -> None:
        self.rules = rules or GameRules()

    def dealer_probabilities(self, up_card: Card) -> DealerDistribution:
        return dealer_distribution(up_card, self.rules.dealer_hits_soft_17)

    def dealer_bust_probability(self, up_card: Card) -> float:
        return self.dealer_probabilities(up_card).bust

    def player_bust_probability(self, cards: Sequence[Card], shoe: Shoe | None = None) -> float:
        """Bust chance on the next card, counted against the shoe's undealt cards."""
        return bust_probability(cards, shoe.remaining() if shoe is not None else None)

    def outcome_probabilities(self, cards: Sequence[Card], up_card: Card) -> OutcomeProbabilities:
        return outcome_probabilities(cards, up_card, self.rules.dealer_hits_soft_17)
