"""Basic strategy tables and the action advisor."""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import Mapping, Protocol, Sequence

from engine.cards import Card
from engine.hand import Hand
from engine.rules import GameRules

logger = logging.getLogger(__name__)


class Action(Enum):
    """Possible player actions."""

    HIT = auto()
    STAND = auto()
    DOUBLE = auto()
    SPLIT = auto()
    SURRENDER = auto()

    # Conditional table cells (fallback if primary not allowed)
    DOUBLE_OR_HIT = auto()  # Double if allowed, else hit
    DOUBLE_OR_STAND = auto()  # Double if allowed, else stand
    SURRENDER_OR_HIT = auto()  # Surrender if allowed, else hit
    SURRENDER_OR_STAND = auto()  # Surrender if allowed, else stand

    def __str__(self) -> str:
        return self.name.replace("_", "/")

    @property
    def is_conditional(self) -> bool:
        return "_OR_" in self.name


# Dealer upcards: 2-10, A = 11
DEALER_UPCARDS = range(2, 12)


@dataclass(frozen=True)
class AdvisorFlags:
    """Which actions are currently legal for the hand being advised."""

    can_double: bool = True
    can_split: bool = True
    can_surrender: bool = True


class BasicStrategy:
    """
    Basic strategy lookup tables.

    Multi-deck charts, adjusted for H17/S17, double after split and late
    surrender. Lookups are (total, dealer upcard) for hard and soft hands
    and (pair card value, dealer upcard) for pairs.
    """

    def __init__(self, rules: GameRules | None = None) -> None:
        self.rules = rules or GameRules()
        self._hard_table = self._build_hard_table()
        self._soft_table = self._build_soft_table()
        self._pair_table = self._build_pair_table()

    def get_action(
        self,
        player_total: int,
        dealer_upcard: int,
        is_soft: bool = False,
        pair_value: int | None = None,
        flags: AdvisorFlags = AdvisorFlags(),
    ) -> Action:
        """
        Get the basic strategy action for a classified hand.

        Args:
            player_total: Player's best total
            dealer_upcard: Dealer's upcard value (2-11, Ace=11)
            is_soft: Whether the hand is soft
            pair_value: Card value of the pair, or None for non-pairs
            flags: Legal actions for the hand

        Returns:
            One of HIT, STAND, DOUBLE, SPLIT, SURRENDER
        """
        if pair_value is not None and flags.can_split:
            action = self._pair_table.get((pair_value, dealer_upcard))
            if action is not None:
                return self._resolve_action(action, flags)

        if is_soft:
            action = self._soft_table.get((player_total, dealer_upcard))
            if action is not None:
                return self._resolve_action(action, flags)

        action = self._hard_table.get((player_total, dealer_upcard))
        if action is not None:
            return self._resolve_action(action, flags)

        return Action.STAND if player_total >= 17 else Action.HIT

    def recommend(
        self,
        hand: Hand | Sequence[Card],
        dealer_up_card: Card,
        flags: AdvisorFlags = AdvisorFlags(),
    ) -> Action:
        """Classify a hand and look up its action."""
        if not isinstance(hand, Hand):
            hand = Hand(cards=list(hand))
        two_cards = len(hand.cards) == 2
        flags = AdvisorFlags(
            can_double=flags.can_double and two_cards,
            can_split=flags.can_split and two_cards,
            can_surrender=flags.can_surrender and two_cards and not hand.is_split,
        )
        pair_value = hand.cards[0].value if hand.can_split else None
        return self.get_action(
            player_total=hand.value,
            dealer_upcard=dealer_up_card.value,
            is_soft=hand.is_soft,
            pair_value=pair_value,
            flags=flags,
        )

    @staticmethod
    def _resolve_action(action: Action, flags: AdvisorFlags) -> Action:
        """Resolve conditional actions based on what's allowed."""
        if action is Action.DOUBLE_OR_HIT:
            return Action.DOUBLE if flags.can_double else Action.HIT
        if action is Action.DOUBLE_OR_STAND:
            return Action.DOUBLE if flags.can_double else Action.STAND
        if action is Action.SURRENDER_OR_HIT:
            return Action.SURRENDER if flags.can_surrender else Action.HIT
        if action is Action.SURRENDER_OR_STAND:
            return Action.SURRENDER if flags.can_surrender else Action.STAND
        return action

    def _build_hard_table(self) -> Mapping[tuple[int, int], Action]:
        """Build hard totals strategy table."""
        H = Action.HIT
        S = Action.STAND
        D = Action.DOUBLE_OR_HIT
        Rh = Action.SURRENDER_OR_HIT
        Rs = Action.SURRENDER_OR_STAND

        table: dict[tuple[int, int], Action] = {}

        # Hard 4-8: Always hit
        for total in range(4, 9):
            for dealer in DEALER_UPCARDS:
                table[(total, dealer)] = H

        # Hard 9
        for dealer in DEALER_UPCARDS:
            table[(9, dealer)] = D if dealer in (3, 4, 5, 6) else H

        # Hard 10
        for dealer in DEALER_UPCARDS:
            table[(10, dealer)] = D if dealer <= 9 else H

        # Hard 11: vs Ace only when the dealer hits soft 17
        for dealer in range(2, 11):
            table[(11, dealer)] = D
        table[(11, 11)] = D if self.rules.dealer_hits_soft_17 else H

        # Hard 12
        for dealer in DEALER_UPCARDS:
            table[(12, dealer)] = S if dealer in (4, 5, 6) else H

        # Hard 13-16
        for total in range(13, 17):
            for dealer in DEALER_UPCARDS:
                table[(total, dealer)] = S if dealer <= 6 else H

        # Hard 17+: Always stand
        for total in range(17, 22):
            for dealer in DEALER_UPCARDS:
                table[(total, dealer)] = S

        # Late surrender windows
        if self.rules.surrender_allowed:
            table[(15, 10)] = Rh
            table[(16, 9)] = Rh
            table[(16, 10)] = Rh
            table[(16, 11)] = Rh
            if self.rules.dealer_hits_soft_17:
                table[(15, 11)] = Rh
                table[(17, 11)] = Rs

        return table

    def _build_soft_table(self) -> Mapping[tuple[int, int], Action]:
        """Build soft totals strategy table."""
        H = Action.HIT
        S = Action.STAND
        D = Action.DOUBLE_OR_HIT
        Ds = Action.DOUBLE_OR_STAND
        h17 = self.rules.dealer_hits_soft_17

        table: dict[tuple[int, int], Action] = {}

        # Soft 12 (A,A not split)
        for dealer in DEALER_UPCARDS:
            table[(12, dealer)] = H

        # Soft 13-14 (A,2 A,3)
        for total in (13, 14):
            for dealer in DEALER_UPCARDS:
                table[(total, dealer)] = D if dealer in (5, 6) else H

        # Soft 15-16 (A,4 A,5)
        for total in (15, 16):
            for dealer in DEALER_UPCARDS:
                table[(total, dealer)] = D if dealer in (4, 5, 6) else H

        # Soft 17 (A,6)
        for dealer in DEALER_UPCARDS:
            table[(17, dealer)] = D if dealer in (3, 4, 5, 6) else H

        # Soft 18 (A,7)
        table[(18, 2)] = Ds if h17 else S
        for dealer in (3, 4, 5, 6):
            table[(18, dealer)] = Ds
        for dealer in (7, 8):
            table[(18, dealer)] = S
        for dealer in (9, 10, 11):
            table[(18, dealer)] = H

        # Soft 19 (A,8)
        for dealer in DEALER_UPCARDS:
            table[(19, dealer)] = S
        if h17:
            table[(19, 6)] = Ds

        # Soft 20-21: Always stand
        for total in (20, 21):
            for dealer in DEALER_UPCARDS:
                table[(total, dealer)] = S

        return table

    def _build_pair_table(self) -> Mapping[tuple[int, int], Action]:
        """
        Build pair splitting strategy table.

        5s and 10s are absent on purpose: they are never split and play
        from the hard table as 10 and 20.
        """
        H = Action.HIT
        S = Action.STAND
        P = Action.SPLIT
        das = self.rules.double_after_split

        table: dict[tuple[int, int], Action] = {}

        # Pair of 2s and 3s
        for pair in (2, 3):
            for dealer in DEALER_UPCARDS:
                if dealer in (2, 3):
                    table[(pair, dealer)] = P if das else H
                elif dealer <= 7:
                    table[(pair, dealer)] = P
                else:
                    table[(pair, dealer)] = H

        # Pair of 4s
        for dealer in DEALER_UPCARDS:
            table[(4, dealer)] = P if das and dealer in (5, 6) else H

        # Pair of 6s
        for dealer in DEALER_UPCARDS:
            if dealer == 2:
                table[(6, dealer)] = P if das else H
            elif dealer <= 6:
                table[(6, dealer)] = P
            else:
                table[(6, dealer)] = H

        # Pair of 7s
        for dealer in DEALER_UPCARDS:
            table[(7, dealer)] = P if dealer <= 7 else H

        # Pair of 8s and Aces: Always split
        for dealer in DEALER_UPCARDS:
            table[(8, dealer)] = P
            table[(11, dealer)] = P

        # Pair of 9s
        for dealer in DEALER_UPCARDS:
            table[(9, dealer)] = S if dealer in (7, 10, 11) else P

        return table

    @property
    def hard_table(self) -> Mapping[tuple[int, int], Action]:
        return self._hard_table

    @property
    def soft_table(self) -> Mapping[tuple[int, int], Action]:
        return self._soft_table

    @property
    def pair_table(self) -> Mapping[tuple[int, int], Action]:
        return self._pair_table


class MimicDealer:
    """Play the dealer's fixed rule: hit below 17, never double or split."""

    def __init__(self, rules: GameRules | None = None) -> None:
        self.rules = rules or GameRules()

    def recommend(
        self,
        hand: Hand | Sequence[Card],
        dealer_up_card: Card,
        flags: AdvisorFlags = AdvisorFlags(),
    ) -> Action:
        if not isinstance(hand, Hand):
            hand = Hand(cards=list(hand))
        if hand.value < 17:
            return Action.HIT
        if hand.value == 17 and hand.is_soft and self.rules.dealer_hits_soft_17:
            return Action.HIT
        return Action.STAND


class Advisor(Protocol):
    def recommend(
        self,
        hand: Hand | Sequence[Card],
        dealer_up_card: Card,
        flags: AdvisorFlags = ...,
    ) -> Action: ...


ADVISORS: dict[str, type] = {
    "basic": BasicStrategy,
    "mimic_dealer": MimicDealer,
}


@lru_cache(maxsize=32)
def _strategy_for(rules: GameRules) -> BasicStrategy:
    return BasicStrategy(rules)


def get_advisor(key: str, rules: GameRules | None = None) -> Advisor:
    """Look an advisor up by name, falling back to basic strategy."""
    rules = rules or GameRules()
    advisor_cls = ADVISORS.get(key)
    if advisor_cls is None:
        logger.warning("Unknown advisor %r, falling back to basic strategy", key)
        return _strategy_for(rules)
    if advisor_cls is BasicStrategy:
        return _strategy_for(rules)
    return advisor_cls(rules)


def get_recommended_action(
    hand: Hand | Sequence[Card],
    dealer_up_card: Card,
    flags: AdvisorFlags | None = None,
    rules: GameRules | None = None,
) -> Action:
    """Basic strategy recommendation for `hand` against `dealer_up_card`."""
    rules = rules or GameRules()
    if flags is None:
        flags = AdvisorFlags(
            can_double=rules.double_allowed,
            can_split=True,
            can_surrender=rules.surrender_allowed,
        )
    return _strategy_for(rules).recommend(hand, dealer_up_card, flags)
