"""Hand evaluation for blackjack.

The module-level functions are pure and shared by player and dealer hands.
`Hand` wraps a card list with the per-hand flags a round needs.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence
from uuid import uuid4

from engine.cards import Card
from engine.errors import IllegalActionError


def calculate_values(cards: Iterable[Card]) -> frozenset[int]:
    """
    All totals a hand can take.

    Starts from {0} and adds every value of each face-up card, so an ace
    doubles the candidates (1 or 11). Face-down cards are ignored.
    """
    values = frozenset({0})
    for card in cards:
        if not card.face_up:
            continue
        values = frozenset(total + v for total in values for v in card.values)
    return values


def best_value(values: Iterable[int]) -> int:
    """Highest total that does not bust, else the lowest total."""
    values = list(values)
    standing = [v for v in values if v <= 21]
    return max(standing) if standing else min(values)


def is_soft(cards: Sequence[Card], values: frozenset[int] | None = None) -> bool:
    """A face-up ace is present and can still count as 11 without busting."""
    if values is None:
        values = calculate_values(cards)
    has_ace = any(card.face_up and card.is_ace for card in cards)
    standing = {v for v in values if v <= 21}
    return has_ace and len(standing) > 1


def is_blackjack(cards: Sequence[Card]) -> bool:
    """Exactly two face-up cards totalling 21."""
    if len(cards) != 2 or not all(card.face_up for card in cards):
        return False
    return 21 in calculate_values(cards)


def is_busted(values: Iterable[int]) -> bool:
    """Every total is over 21."""
    return all(v > 21 for v in values)


def can_split(cards: Sequence[Card]) -> bool:
    """Exactly two face-up cards of the same rank."""
    return (
        len(cards) == 2
        and all(card.face_up for card in cards)
        and cards[0].rank is cards[1].rank
    )


@dataclass
class Hand:
    """A blackjack hand with its play state."""

    cards: list[Card] = field(default_factory=list)
    is_doubled: bool = False
    is_split: bool = False
    is_surrendered: bool = False
    is_stood: bool = False
    restricted_to_one_card: bool = False
    hand_id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def values(self) -> frozenset[int]:
        return calculate_values(self.cards)

    @property
    def value(self) -> int:
        """The best total of the face-up cards."""
        return best_value(self.values)

    @property
    def is_soft(self) -> bool:
        return is_soft(self.cards, self.values)

    @property
    def is_hard(self) -> bool:
        return not self.is_soft

    @property
    def is_blackjack(self) -> bool:
        """A natural: two-card 21 that did not come from a split."""
        return is_blackjack(self.cards) and not self.is_split

    @property
    def is_busted(self) -> bool:
        return is_busted(self.values)

    @property
    def is_pair(self) -> bool:
        return can_split(self.cards)

    @property
    def can_split(self) -> bool:
        return can_split(self.cards)

    @property
    def can_double(self) -> bool:
        return len(self.cards) == 2 and not self.is_doubled and not self.is_finished

    @property
    def is_finished(self) -> bool:
        """No further cards can be taken."""
        return (
            self.is_stood
            or self.is_surrendered
            or self.is_doubled
            or self.is_busted
            or self.value == 21
            or (self.restricted_to_one_card and len(self.cards) >= 2)
        )

    @property
    def is_resolved(self) -> bool:
        """The player has made a final decision on this hand."""
        return self.is_stood or self.is_surrendered or self.is_doubled

    @property
    def num_cards(self) -> int:
        return len(self.cards)

    def add_card(self, card: Card) -> None:
        """Add a card without any play checks (used while dealing)."""
        self.cards.append(card)

    def hit(self, card: Card) -> None:
        if self.is_finished:
            raise IllegalActionError(f"Cannot hit a finished hand: {self}")
        self.cards.append(card)

    def stand(self) -> None:
        if self.is_resolved or self.is_busted:
            raise IllegalActionError(f"Cannot stand on a resolved hand: {self}")
        self.is_stood = True

    def double(self, card: Card) -> None:
        """Take exactly one more card; the hand is then finished."""
        if len(self.cards) != 2:
            raise IllegalActionError(f"Can only double a two-card hand, got {len(self.cards)}")
        if self.is_finished:
            raise IllegalActionError(f"Cannot double a finished hand: {self}")
        self.cards.append(card)
        self.is_doubled = True

    def split(self) -> tuple["Hand", "Hand"]:
        """
        Split a pair into two one-card hands.

        Split aces are restricted to one further card each; the caller lifts
        that when the table allows hitting split aces.
        """
        if not self.can_split:
            raise IllegalActionError(f"Cannot split a non-pair: {self}")
        if self.is_resolved:
            raise IllegalActionError(f"Cannot split a resolved hand: {self}")
        aces = self.cards[0].is_ace
        return tuple(
            Hand(cards=[card], is_split=True, restricted_to_one_card=aces)
            for card in self.cards
        )  # type: ignore[return-value]

    def surrender(self) -> None:
        if len(self.cards) != 2 or self.is_split or self.is_finished:
            raise IllegalActionError(f"Surrender is only available as a first decision: {self}")
        self.is_surrendered = True

    def reveal(self) -> None:
        """Turn every card face up."""
        self.cards = [card.turned_up() for card in self.cards]

    def copy(self) -> "Hand":
        return Hand(
            cards=list(self.cards),
            is_doubled=self.is_doubled,
            is_split=self.is_split,
            is_surrendered=self.is_surrendered,
            is_stood=self.is_stood,
            restricted_to_one_card=self.restricted_to_one_card,
            hand_id=self.hand_id,
        )

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        if self.is_blackjack:
            value_str = "(BLACKJACK)"
        elif self.is_busted:
            value_str = "(BUST)"
        elif self.is_soft:
            value_str = f"(soft {self.value})"
        else:
            value_str = f"({self.value})"
        return f"{cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({self.cards!r}, value={self.value})"


def create_hand(cards: Iterable[Card] = ()) -> Hand:
    """Create a hand from dealt cards."""
    return Hand(cards=list(cards))
