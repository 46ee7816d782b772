"""Shuffling algorithms and the multi-deck shoe."""

import logging
from random import Random
from typing import Iterator, Sequence, TypeVar

from engine.cards import Card, build_deck
from engine.errors import ShoeExhaustedError, ShoeOwnershipError
from engine.rules import normalize_deck_count, normalize_penetration

logger = logging.getLogger(__name__)

T = TypeVar("T")


def fisher_yates(items: Sequence[T], rng: Random | None = None) -> list[T]:
    """
    Return an unbiased random permutation of items.

    Walks from the last index down to 1, swapping each position with a
    uniformly chosen index at or below it. This is the only shuffle used
    for live play.
    """
    rng = rng or Random()
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def cut(items: Sequence[T], position: int | None = None, rng: Random | None = None) -> list[T]:
    """
    Cut the pack: the cards below `position` move to the top.

    Without a position the cut lands at a random point in the middle 40%.
    """
    if len(items) <= 1:
        return list(items)

    if position is None:
        rng = rng or Random()
        position = int(len(items) * 0.3 + rng.random() * len(items) * 0.4)

    position = max(1, min(position, len(items) - 1))
    return list(items[position:]) + list(items[:position])


def overhand_shuffle(items: Sequence[T], rng: Random | None = None, iterations: int = 3) -> list[T]:
    """Cosmetic overhand shuffle for display; not a fair permutation."""
    rng = rng or Random()
    result = list(items)
    for _ in range(iterations):
        remaining = result
        shuffled: list[T] = []
        while remaining:
            packet_size = max(1, int(rng.random() * len(remaining) * 0.4))
            shuffled = remaining[:packet_size] + shuffled
            remaining = remaining[packet_size:]
        result = shuffled
    return result


def riffle_shuffle(items: Sequence[T], rng: Random | None = None, iterations: int = 3) -> list[T]:
    """Cosmetic riffle shuffle for display; cards sometimes stick in clumps."""
    rng = rng or Random()
    result = list(items)
    for _ in range(iterations):
        mid = len(result) // 2
        piles = [result[:mid], result[mid:]]
        merged: list[T] = []
        while piles[0] or piles[1]:
            pile = piles[0] if piles[0] and (not piles[1] or rng.random() < 0.5) else piles[1]
            clump = rng.randint(1, 3) if rng.random() < 0.1 else 1
            merged.extend(pile[:clump])
            del pile[:clump]
        result = merged
    return result


class Shoe:
    """
    A multi-deck shoe stored as an arena.

    All cards live in one list; `_cursor` marks the first undealt card, so
    anything before it has been dealt and can never be drawn again.
    """

    def __init__(
        self,
        num_decks: int = 6,
        penetration: float = 0.75,
        rng: Random | None = None,
    ) -> None:
        """
        Initialize a shoe with multiple decks, in deck order.

        Args:
            num_decks: Number of decks in the shoe, clamped to 1-8
            penetration: Fraction of shoe dealt before reshuffle, clamped to 0-1
            rng: Random number generator for shuffling and cutting
        """
        self._num_decks = normalize_deck_count(num_decks)
        self._rng = rng or Random()
        self._cards: list[Card] = [card for _ in range(self._num_decks) for card in build_deck()]
        self._cursor = 0
        self._penetration = 0.0
        self._cut_card_index = 0
        self._owner: object | None = None
        self.place_cut_card(penetration)

    @classmethod
    def stacked(cls, cards: Sequence[Card], penetration: float = 1.0) -> "Shoe":
        """A shoe that deals exactly `cards` in order, for tests and replays."""
        shoe = cls(num_decks=1, penetration=penetration)
        shoe._cards = [card.turned_up() for card in cards]
        shoe._num_decks = max(1, -(-len(shoe._cards) // 52))
        shoe.place_cut_card(penetration)
        return shoe

    def shuffle(self) -> None:
        """Gather every card, shuffle, cut and place the cut card."""
        self._cards = cut(fisher_yates(self._cards, self._rng), rng=self._rng)
        self._cursor = 0
        self.place_cut_card(self._penetration)
        logger.debug("Shoe shuffled: %d cards, cut card at %d", len(self._cards), self._cut_card_index)

    def place_cut_card(self, penetration: float) -> None:
        """Mark the reshuffle point after `penetration` of the shoe is dealt."""
        self._penetration = normalize_penetration(penetration)
        self._cut_card_index = int(len(self._cards) * self._penetration)

    def draw(self, face_up: bool = True) -> Card:
        """Deal the top card."""
        if self._cursor >= len(self._cards):
            raise ShoeExhaustedError("Cannot draw from empty shoe")
        card = self._cards[self._cursor]
        self._cursor += 1
        return card if face_up else card.turned_down()

    def bind(self, owner: object) -> None:
        """Claim exclusive use of the shoe for `owner`."""
        if self._owner is not None and self._owner is not owner:
            raise ShoeOwnershipError("Shoe is already bound to another round controller")
        self._owner = owner

    def release(self, owner: object) -> None:
        if self._owner is owner:
            self._owner = None

    @property
    def owner(self) -> object | None:
        return self._owner

    @property
    def needs_shuffle(self) -> bool:
        """Check if the cut card has been reached."""
        return self._cursor >= self._cut_card_index

    @property
    def cards_remaining(self) -> int:
        return len(self._cards) - self._cursor

    @property
    def cards_dealt(self) -> int:
        return self._cursor

    @property
    def total_cards(self) -> int:
        return len(self._cards)

    @property
    def num_decks(self) -> int:
        return self._num_decks

    @property
    def decks_remaining(self) -> float:
        return self.cards_remaining / 52

    @property
    def penetration(self) -> float:
        return self._penetration

    @property
    def cut_card_index(self) -> int:
        """Number of dealt cards at which the cut card comes out."""
        return self._cut_card_index

    def remaining(self) -> list[Card]:
        """Undealt cards in dealing order."""
        return self._cards[self._cursor:]

    def dealt(self) -> list[Card]:
        return self._cards[: self._cursor]

    def __len__(self) -> int:
        return self.cards_remaining

    def __iter__(self) -> Iterator[Card]:
        return iter(self.remaining())


def create_shoe(
    num_decks: int = 6,
    penetration: float = 0.75,
    rng: Random | None = None,
) -> Shoe:
    """Build a shuffled, cut shoe ready to deal."""
    shoe = Shoe(num_decks=num_decks, penetration=penetration, rng=rng)
    shoe.shuffle()
    return shoe
