"""Card model: suits, ranks and the immutable Card value."""

from dataclasses import dataclass, field, replace
from enum import Enum, auto


class Suit(Enum):
    """Card suits."""

    CLUBS = auto()
    DIAMONDS = auto()
    HEARTS = auto()
    SPADES = auto()

    def __str__(self) -> str:
        return _SUIT_SYMBOLS[self]

    @property
    def is_red(self) -> bool:
        """Hearts and diamonds are red."""
        return self in (Suit.HEARTS, Suit.DIAMONDS)

    @property
    def color(self) -> str:
        return "red" if self.is_red else "black"


_SUIT_SYMBOLS = {
    Suit.CLUBS: "♣",
    Suit.DIAMONDS: "♦",
    Suit.HEARTS: "♥",
    Suit.SPADES: "♠",
}


class Rank(Enum):
    """
    Card ranks.

    The enum value is the poker ordering (Ace high = 14), used for straights
    in 21+3. Blackjack values come from `values`.
    """

    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14

    def __str__(self) -> str:
        return _RANK_LABELS.get(self, str(self.value))

    @property
    def values(self) -> tuple[int, ...]:
        """All blackjack point values this rank can take."""
        if self is Rank.ACE:
            return (1, 11)
        if self.value >= 10:
            return (10,)
        return (self.value,)

    @property
    def blackjack_value(self) -> int:
        """Highest point value (Ace = 11, faces = 10)."""
        return max(self.values)

    @property
    def is_ace(self) -> bool:
        return self is Rank.ACE

    @property
    def is_ten_value(self) -> bool:
        return self.values == (10,)


_RANK_LABELS = {
    Rank.JACK: "J",
    Rank.QUEEN: "Q",
    Rank.KING: "K",
    Rank.ACE: "A",
}

_RANK_BY_LABEL = {str(rank): rank for rank in Rank}
_RANK_BY_LABEL["T"] = Rank.TEN

_SUIT_BY_LABEL = {
    "C": Suit.CLUBS,
    "D": Suit.DIAMONDS,
    "H": Suit.HEARTS,
    "S": Suit.SPADES,
}
_SUIT_BY_LABEL.update({symbol: suit for suit, symbol in _SUIT_SYMBOLS.items()})


@dataclass(frozen=True, slots=True)
class Card:
    """
    Immutable playing card.

    `face_up` does not take part in equality, so a hole card and its
    revealed copy compare equal.
    """

    rank: Rank
    suit: Suit
    face_up: bool = field(default=True, compare=False)

    def __str__(self) -> str:
        if not self.face_up:
            return "??"
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        state = "" if self.face_up else ", face_down"
        return f"Card({self.rank.name}, {self.suit.name}{state})"

    @property
    def values(self) -> tuple[int, ...]:
        return self.rank.values

    @property
    def value(self) -> int:
        return self.rank.blackjack_value

    @property
    def is_ace(self) -> bool:
        return self.rank.is_ace

    @property
    def is_ten_value(self) -> bool:
        return self.rank.is_ten_value

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.suit.value, self.rank.value)

    def turned_up(self) -> "Card":
        """Return this card face up."""
        return self if self.face_up else replace(self, face_up=True)

    def turned_down(self) -> "Card":
        """Return this card face down."""
        return replace(self, face_up=False) if self.face_up else self

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', 'Th' or '10d'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str, suit_str = s[:-1], s[-1]
        if rank_str not in _RANK_BY_LABEL:
            raise ValueError(f"Invalid rank: {rank_str}")
        if suit_str not in _SUIT_BY_LABEL:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(_RANK_BY_LABEL[rank_str], _SUIT_BY_LABEL[suit_str])


def build_deck() -> list[Card]:
    """One ordered 52-card deck."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


def cards(notation: str) -> list[Card]:
    """Parse a space separated card list, e.g. ``cards("AS KH")``."""
    return [Card.from_string(token) for token in notation.split()]
