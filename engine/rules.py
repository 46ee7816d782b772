"""Blackjack rule variations and table limits."""

import logging
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from config import GameConfig, TableConfig

logger = logging.getLogger(__name__)

MIN_DECKS = 1
MAX_DECKS = 8
MIN_SPLITS = 1
MAX_SPLITS = 4
BLACKJACK_PAYOUTS = (1.5, 1.2, 1.0)


def clamp(value, lower, upper):
    """Clamp value into [lower, upper]."""
    return max(lower, min(value, upper))


def normalize_deck_count(num_decks: int) -> int:
    """Clamp a deck count to 1..8."""
    normalized = clamp(int(num_decks), MIN_DECKS, MAX_DECKS)
    if normalized != num_decks:
        logger.warning("num_decks=%s out of range, using %s", num_decks, normalized)
    return normalized


def normalize_penetration(penetration: float) -> float:
    """Clamp a penetration ratio to 0..1."""
    normalized = clamp(float(penetration), 0.0, 1.0)
    if normalized != penetration:
        logger.warning("penetration=%s out of range, using %s", penetration, normalized)
    return normalized


def normalize_blackjack_payout(payout: float) -> float:
    """Snap a blackjack payout to the nearest of 3:2, 6:5 and 1:1."""
    normalized = min(BLACKJACK_PAYOUTS, key=lambda legal: abs(legal - float(payout)))
    if normalized != payout:
        logger.warning("blackjack_payout=%s not offered, using %s", payout, normalized)
    return normalized


@dataclass(frozen=True)
class GameRules:
    """
    Blackjack table rules configuration.

    Invalid values are normalized to the nearest legal value instead of
    being rejected; the instance is immutable afterwards.
    """

    # Deck configuration
    num_decks: int = 6
    penetration: float = 0.75

    # Dealer rules
    dealer_hits_soft_17: bool = True  # H17 vs S17

    # Blackjack payout (3:2 = 1.5, 6:5 = 1.2, even money = 1.0)
    blackjack_payout: float = 1.5

    # Double down rules
    double_allowed: bool = True
    double_after_split: bool = True  # DAS

    # Split rules
    max_splits: int = 3  # Split actions per round, so up to 4 hands
    resplit_aces: bool = False  # RSA
    hit_split_aces: bool = False  # Usually only one card to split aces

    # Late surrender
    surrender_allowed: bool = True

    insurance_allowed: bool = True

    def __post_init__(self) -> None:
        """Normalize rule values in place."""
        object.__setattr__(self, "num_decks", normalize_deck_count(self.num_decks))
        object.__setattr__(self, "penetration", normalize_penetration(self.penetration))
        object.__setattr__(
            self, "blackjack_payout", normalize_blackjack_payout(self.blackjack_payout)
        )
        max_splits = clamp(int(self.max_splits), MIN_SPLITS, MAX_SPLITS)
        if max_splits != self.max_splits:
            logger.warning("max_splits=%s out of range, using %s", self.max_splits, max_splits)
        object.__setattr__(self, "max_splits", max_splits)

    @property
    def max_hands(self) -> int:
        """Most hands a player can hold after splitting."""
        return self.max_splits + 1

    @classmethod
    def from_config(cls, game: "GameConfig") -> "GameRules":
        """Build rules from the environment-driven game configuration."""
        names = {f.name for f in fields(cls)}
        return cls(**{name: getattr(game, name) for name in names if hasattr(game, name)})

    @classmethod
    def vegas_strip(cls) -> "GameRules":
        """Standard Vegas Strip rules."""
        return cls(
            num_decks=6,
            dealer_hits_soft_17=False,
            blackjack_payout=1.5,
            double_after_split=True,
            resplit_aces=True,
            surrender_allowed=True,
        )

    @classmethod
    def downtown_vegas(cls) -> "GameRules":
        """Downtown Las Vegas rules (typically H17)."""
        return cls(
            num_decks=2,
            dealer_hits_soft_17=True,
            blackjack_payout=1.5,
            double_after_split=True,
            surrender_allowed=False,
        )

    @classmethod
    def single_deck(cls) -> "GameRules":
        """Single deck 6:5 game."""
        return cls(
            num_decks=1,
            penetration=0.6,
            dealer_hits_soft_17=True,
            blackjack_payout=1.2,
            double_after_split=False,
            surrender_allowed=False,
        )

    @classmethod
    def atlantic_city(cls) -> "GameRules":
        """Atlantic City rules."""
        return cls(
            num_decks=8,
            dealer_hits_soft_17=False,
            blackjack_payout=1.5,
            double_after_split=True,
            surrender_allowed=True,
        )


@dataclass(frozen=True)
class TableLimits:
    """Minimum and maximum wagers for main and side bets."""

    minimum_bet: Decimal = Decimal("5")
    maximum_bet: Decimal = Decimal("1000")
    minimum_side_bet: Decimal = Decimal("1")
    maximum_side_bet: Decimal = Decimal("100")

    def __post_init__(self) -> None:
        for name in ("minimum_bet", "maximum_bet", "minimum_side_bet", "maximum_side_bet"):
            value = Decimal(str(getattr(self, name)))
            object.__setattr__(self, name, max(value, Decimal("0")))

        if self.maximum_bet < self.minimum_bet:
            logger.warning(
                "maximum_bet=%s below minimum_bet=%s, raising it",
                self.maximum_bet,
                self.minimum_bet,
            )
            object.__setattr__(self, "maximum_bet", self.minimum_bet)
        if self.maximum_side_bet < self.minimum_side_bet:
            logger.warning(
                "maximum_side_bet=%s below minimum_side_bet=%s, raising it",
                self.maximum_side_bet,
                self.minimum_side_bet,
            )
            object.__setattr__(self, "maximum_side_bet", self.minimum_side_bet)

    def clamp_bet(self, amount: Decimal) -> Decimal:
        """Clamp a main-bet amount into the table range."""
        return clamp(Decimal(str(amount)), self.minimum_bet, self.maximum_bet)

    def allows_bet(self, amount: Decimal) -> bool:
        return self.minimum_bet <= Decimal(str(amount)) <= self.maximum_bet

    def allows_side_bet(self, amount: Decimal) -> bool:
        return self.minimum_side_bet <= Decimal(str(amount)) <= self.maximum_side_bet

    @classmethod
    def from_config(cls, table: "TableConfig") -> "TableLimits":
        return cls(
            minimum_bet=table.min_bet,
            maximum_bet=table.max_bet,
            minimum_side_bet=table.min_side_bet,
            maximum_side_bet=table.max_side_bet,
        )
