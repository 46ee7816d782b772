"""Wagers and their settlement state."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from engine.errors import BetAlreadySettledError


class BetStatus(Enum):
    """Lifecycle of a wager. Everything but PENDING is final."""

    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    PUSH = "push"
    SURRENDERED = "surrendered"
    CANCELLED = "cancelled"

    @property
    def is_final(self) -> bool:
        return self is not BetStatus.PENDING


class SideBetType(Enum):
    """Optional wagers resolved independently of the main hand."""

    PERFECT_PAIRS = "perfect_pairs"
    TWENTY_ONE_PLUS_THREE = "21+3"
    LUCKY_LADIES = "lucky_ladies"
    LUCKY_LUCKY = "lucky_lucky"
    ROYAL_MATCH = "royal_match"
    OVER_13 = "over_13"
    UNDER_13 = "under_13"
    EXACTLY_13 = "exactly_13"
    INSURANCE = "insurance"


@dataclass
class Bet:
    """
    A single wager.

    `payout` is the total amount returned to the player (stake included),
    so a lost bet pays 0 and a pushed bet pays back its amount. It is None
    exactly while the bet is pending.
    """

    amount: Decimal
    hand_id: str | None = None
    side_bet: SideBetType | None = None
    status: BetStatus = BetStatus.PENDING
    payout: Decimal | None = None
    payout_multiplier: Decimal | None = None
    bet_id: str = field(default_factory=lambda: uuid4().hex)
    placed_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.amount = Decimal(str(self.amount))

    @property
    def is_pending(self) -> bool:
        return self.status is BetStatus.PENDING

    @property
    def is_side_bet(self) -> bool:
        return self.side_bet is not None

    @property
    def net(self) -> Decimal:
        """Profit or loss once settled; zero while pending."""
        if self.payout is None:
            return Decimal("0")
        return self.payout - self.amount

    def settle(self, status: BetStatus, payout: Decimal) -> None:
        """Move a pending bet to its final status."""
        if not self.is_pending:
            raise BetAlreadySettledError(
                f"Bet {self.bet_id} already settled as {self.status.value}"
            )
        if status is BetStatus.PENDING:
            raise ValueError("Cannot settle a bet as pending")

        self.status = status
        self.payout = Decimal(str(payout))
        self.payout_multiplier = (
            self.payout / self.amount if self.amount else Decimal("0")
        )

    def cancel(self) -> None:
        """Void the bet and refund the stake."""
        self.settle(BetStatus.CANCELLED, self.amount)

    def double(self) -> None:
        """Double the stake of a pending main bet."""
        if not self.is_pending:
            raise BetAlreadySettledError(f"Cannot double settled bet {self.bet_id}")
        self.amount *= 2
