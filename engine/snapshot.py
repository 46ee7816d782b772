"""Read-only snapshot models handed to the presentation layer."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

from engine.bets import Bet
from engine.cards import Card
from engine.hand import Hand
from engine.shoe import Shoe

if TYPE_CHECKING:
    from engine.game.round import RoundController


class CardView(BaseModel):
    """Card representation; face-down cards carry no rank or suit."""

    model_config = ConfigDict(frozen=True)

    face_up: bool
    rank: str | None = None
    suit: str | None = None
    value: int | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardView":
        if not card.face_up:
            return cls(face_up=False)
        return cls(
            face_up=True,
            rank=str(card.rank),
            suit=card.suit.name.lower(),
            value=card.value,
        )


class HandView(BaseModel):
    """Hand representation."""

    model_config = ConfigDict(frozen=True)

    hand_id: str
    cards: list[CardView]
    value: int
    is_soft: bool
    is_blackjack: bool
    is_busted: bool
    is_doubled: bool
    is_split: bool
    is_surrendered: bool
    is_finished: bool

    @classmethod
    def from_hand(cls, hand: Hand) -> "HandView":
        return cls(
            hand_id=hand.hand_id,
            cards=[CardView.from_card(card) for card in hand.cards],
            value=hand.value,
            is_soft=hand.is_soft,
            is_blackjack=hand.is_blackjack,
            is_busted=hand.is_busted,
            is_doubled=hand.is_doubled,
            is_split=hand.is_split,
            is_surrendered=hand.is_surrendered,
            is_finished=hand.is_finished,
        )


class BetView(BaseModel):
    """Bet representation."""

    model_config = ConfigDict(frozen=True)

    bet_id: str
    amount: Decimal
    status: Literal["pending", "won", "lost", "push", "surrendered", "cancelled"]
    side_bet: str | None = None
    hand_id: str | None = None
    payout: Decimal | None = None
    payout_multiplier: Decimal | None = None
    placed_at: datetime

    @classmethod
    def from_bet(cls, bet: Bet) -> "BetView":
        return cls(
            bet_id=bet.bet_id,
            amount=bet.amount,
            status=bet.status.value,
            side_bet=bet.side_bet.value if bet.side_bet else None,
            hand_id=bet.hand_id,
            payout=bet.payout,
            payout_multiplier=bet.payout_multiplier,
            placed_at=bet.placed_at,
        )


class ShoeView(BaseModel):
    """Shoe representation."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    num_decks: int
    total_cards: int
    cards_remaining: int
    cards_dealt: int
    penetration: float
    cut_card_index: int
    needs_shuffle: bool

    @classmethod
    def from_shoe(cls, shoe: Shoe) -> "ShoeView":
        return cls.model_validate(shoe)


class RoundSnapshot(BaseModel):
    """Everything the presentation layer needs to draw a table."""

    model_config = ConfigDict(frozen=True)

    phase: str
    previous_phase: str | None = None
    player_hands: list[HandView] = Field(default_factory=list)
    current_hand_index: int = 0
    dealer_hand: HandView
    bets: list[BetView] = Field(default_factory=list)
    shoe: ShoeView
    bankroll: Decimal
    insurance_offered: bool = False
    is_aborted: bool = False
    available_actions: list[str] = Field(default_factory=list)
    results: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def capture(cls, controller: "RoundController") -> "RoundSnapshot":
        previous = controller.phases.previous_phase
        return cls(
            phase=controller.phase.value,
            previous_phase=previous.value if previous else None,
            player_hands=[HandView.from_hand(hand) for hand in controller.player_hands],
            current_hand_index=controller.current_hand_index,
            dealer_hand=HandView.from_hand(controller.dealer_hand),
            bets=[BetView.from_bet(bet) for bet in controller.round_bets],
            shoe=ShoeView.from_shoe(controller.shoe),
            bankroll=controller.state.bankroll,
            insurance_offered=controller.insurance_offered,
            is_aborted=controller.is_aborted,
            available_actions=[action.name.lower() for action in controller.available_actions()],
            results={hand_id: result.value for hand_id, result in controller.results.items()},
        )
