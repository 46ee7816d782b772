"""Main-bet resolution: outcome of a hand against the dealer and its payout."""

import logging
from decimal import Decimal
from enum import Enum

from engine.bets import Bet, BetStatus
from engine.hand import Hand

logger = logging.getLogger(__name__)


class RoundResult(Enum):
    """Outcome of one player hand."""

    BUST = "bust"
    BLACKJACK = "blackjack"
    WIN = "win"
    LOSS = "loss"
    PUSH = "push"
    SURRENDER = "surrender"

    @property
    def bet_status(self) -> BetStatus:
        return _STATUS_BY_RESULT[self]


_STATUS_BY_RESULT = {
    RoundResult.BUST: BetStatus.LOST,
    RoundResult.BLACKJACK: BetStatus.WON,
    RoundResult.WIN: BetStatus.WON,
    RoundResult.LOSS: BetStatus.LOST,
    RoundResult.PUSH: BetStatus.PUSH,
    RoundResult.SURRENDER: BetStatus.SURRENDERED,
}


def determine_result(player: Hand, dealer: Hand) -> RoundResult:
    """
    Compare a finished player hand with the dealer's.

    The dealer hand is evaluated as revealed; a hole card still face down
    is turned up first.
    """
    if player.is_surrendered:
        return RoundResult.SURRENDER
    if player.is_busted:
        return RoundResult.BUST

    if any(not card.face_up for card in dealer.cards):
        dealer = dealer.copy()
        dealer.reveal()

    player_bj = player.is_blackjack
    dealer_bj = dealer.is_blackjack
    if player_bj and dealer_bj:
        return RoundResult.PUSH
    if player_bj:
        return RoundResult.BLACKJACK
    if dealer_bj:
        return RoundResult.LOSS
    if dealer.is_busted:
        return RoundResult.WIN

    if player.value > dealer.value:
        return RoundResult.WIN
    if player.value < dealer.value:
        return RoundResult.LOSS
    return RoundResult.PUSH


def calculate_payout(
    bet: Decimal | int | float,
    result: RoundResult,
    blackjack_payout: float = 1.5,
) -> Decimal:
    """
    Total returned to the player for a main bet, stake included.

    >>> calculate_payout(10, RoundResult.BLACKJACK, 1.5)
    Decimal('25.0')
    """
    amount = Decimal(str(bet))
    if result is RoundResult.BLACKJACK:
        return amount * (1 + Decimal(str(blackjack_payout)))
    if result is RoundResult.WIN:
        return amount * 2
    if result is RoundResult.PUSH:
        return amount
    if result is RoundResult.SURRENDER:
        return amount * Decimal("0.5")
    return Decimal("0")


def settle_bet(bet: Bet, result: RoundResult, blackjack_payout: float = 1.5) -> Bet:
    """Settle a pending main bet from a hand result."""
    payout = calculate_payout(bet.amount, result, blackjack_payout)
    bet.settle(result.bet_status, payout)
    logger.debug("Bet %s settled: %s pays %s", bet.bet_id, result.value, payout)
    return bet
