"""Tests for main-bet resolution and payouts."""

from decimal import Decimal

import pytest

from engine.bets import Bet, BetStatus
from engine.cards import Card, Rank, Suit, cards
from engine.errors import BetAlreadySettledError
from engine.hand import Hand
from engine.resolver import RoundResult, calculate_payout, determine_result, settle_bet


def hand(notation: str, **flags) -> Hand:
    return Hand(cards=cards(notation), **flags)


class TestDetermineResult:
    """Tests for comparing a player hand with the dealer's."""

    def test_surrender_first(self):
        assert determine_result(hand("TS 6H", is_surrendered=True), hand("AS KH")) is RoundResult.SURRENDER

    def test_player_bust_beats_dealer_bust(self):
        assert determine_result(hand("TS 6H KC"), hand("TD 6C 9S")) is RoundResult.BUST

    def test_both_blackjack_push(self):
        assert determine_result(hand("AS KH"), hand("AD QC")) is RoundResult.PUSH

    def test_player_blackjack(self):
        assert determine_result(hand("AS KH"), hand("TD 9C")) is RoundResult.BLACKJACK

    def test_player_blackjack_beats_dealer_three_card_21(self):
        assert determine_result(hand("AS KH"), hand("7D 7C 7S")) is RoundResult.BLACKJACK

    def test_dealer_blackjack(self):
        assert determine_result(hand("TS 9H"), hand("AD QC")) is RoundResult.LOSS

    def test_dealer_blackjack_beats_three_card_21(self):
        assert determine_result(hand("7S 7H 7C"), hand("AD QC")) is RoundResult.LOSS

    def test_dealer_bust(self):
        assert determine_result(hand("TS 2H"), hand("TD 6C 9S")) is RoundResult.WIN

    @pytest.mark.parametrize(
        "player,dealer,expected",
        [
            ("TS 9H", "TD 8C", RoundResult.WIN),
            ("TS 7H", "TD 8C", RoundResult.LOSS),
            ("TS 8H", "TD 8C", RoundResult.PUSH),
        ],
    )
    def test_compare_totals(self, player, dealer, expected):
        assert determine_result(hand(player), hand(dealer)) is expected

    def test_split_21_is_not_blackjack(self):
        assert determine_result(hand("AS KH", is_split=True), hand("TD QC")) is RoundResult.WIN

    def test_hole_card_is_revealed_for_comparison(self):
        dealer = Hand(cards=[Card(Rank.ACE, Suit.SPADES), Card(Rank.KING, Suit.HEARTS, face_up=False)])
        assert determine_result(hand("TS 9H"), dealer) is RoundResult.LOSS
        assert not dealer.cards[1].face_up


class TestCalculatePayout:
    """Tests for the payout table."""

    @pytest.mark.parametrize(
        "result,expected",
        [
            (RoundResult.BLACKJACK, Decimal("25")),
            (RoundResult.WIN, Decimal("20")),
            (RoundResult.PUSH, Decimal("10")),
            (RoundResult.SURRENDER, Decimal("5")),
            (RoundResult.LOSS, Decimal("0")),
            (RoundResult.BUST, Decimal("0")),
        ],
    )
    def test_payout_table(self, result, expected):
        assert calculate_payout(10, result, 1.5) == expected

    def test_six_to_five(self):
        assert calculate_payout(10, RoundResult.BLACKJACK, 1.2) == Decimal("22")

    def test_even_money(self):
        assert calculate_payout(Decimal("10"), RoundResult.BLACKJACK, 1.0) == Decimal("20")


class TestSettleBet:
    """Tests for settling a main bet."""

    def test_settle_sets_status_and_payout(self):
        bet = Bet(amount=Decimal("10"))
        assert bet.payout is None
        settle_bet(bet, RoundResult.BLACKJACK, 1.5)
        assert bet.status is BetStatus.WON
        assert bet.payout == Decimal("25")
        assert bet.payout_multiplier == Decimal("2.5")
        assert bet.net == Decimal("15")

    @pytest.mark.parametrize(
        "result,status",
        [
            (RoundResult.BUST, BetStatus.LOST),
            (RoundResult.LOSS, BetStatus.LOST),
            (RoundResult.PUSH, BetStatus.PUSH),
            (RoundResult.SURRENDER, BetStatus.SURRENDERED),
            (RoundResult.WIN, BetStatus.WON),
        ],
    )
    def test_result_to_status(self, result, status):
        assert settle_bet(Bet(amount=10), result).status is status

    def test_double_settlement_raises(self):
        bet = settle_bet(Bet(amount=10), RoundResult.WIN)
        with pytest.raises(BetAlreadySettledError):
            settle_bet(bet, RoundResult.LOSS)
        assert bet.status is BetStatus.WON

    def test_cancel_refunds(self):
        bet = Bet(amount=10)
        bet.cancel()
        assert bet.status is BetStatus.CANCELLED
        assert bet.payout == Decimal("10")
        with pytest.raises(BetAlreadySettledError):
            bet.cancel()
