"""Tests for the round controller.

Stacked decks deal in order: player, dealer up-card, player, dealer hole
card, then every later draw.
"""

from decimal import Decimal
from random import Random

import pytest
from hypothesis import given, settings, strategies as st

from engine.bets import BetStatus, SideBetType
from engine.errors import (
    IllegalActionError,
    RoundAbortedError,
    ShoeExhaustedError,
    ShoeOwnershipError,
)
from engine.game.events import EventType
from engine.game.phases import GamePhase
from engine.game.round import RoundController, TableState
from engine.resolver import RoundResult
from engine.rules import GameRules
from engine.shoe import create_shoe
from engine.strategy.basic import Action


def results(controller: RoundController) -> list[RoundResult]:
    return [controller.results[hand.hand_id] for hand in controller.player_hands]


class TestTableState:
    """Tests for the session bankroll."""

    def test_debit_and_credit(self):
        state = TableState(bankroll=100)
        state.debit(Decimal("40"))
        state.credit(Decimal("15"))
        assert state.bankroll == Decimal("75")

    def test_overdraw_raises(self):
        with pytest.raises(IllegalActionError):
            TableState(bankroll=10).debit(Decimal("11"))


class TestStartRound:
    """Tests for placing bets and the initial deal."""

    def test_deal_order_and_hole_card(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        assert controller.start_round(10) is GamePhase.PLAYER_TURN
        hand = controller.current_hand
        assert [str(c) for c in hand.cards] == ["10♠", "8♣"]
        assert controller.dealer_up_card.face_up
        assert not controller.dealer_hand.cards[1].face_up
        assert controller.dealer_hand.value == 9
        assert controller.state.bankroll == Decimal("990")

    def test_bet_outside_limits_rejected(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        with pytest.raises(IllegalActionError):
            controller.start_round(1)
        with pytest.raises(IllegalActionError):
            controller.start_round(5000)
        assert controller.phase is GamePhase.BETTING
        assert controller.state.bankroll == Decimal("1000")

    def test_insufficient_funds(self, make_controller):
        controller = make_controller("TS 9H 8C 7D", state=TableState(bankroll=20))
        with pytest.raises(IllegalActionError):
            controller.start_round(25)
        with pytest.raises(IllegalActionError):
            controller.start_round(20, {SideBetType.PERFECT_PAIRS: 5})

    def test_insurance_is_not_a_side_bet(self, make_controller):
        with pytest.raises(IllegalActionError):
            make_controller("TS 9H 8C 7D").start_round(10, {SideBetType.INSURANCE: 5})

    def test_side_bet_limits(self, make_controller):
        with pytest.raises(IllegalActionError):
            make_controller("TS 9H 8C 7D").start_round(10, {SideBetType.PERFECT_PAIRS: 500})

    def test_cannot_start_twice(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        controller.start_round(10)
        with pytest.raises(IllegalActionError):
            controller.start_round(10)

    def test_actions_outside_player_turn_rejected(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        with pytest.raises(IllegalActionError):
            controller.hit()
        assert controller.available_actions() == []
        assert controller.recommended_action() is None


class TestNaturals:
    """Tests for blackjacks on the initial deal."""

    def test_player_blackjack_pays_3_to_2(self, make_controller):
        controller = make_controller("AS 9H KC 7D")
        assert controller.start_round(10) is GamePhase.SETTLEMENT
        assert results(controller) == [RoundResult.BLACKJACK]
        assert controller.state.bankroll == Decimal("1015")
        assert controller.dealer_hand.value == 16
        assert len(controller.dealer_hand) == 2

    def test_six_to_five_blackjack(self, make_controller):
        controller = make_controller("AS 9H KC 7D", rules=GameRules(blackjack_payout=1.2))
        controller.start_round(10)
        assert controller.state.bankroll == Decimal("1012")

    def test_dealer_blackjack_ten_up(self, make_controller):
        controller = make_controller("9S KH 8C AD")
        assert controller.start_round(10) is GamePhase.SETTLEMENT
        assert results(controller) == [RoundResult.LOSS]
        assert controller.dealer_hand.is_blackjack
        assert controller.state.bankroll == Decimal("990")

    def test_both_blackjack_push(self, make_controller):
        controller = make_controller("AS KH KC AD")
        controller.start_round(10)
        assert results(controller) == [RoundResult.PUSH]
        assert controller.state.bankroll == Decimal("1000")

    def test_no_peek_on_small_up_card(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        assert controller.start_round(10) is GamePhase.PLAYER_TURN


class TestInsurance:
    """Tests for insurance against a dealer ace."""

    def test_offered_against_ace(self, make_controller):
        controller = make_controller("TS AH 9C KD")
        assert controller.start_round(10) is GamePhase.DEALING
        assert controller.insurance_offered
        assert controller.can_insure
        with pytest.raises(IllegalActionError):
            controller.hit()

    def test_insurance_pays_2_to_1(self, make_controller):
        controller = make_controller("TS AH 9C KD")
        controller.start_round(10)
        assert controller.take_insurance() is GamePhase.SETTLEMENT
        assert controller.insurance_bet.status is BetStatus.WON
        assert controller.insurance_bet.payout == Decimal("15")
        assert controller.state.bankroll == Decimal("1000")
        assert controller.round_net == Decimal("0")

    def test_insurance_lost_when_no_blackjack(self, make_controller):
        controller = make_controller("TS AH 9C 7D")
        controller.start_round(10)
        assert controller.take_insurance(2) is GamePhase.PLAYER_TURN
        controller.stand()
        assert controller.insurance_bet.status is BetStatus.LOST
        assert results(controller) == [RoundResult.WIN]
        assert controller.state.bankroll == Decimal("1008")

    def test_insurance_capped_at_half_bet(self, make_controller):
        controller = make_controller("TS AH 9C KD")
        controller.start_round(10)
        with pytest.raises(IllegalActionError):
            controller.take_insurance(6)
        assert controller.insurance_offered

    def test_decline(self, make_controller):
        controller = make_controller("TS AH 9C 7D")
        controller.start_round(10)
        assert controller.decline_insurance() is GamePhase.PLAYER_TURN
        assert controller.insurance_bet is None
        with pytest.raises(IllegalActionError):
            controller.decline_insurance()

    def test_not_offered_with_player_blackjack(self, make_controller):
        controller = make_controller("AS AH KC 7D")
        assert controller.start_round(10) is GamePhase.SETTLEMENT
        assert not controller.insurance_offered
        assert controller.state.bankroll == Decimal("1015")

    def test_not_offered_when_disabled(self, make_controller):
        controller = make_controller("TS AH 9C 7D", rules=GameRules(insurance_allowed=False))
        assert controller.start_round(10) is GamePhase.PLAYER_TURN


class TestPlayerActions:
    """Tests for hit, stand, double, split and surrender."""

    def test_stand_and_dealer_busts(self, make_controller):
        controller = make_controller("TS 9H 8C 7D TC")
        controller.start_round(10)
        assert controller.available_actions() == [
            Action.HIT, Action.STAND, Action.DOUBLE, Action.SURRENDER,
        ]
        assert controller.recommended_action() is Action.STAND
        assert controller.stand() is GamePhase.SETTLEMENT
        assert controller.dealer_hand.is_busted
        assert results(controller) == [RoundResult.WIN]
        assert controller.state.bankroll == Decimal("1010")
        assert controller.state.rounds_played == 1
        assert len(controller.state.bet_history) == 1

    def test_bust_skips_dealer_draw(self, make_controller):
        controller = make_controller("TS 9H 6C 7D 8S 2C")
        controller.start_round(10)
        assert controller.hit() is GamePhase.SETTLEMENT
        assert results(controller) == [RoundResult.BUST]
        assert controller.shoe.cards_remaining == 1
        assert all(card.face_up for card in controller.dealer_hand.cards)
        assert controller.state.bankroll == Decimal("990")

    def test_hit_to_21_ends_hand(self, make_controller):
        controller = make_controller("TS 9H 6C 7D 5S TC")
        controller.start_round(10)
        assert controller.hit() is GamePhase.SETTLEMENT
        assert controller.player_hands[0].value == 21

    def test_double_down(self, make_controller):
        controller = make_controller("6S 9H 5C 7D TS TC")
        controller.start_round(10)
        assert controller.recommended_action() is Action.DOUBLE
        assert controller.double_down() is GamePhase.SETTLEMENT
        hand = controller.player_hands[0]
        assert hand.is_doubled and len(hand) == 3
        bet = controller.round_bets[0]
        assert bet.amount == Decimal("20")
        assert bet.payout == Decimal("40")
        assert controller.state.bankroll == Decimal("1020")

    def test_double_needs_funds(self, make_controller):
        controller = make_controller("6S 9H 5C 7D", state=TableState(bankroll=15))
        controller.start_round(10)
        assert not controller.can_double
        with pytest.raises(IllegalActionError):
            controller.double_down()

    def test_double_not_allowed_by_rules(self, make_controller):
        controller = make_controller("6S 9H 5C 7D", rules=GameRules(double_allowed=False))
        controller.start_round(10)
        assert Action.DOUBLE not in controller.available_actions()
        assert controller.recommended_action() is Action.HIT

    def test_surrender(self, make_controller):
        controller = make_controller("TS TH 6C 7D")
        controller.start_round(10)
        assert controller.recommended_action() is Action.SURRENDER
        assert controller.surrender() is GamePhase.SETTLEMENT
        assert results(controller) == [RoundResult.SURRENDER]
        assert controller.state.bankroll == Decimal("995")

    def test_surrender_not_after_hit(self, make_controller):
        controller = make_controller("TS TH 2C 7D 3S")
        controller.start_round(10)
        controller.hit()
        assert not controller.can_surrender
        with pytest.raises(IllegalActionError):
            controller.surrender()

    def test_play_dispatches(self, make_controller):
        controller = make_controller("TS 9H 8C 7D TC")
        controller.start_round(10)
        assert controller.play(Action.STAND) is GamePhase.SETTLEMENT

    def test_play_rejects_conditional_actions(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        controller.start_round(10)
        with pytest.raises(IllegalActionError):
            controller.play(Action.DOUBLE_OR_HIT)


class TestSplit:
    """Tests for splitting pairs."""

    def test_split_eights(self, make_controller):
        controller = make_controller("8S 9H 8C 7D 3S TC TH")
        controller.start_round(10)
        assert controller.recommended_action() is Action.SPLIT
        assert controller.split() is GamePhase.PLAYER_TURN

        first, second = controller.player_hands
        assert first.value == 11 and second.value == 18
        assert first.is_split and second.is_split
        assert controller.current_hand is first
        assert controller.state.bankroll == Decimal("980")
        assert not controller.can_surrender
        assert controller.can_double

        controller.stand()
        assert controller.current_hand is second
        assert controller.stand() is GamePhase.SETTLEMENT
        assert results(controller) == [RoundResult.WIN, RoundResult.WIN]
        assert controller.state.bankroll == Decimal("1020")
        assert len({bet.hand_id for bet in controller.round_bets}) == 2

    def test_split_aces_get_one_card(self, make_controller):
        controller = make_controller("AS 9H AC 7D KS 5C TD")
        controller.start_round(10)
        assert controller.split() is GamePhase.SETTLEMENT
        # split 21 is not a natural and pays even money
        assert results(controller) == [RoundResult.WIN, RoundResult.WIN]
        assert controller.state.bankroll == Decimal("1020")

    def test_split_aces_cannot_resplit_by_default(self, make_controller):
        controller = make_controller("AS 9H AC 7D AH 5C TD")
        controller.start_round(10)
        assert controller.split() is GamePhase.SETTLEMENT

    def test_resplit_aces_when_allowed(self, make_controller):
        controller = make_controller(
            "AS 9H AC 7D AH 5C TD", rules=GameRules(resplit_aces=True)
        )
        controller.start_round(10)
        assert controller.split() is GamePhase.PLAYER_TURN
        assert controller.available_actions() == [Action.STAND, Action.SPLIT]
        assert controller.stand() is GamePhase.SETTLEMENT

    def test_hit_split_aces_when_allowed(self, make_controller):
        controller = make_controller(
            "AS 9H AC 7D 5S 5C TD", rules=GameRules(hit_split_aces=True)
        )
        controller.start_round(10)
        assert controller.split() is GamePhase.PLAYER_TURN
        assert controller.can_hit

    def test_max_splits(self, make_controller):
        controller = make_controller("8S 9H 8C 7D 8D 3C", rules=GameRules(max_splits=1))
        controller.start_round(10)
        controller.split()
        assert controller.current_hand.is_pair
        assert not controller.can_split
        assert Action.SPLIT not in controller.available_actions()

    def test_no_double_after_split_without_das(self, make_controller):
        controller = make_controller(
            "8S 9H 8C 7D 3S TC", rules=GameRules(double_after_split=False)
        )
        controller.start_round(10)
        controller.split()
        assert controller.current_hand.value == 11
        assert not controller.can_double

    def test_split_non_pair_rejected(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        controller.start_round(10)
        with pytest.raises(IllegalActionError):
            controller.split()


class TestSideBets:
    """Tests for side bets settled with the round."""

    def test_side_bets_settle_on_initial_cards(self, make_controller):
        controller = make_controller("8S 9H 8C 7D TC")
        controller.start_round(
            10,
            {SideBetType.PERFECT_PAIRS: 5, SideBetType.TWENTY_ONE_PLUS_THREE: 5},
        )
        assert controller.state.bankroll == Decimal("980")
        controller.stand()

        pairs, plus_three = controller.side_bets
        assert pairs.payout == Decimal("55")
        assert plus_three.payout == Decimal("10")
        assert controller.state.bankroll == Decimal("1065")

    def test_royal_match_and_over_13(self, make_controller):
        controller = make_controller("KH 9H QH 7D TC")
        controller.start_round(10, {SideBetType.ROYAL_MATCH: 5, SideBetType.OVER_13: 5})
        controller.stand()

        royal, over = controller.side_bets
        assert royal.payout == Decimal("130")
        assert over.payout == Decimal("10")
        assert controller.state.bankroll == Decimal("1140")

    def test_losing_side_bet(self, make_controller):
        controller = make_controller("TS 9H 8C 7D TC")
        controller.start_round(10, {SideBetType.LUCKY_LADIES: 5})
        controller.stand()
        assert controller.side_bets[0].status is BetStatus.LOST
        assert controller.state.bankroll == Decimal("1005")


class TestShoeExhaustion:
    """Tests for aborting a round when the shoe runs out."""

    def test_exhausted_during_deal(self, make_controller):
        controller = make_controller("TS 9H 8C")
        with pytest.raises(ShoeExhaustedError):
            controller.start_round(10)

        assert controller.is_aborted
        assert controller.phase is GamePhase.SETTLEMENT
        assert controller.state.bankroll == Decimal("1000")
        assert controller.round_bets[0].status is BetStatus.CANCELLED
        assert controller.events.of_type(EventType.ROUND_ABORTED)
        with pytest.raises(RoundAbortedError):
            controller.hit()

    def test_exhausted_during_dealer_play(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        controller.start_round(10, {SideBetType.PERFECT_PAIRS: 5})
        with pytest.raises(ShoeExhaustedError):
            controller.stand()
        assert controller.phase is GamePhase.SETTLEMENT
        assert controller.state.bankroll == Decimal("1000")
        assert all(bet.status is BetStatus.CANCELLED for bet in controller.round_bets)

    def test_finish_aborted_round(self, make_controller):
        controller = make_controller("TS 9H 8C")
        with pytest.raises(ShoeExhaustedError):
            controller.start_round(10)
        assert controller.finish_round().bankroll == Decimal("1000")
        assert controller.phase is GamePhase.BETTING
        assert not controller.is_aborted


class TestRoundLifecycle:
    """Tests for consecutive rounds, events and shoe ownership."""

    def test_two_rounds(self, make_controller):
        controller = make_controller("AS 9H KC 7D TS 9H 8C 7D TC")
        controller.start_round(10)
        with pytest.raises(IllegalActionError):
            controller.start_round(10)
        state = controller.finish_round()
        assert state.rounds_played == 1
        assert controller.phase is GamePhase.BETTING
        assert controller.player_hands == []

        controller.start_round(10)
        controller.stand()
        assert controller.state.bankroll == Decimal("1025")
        assert len(controller.state.main_bets) == 2

    def test_finish_round_only_after_settlement(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        controller.start_round(10)
        with pytest.raises(IllegalActionError):
            controller.finish_round()

    def test_event_stream(self, make_controller):
        controller = make_controller("TS 9H 8C 7D TC")
        seen = []
        controller.subscribe(seen.append)
        controller.start_round(10)
        controller.stand()

        dealt = [e for e in seen if e.event_type is EventType.CARD_DEALT]
        assert [e.data["card"] for e in dealt] == ["10♠", "9♥", "8♣", "??"]
        phases = [e.data["to_phase"] for e in seen if e.event_type is EventType.PHASE_CHANGED]
        assert phases == ["dealing", "player_turn", "dealer_turn", "settlement"]
        assert seen[-1].event_type is EventType.ROUND_ENDED
        assert seen[-1].data["net"] == Decimal("10")

    def test_history_covers_current_round_only(self, make_controller):
        controller = make_controller(" ".join(["TS 9H 8C 7D TC"] * 20))
        sizes = set()
        for _ in range(20):
            controller.start_round(10)
            controller.stand()
            assert controller.events.history[0].event_type is EventType.BET_PLACED
            assert [t.to_phase.value for t in controller.phases.history] == [
                "dealing", "player_turn", "dealer_turn", "settlement",
            ]
            sizes.add(len(controller.events.history))
            controller.finish_round()
        assert len(sizes) == 1
        assert controller.state.rounds_played == 20

    def test_shoe_has_one_owner(self, make_controller):
        controller = make_controller("TS 9H 8C 7D")
        with pytest.raises(ShoeOwnershipError):
            RoundController(shoe=controller.shoe)
        controller.close()
        with RoundController(shoe=controller.shoe) as other:
            assert other.shoe.owner is other
        assert controller.shoe.owner is None

    def test_default_shoe_from_rules(self):
        controller = RoundController(rules=GameRules(num_decks=2), rng=Random(7))
        assert controller.shoe.total_cards == 104

    @settings(max_examples=50, deadline=None)
    @given(st.integers(min_value=0, max_value=10_000))
    def test_bankroll_matches_round_net(self, seed):
        state = TableState(bankroll=Decimal("1000"))
        controller = RoundController(shoe=create_shoe(6, rng=Random(seed)), state=state)
        controller.start_round(10, {SideBetType.PERFECT_PAIRS: 5})
        if controller.insurance_offered:
            controller.decline_insurance()
        while controller.phase is GamePhase.PLAYER_TURN:
            controller.play(controller.recommended_action())

        assert controller.phase is GamePhase.SETTLEMENT
        assert all(not bet.is_pending for bet in controller.round_bets)
        assert state.bankroll == Decimal("1000") + controller.round_net
