"""Tests for the dealer automaton."""

from random import Random

import pytest
from hypothesis import given, settings, strategies as st

from engine.cards import Card, Rank, Suit, cards
from engine.dealer import dealer_should_hit, play_dealer_to_completion
from engine.errors import ShoeExhaustedError
from engine.hand import Hand
from engine.shoe import Shoe, create_shoe


def dealer_hand(up: str, hole: str) -> Hand:
    up_card, hole_card = cards(f"{up} {hole}")
    return Hand(cards=[up_card, hole_card.turned_down()])


class TestDealerShouldHit:
    """Tests for the hit/stand rule."""

    def test_hits_below_17(self):
        assert dealer_should_hit(Hand(cards=cards("TS 6H")), hit_soft_17=False)

    def test_stands_on_hard_17(self):
        assert not dealer_should_hit(Hand(cards=cards("TS 7H")), hit_soft_17=True)

    def test_soft_17_depends_on_rule(self, soft_17_hand):
        assert dealer_should_hit(soft_17_hand, hit_soft_17=True)
        assert not dealer_should_hit(soft_17_hand, hit_soft_17=False)

    def test_stands_on_soft_18(self):
        assert not dealer_should_hit(Hand(cards=cards("AS 7H")), hit_soft_17=True)


class TestPlayDealer:
    """Tests for playing the dealer hand out."""

    def test_reveals_hole_card(self):
        hand = dealer_hand("TS", "8H")
        played = play_dealer_to_completion(hand, Shoe.stacked([]), hit_soft_17=True)
        assert all(card.face_up for card in played.cards)
        assert played.value == 18

    def test_input_not_mutated(self):
        hand = dealer_hand("TS", "6H")
        play_dealer_to_completion(hand, Shoe.stacked(cards("5C")), hit_soft_17=True)
        assert len(hand.cards) == 2
        assert not hand.cards[1].face_up

    def test_draws_to_17(self):
        hand = dealer_hand("5S", "6H")
        shoe = Shoe.stacked(cards("2C 3D 9S"))
        played = play_dealer_to_completion(hand, shoe, hit_soft_17=False)
        assert played.value == 25
        assert played.is_busted
        assert shoe.cards_remaining == 0

    def test_hits_soft_17_under_h17(self):
        hand = dealer_hand("AS", "6H")
        played = play_dealer_to_completion(hand, Shoe.stacked(cards("2C")), hit_soft_17=True)
        assert played.value == 19

    def test_stands_soft_17_under_s17(self):
        hand = dealer_hand("AS", "6H")
        shoe = Shoe.stacked(cards("2C"))
        played = play_dealer_to_completion(hand, shoe, hit_soft_17=False)
        assert played.value == 17
        assert shoe.cards_remaining == 1

    def test_exhaustion_is_surfaced(self):
        hand = dealer_hand("TS", "2H")
        with pytest.raises(ShoeExhaustedError):
            play_dealer_to_completion(hand, Shoe.stacked(cards("2C")), hit_soft_17=True)

    @settings(max_examples=50)
    @given(st.integers(min_value=0, max_value=10_000), st.booleans())
    def test_always_halts_at_17_or_bust(self, seed, hit_soft_17):
        shoe = create_shoe(1, rng=Random(seed))
        hand = Hand(cards=[shoe.draw(), shoe.draw(face_up=False)])
        played = play_dealer_to_completion(hand, shoe, hit_soft_17)
        assert played.value >= 17 or played.is_busted
        assert not dealer_should_hit(played, hit_soft_17)

    def test_ace_counts_low_after_bust_risk(self):
        hand = Hand(cards=[Card(Rank.ACE, Suit.SPADES), Card(Rank.FIVE, Suit.HEARTS, face_up=False)])
        played = play_dealer_to_completion(hand, Shoe.stacked(cards("TC 4D")), hit_soft_17=True)
        # A-5 (16) + T = hard 16, + 4 = 20
        assert played.value == 20
