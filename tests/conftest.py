"""Pytest fixtures for rules engine tests."""

from decimal import Decimal
from random import Random

import pytest
from hypothesis import strategies as st

from engine.cards import Card, Rank, Suit, cards
from engine.game.round import RoundController, TableState
from engine.hand import Hand
from engine.rules import GameRules, TableLimits
from engine.shoe import Shoe, create_shoe
from engine.strategy.basic import BasicStrategy


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def shoe(rng):
    """A shuffled 6-deck shoe."""
    return create_shoe(num_decks=6, penetration=0.75, rng=rng)


@pytest.fixture
def empty_hand():
    """An empty player hand."""
    return Hand()


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return Hand(cards=cards("AS KH"))


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return Hand(cards=cards("AS 6H"))


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return Hand(cards=cards("TS 6H"))


@pytest.fixture
def pair_8s_hand():
    """A pair of 8s hand."""
    return Hand(cards=cards("8S 8H"))


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return Hand(cards=cards("TS 6H KC"))


@pytest.fixture
def rules():
    """Default rules."""
    return GameRules()


@pytest.fixture
def s17_rules():
    """Dealer stands on soft 17."""
    return GameRules(dealer_hits_soft_17=False)


@pytest.fixture
def limits():
    """Default table limits."""
    return TableLimits()


@pytest.fixture
def basic_strategy(rules):
    """Basic strategy for default rules."""
    return BasicStrategy(rules)


@pytest.fixture
def state():
    """A fresh session with 1000 in the bankroll."""
    return TableState(bankroll=Decimal("1000"))


@pytest.fixture
def make_controller(rules, limits, state):
    """
    Build a controller over a stacked shoe.

    Cards are dealt in the order given: player, dealer up, player, dealer
    hole, then any draws.
    """

    def _make(deal: str, **overrides) -> RoundController:
        return RoundController(
            rules=overrides.pop("rules", rules),
            limits=overrides.pop("limits", limits),
            shoe=Shoe.stacked(cards(deal)),
            state=overrides.pop("state", state),
            **overrides,
        )

    return _make


# Hypothesis strategies for property-based testing
@st.composite
def card_strategy(draw):
    """Generate a random card."""
    rank = draw(st.sampled_from(list(Rank)))
    suit = draw(st.sampled_from(list(Suit)))
    return Card(rank, suit)


@st.composite
def hand_strategy(draw, min_cards=2, max_cards=5):
    """Generate a random hand."""
    drawn = draw(st.lists(card_strategy(), min_size=min_cards, max_size=max_cards))
    return Hand(cards=drawn)
