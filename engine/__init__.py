"""Blackjack rules engine - 100% UI-agnostic."""

from engine.cards import Card, Rank, Suit
from engine.hand import Hand, create_hand
from engine.rules import GameRules, TableLimits
from engine.shoe import Shoe, create_shoe

__all__ = [
    "Card",
    "Rank",
    "Suit",
    "Hand",
    "create_hand",
    "GameRules",
    "TableLimits",
    "Shoe",
    "create_shoe",
]
