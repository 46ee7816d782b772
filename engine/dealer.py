"""Dealer play under fixed house rules."""

import logging

from engine.hand import Hand
from engine.shoe import Shoe

logger = logging.getLogger(__name__)


def dealer_should_hit(hand: Hand, hit_soft_17: bool) -> bool:
    """Dealer hits below 17, and on soft 17 when the table is H17."""
    value = hand.value
    if value < 17:
        return True
    if value == 17 and hit_soft_17 and hand.is_soft:
        return True
    return False


def play_dealer_to_completion(hand: Hand, shoe: Shoe, hit_soft_17: bool) -> Hand:
    """
    Reveal the hole card and draw until the dealer must stand.

    The input hand is left untouched; the played hand is returned. A shoe
    that runs dry mid-hand raises `ShoeExhaustedError` rather than stopping
    short.
    """
    played = hand.copy()
    played.reveal()

    while dealer_should_hit(played, hit_soft_17):
        card = shoe.draw()
        played.add_card(card)
        logger.debug("Dealer draws %s, total %d", card, played.value)

    return played
