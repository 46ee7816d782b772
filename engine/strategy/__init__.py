"""Playing advice and betting progressions."""

from engine.strategy.basic import Action, AdvisorFlags, BasicStrategy, get_recommended_action
from engine.strategy.betting import (
    BETTING_STRATEGIES,
    BettingStrategy,
    ProgressionTracker,
    get_next_bet,
)

__all__ = [
    "Action",
    "AdvisorFlags",
    "BasicStrategy",
    "get_recommended_action",
    "BETTING_STRATEGIES",
    "BettingStrategy",
    "ProgressionTracker",
    "get_next_bet",
]
