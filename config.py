"""Configuration management with environment variable support."""

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class GameConfig:
    """Default table rules, consumed by `engine.rules.GameRules.from_config`."""

    num_decks: int = field(default_factory=lambda: int(os.getenv("BJ_NUM_DECKS", "6")))
    penetration: float = field(
        default_factory=lambda: float(os.getenv("BJ_PENETRATION", "0.75"))
    )
    dealer_hits_soft_17: bool = field(
        default_factory=lambda: _env_bool("BJ_DEALER_HITS_SOFT_17", "true")
    )
    blackjack_payout: float = field(
        default_factory=lambda: float(os.getenv("BJ_BLACKJACK_PAYOUT", "1.5"))
    )
    double_allowed: bool = field(default_factory=lambda: _env_bool("BJ_DOUBLE", "true"))
    double_after_split: bool = field(
        default_factory=lambda: _env_bool("BJ_DOUBLE_AFTER_SPLIT", "true")
    )
    surrender_allowed: bool = field(default_factory=lambda: _env_bool("BJ_SURRENDER", "true"))
    insurance_allowed: bool = field(default_factory=lambda: _env_bool("BJ_INSURANCE", "true"))
    max_splits: int = field(default_factory=lambda: int(os.getenv("BJ_MAX_SPLITS", "3")))
    resplit_aces: bool = field(default_factory=lambda: _env_bool("BJ_RESPLIT_ACES", "false"))
    hit_split_aces: bool = field(
        default_factory=lambda: _env_bool("BJ_HIT_SPLIT_ACES", "false")
    )


@dataclass(frozen=True)
class TableConfig:
    """Table limits."""

    min_bet: Decimal = field(default_factory=lambda: Decimal(os.getenv("BJ_MIN_BET", "5")))
    max_bet: Decimal = field(default_factory=lambda: Decimal(os.getenv("BJ_MAX_BET", "1000")))
    min_side_bet: Decimal = field(
        default_factory=lambda: Decimal(os.getenv("BJ_MIN_SIDE_BET", "1"))
    )
    max_side_bet: Decimal = field(
        default_factory=lambda: Decimal(os.getenv("BJ_MAX_SIDE_BET", "100"))
    )


@dataclass(frozen=True)
class LogConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("BJ_LOG_LEVEL", "WARNING"))
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    game: GameConfig = field(default_factory=GameConfig)
    table: TableConfig = field(default_factory=TableConfig)
    log: LogConfig = field(default_factory=LogConfig)
    initial_bankroll: Decimal = field(
        default_factory=lambda: Decimal(os.getenv("BJ_INITIAL_BANKROLL", "1000"))
    )


def configure_logging(log_config: LogConfig | None = None) -> None:
    """Apply the configured log level and format to the root logger."""
    log_config = log_config or config.log
    logging.basicConfig(
        level=getattr(logging, log_config.level.upper(), logging.WARNING),
        format=log_config.format,
    )


# Global configuration instance
config = AppConfig()
