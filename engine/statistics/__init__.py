"""House edge estimate, outcome probabilities and Monte Carlo simulation."""

from engine.statistics.house_edge import HouseEdgeEstimator, estimate_house_edge
from engine.statistics.probability import (
    DealerDistribution,
    OutcomeProbabilities,
    ProbabilityEngine,
    bust_probability,
    dealer_distribution,
    outcome_probabilities,
)
from engine.statistics.simulation import SimulationResult, simulate

__all__ = [
    "HouseEdgeEstimator",
    "estimate_house_edge",
    "DealerDistribution",
    "OutcomeProbabilities",
    "ProbabilityEngine",
    "bust_probability",
    "dealer_distribution",
    "outcome_probabilities",
    "SimulationResult",
    "simulate",
]
