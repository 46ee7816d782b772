"""House edge estimate from rule variations."""

from decimal import ROUND_HALF_UP, Decimal

from engine.rules import GameRules


class HouseEdgeEstimator:
    """
    Estimate house edge from table rules.

    Starts from a 0.50% baseline and applies a fixed, empirical adjustment
    for each rule. The adjustments are published approximations and are not
    derived from the rules.
    """

    # Rule effects on house edge (in percentage points)
    # Positive = increases house edge (bad for player)
    # Negative = decreases house edge (good for player)
    _DECK_EFFECTS = {
        1: Decimal("-0.48"),
        2: Decimal("-0.36"),
        4: Decimal("-0.16"),
        6: Decimal("-0.06"),
        8: Decimal("-0.02"),
    }

    _RULE_EFFECTS = {
        "bj_3_2": Decimal("-1.39"),
        "bj_6_5": Decimal("+1.36"),
        "h17": Decimal("+0.22"),
        "das": Decimal("-0.14"),
        "late_surrender": Decimal("-0.08"),
        "resplit_aces": Decimal("-0.06"),
    }

    _BASELINE = Decimal("0.50")

    def __init__(self, rules: GameRules | None = None) -> None:
        self.rules = rules or GameRules()

    def adjustments(self) -> dict[str, Decimal]:
        """The adjustments that apply to these rules, by name."""
        rules = self.rules
        applied: dict[str, Decimal] = {}

        deck_effect = self._DECK_EFFECTS.get(rules.num_decks)
        if deck_effect is not None:
            applied[f"{rules.num_decks}_deck"] = deck_effect

        if rules.blackjack_payout == 1.5:
            applied["bj_3_2"] = self._RULE_EFFECTS["bj_3_2"]
        elif rules.blackjack_payout == 1.2:
            applied["bj_6_5"] = self._RULE_EFFECTS["bj_6_5"]

        if rules.dealer_hits_soft_17:
            applied["h17"] = self._RULE_EFFECTS["h17"]
        if rules.double_after_split:
            applied["das"] = self._RULE_EFFECTS["das"]
        if rules.surrender_allowed:
            applied["late_surrender"] = self._RULE_EFFECTS["late_surrender"]
        if rules.resplit_aces:
            applied["resplit_aces"] = self._RULE_EFFECTS["resplit_aces"]

        return applied

    def calculate(self) -> Decimal:
        """
        Calculate the house edge for the configured rules.

        Returns:
            House edge as a percentage rounded to two places (e.g. 0.50 for 0.50%)
        """
        edge = self._BASELINE + sum(self.adjustments().values(), Decimal("0"))
        return edge.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def estimate_house_edge(rules: GameRules | None = None) -> Decimal:
    return HouseEdgeEstimator(rules).calculate()
