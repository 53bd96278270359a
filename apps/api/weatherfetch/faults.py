from __future__ import annotations

from enum import Enum
from typing import Mapping, Optional

from weatherfetch.errors import FaultKind
from weatherfetch.forecast import City, RandomSource

TRANSIENT_FAILURE_PROBABILITY = 0.5


class FaultRule(str, Enum):
    NEVER_FAIL = "never_fail"
    ALWAYS_FAIL = "always_fail"
    FIRST_ATTEMPT_THEN_PROBABILISTIC = "first_attempt_then_probabilistic"


DEFAULT_RULES: Mapping[str, FaultRule] = {
    "Boston": FaultRule.ALWAYS_FAIL,
    "Phoenix": FaultRule.FIRST_ATTEMPT_THEN_PROBABILISTIC,
}


def decide_fault(
    rule: FaultRule,
    attempt: int,
    rng: RandomSource,
    probability: float = TRANSIENT_FAILURE_PROBABILITY,
) -> Optional[FaultKind]:
    """Outcome of one attempt under `rule`: a fault kind, or None for success.

    Only the probabilistic branch draws from `rng`, and it draws exactly once.
    """
    if rule is FaultRule.ALWAYS_FAIL:
        return FaultKind.SERVICE_UNAVAILABLE
    if rule is FaultRule.FIRST_ATTEMPT_THEN_PROBABILISTIC:
        if attempt <= 1:
            return FaultKind.TRANSIENT_ERROR
        if rng.random() < probability:
            return FaultKind.TRANSIENT_ERROR
    return None


class FaultInjector:
    def __init__(
        self,
        rng: RandomSource,
        rules: Mapping[str, FaultRule] = DEFAULT_RULES,
        probability: float = TRANSIENT_FAILURE_PROBABILITY,
    ):
        self.rng = rng
        self.rules = dict(rules)
        self.probability = probability

    def rule_for(self, city: City) -> FaultRule:
        return self.rules.get(city.name, FaultRule.NEVER_FAIL)

    def decide(self, city: City, attempt: int) -> Optional[FaultKind]:
        return decide_fault(self.rule_for(city), attempt, self.rng, self.probability)
