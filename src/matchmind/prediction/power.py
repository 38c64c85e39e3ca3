"""Power score to scoring-rate conversion and contextual rate modulation."""

from __future__ import annotations

import dataclasses
import random

from .models import PredictionValidationError, SimulationContext

BASE_SCORING_RATE = 3.2
FORM_NOISE_MIN = 0.9
FORM_NOISE_MAX = 1.1


def validate_power(power: int, field: str = "power") -> int:
    if isinstance(power, bool) or not isinstance(power, int):
        raise PredictionValidationError(f"{field} must be an integer, got {power!r}")
    if not 0 <= power <= 100:
        raise PredictionValidationError(f"{field} must be between 0 and 100, got {power}")
    return power


def power_to_lambda(power: int, base_rate: float = BASE_SCORING_RATE) -> float:
    """Map a 0-100 power score linearly onto an expected-goals rate.

    ``0 -> 0.0``, ``50 -> 1.6`` and ``100 -> 3.2`` with the default rate.
    """

    validate_power(power)
    return (power / 100.0) * base_rate


@dataclasses.dataclass(slots=True)
class ContextModulator:
    """Apply fatigue, lineup, style and form-noise multipliers to a rate."""

    noise_min: float = FORM_NOISE_MIN
    noise_max: float = FORM_NOISE_MAX

    def __post_init__(self) -> None:
        if self.noise_min <= 0 or self.noise_max < self.noise_min:
            raise PredictionValidationError(
                "noise bounds must satisfy 0 < noise_min <= noise_max"
            )

    @staticmethod
    def deterministic_multiplier(context: SimulationContext) -> float:
        fatigue = 1.0 - context.fatigue_score / 200.0
        lineup = context.lineup_strength / 100.0
        return fatigue * lineup * context.style_matchup

    def modulate(self, base_lambda: float, context: SimulationContext | None = None) -> float:
        """Return the context-adjusted rate before per-trial noise."""

        context = context or SimulationContext.NEUTRAL
        return max(0.0, base_lambda * self.deterministic_multiplier(context))

    def effective_lambda(
        self,
        base_lambda: float,
        context: SimulationContext | None,
        rng: random.Random,
    ) -> float:
        """Return the per-trial rate, drawing a fresh form-noise factor."""

        noise = rng.uniform(self.noise_min, self.noise_max)
        return max(0.0, self.modulate(base_lambda, context) * noise)


__all__ = [
    "BASE_SCORING_RATE",
    "ContextModulator",
    "FORM_NOISE_MAX",
    "FORM_NOISE_MIN",
    "power_to_lambda",
    "validate_power",
]
