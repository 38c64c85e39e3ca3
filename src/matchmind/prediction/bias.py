"""Context-adjusted correction of headline predictions."""

from __future__ import annotations

import enum
import logging
import math
from typing import Dict, Iterable, List, Sequence

from .configuration import BiasSettings
from .models import (
    AdjustedPrediction,
    ContextFactor,
    ContextFactorType,
    OracleAnalysis,
    Outcome,
    OutcomeDistribution,
    PredictionValidationError,
    format_score,
    outcome_of,
    parse_score,
)

logger = logging.getLogger(__name__)

_DEDICATED_TYPES = frozenset(
    {ContextFactorType.INJURIES, ContextFactorType.TEAM_MORALE, ContextFactorType.PRESSURE}
)


class HomeForm(str, enum.Enum):
    GOOD = "good"
    AVERAGE = "average"
    POOR = "poor"

    @classmethod
    def coerce(cls, value: "HomeForm | str") -> "HomeForm":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise PredictionValidationError(
                f"home_form must be one of good/average/poor, got {value!r}"
            ) from exc


def _scaled_down(goals: int, factor: float) -> int:
    return int(goals * factor)


def _scaled_up(goals: int, factor: float) -> int:
    return math.ceil(goals * factor)


def _tier_value(value: float, tiers: Dict, default: float) -> float:
    for threshold in sorted(tiers, reverse=True):
        if value >= threshold:
            return tiers[threshold]
    return default


class BiasCorrector:
    """Dampen implausible predictions and fold in qualitative context."""

    def __init__(self, settings: BiasSettings | None = None) -> None:
        self.settings = settings or BiasSettings()

    # -- quick fix ----------------------------------------------------------

    def adjust_quick_fix(
        self,
        base_score: str,
        power_diff: int,
        total_injuries: int,
        home_form: HomeForm | str,
    ) -> str:
        """Dampen an extreme home blow-out baseline.

        Only baselines where the home side leads by at least
        ``quick_fix.blowout_margin`` goals qualify; anything else is returned
        unchanged.
        """

        home, away = parse_score(base_score)
        form = HomeForm.coerce(home_form)
        rules = self.settings.quick_fix
        if home - away < rules.blowout_margin:
            return format_score(home, away)

        if power_diff > rules.large_power_gap and total_injuries > rules.heavy_injuries:
            adjusted = "2-0"
        elif power_diff > rules.large_power_gap and form is HomeForm.POOR:
            adjusted = "2-1"
        elif power_diff > rules.moderate_power_gap and total_injuries > rules.moderate_injuries:
            adjusted = "1-0"
        else:
            adjusted = format_score(home, away)
        if adjusted != base_score:
            logger.debug(
                "Quick fix %s -> %s (diff=%d injuries=%d form=%s)",
                base_score,
                adjusted,
                power_diff,
                total_injuries,
                form.value,
            )
        return adjusted

    # -- correction terms -----------------------------------------------------

    def injury_correction(self, factors: Iterable[ContextFactor]) -> float:
        total = sum(
            _tier_value(factor.score, self.settings.injury_tiers, 0.0)
            for factor in factors
            if factor.type is ContextFactorType.INJURIES
        )
        return min(self.settings.injury_cap, total)

    def form_adjustment(self, factors: Iterable[ContextFactor]) -> float:
        scores = [f.score for f in factors if f.type is ContextFactorType.TEAM_MORALE]
        if not scores:
            return 0.0
        mean = sum(scores) / len(scores)
        return _tier_value(mean, self.settings.form_tiers, self.settings.form_floor)

    def pressure_correction(self, factors: Iterable[ContextFactor]) -> float:
        points = 0
        for factor in factors:
            if factor.type is not ContextFactorType.PRESSURE:
                continue
            if factor.score >= 9:
                points += 3
            elif factor.score >= 7:
                points += 2
            elif factor.score >= 5:
                points += 1
        if points >= 3:
            return self.settings.pressure_high
        if points >= 2:
            return self.settings.pressure_moderate
        return 0.0

    def other_correction(self, factors: Iterable[ContextFactor]) -> float:
        total = sum(
            self.settings.other_negative_step * factor.weight
            for factor in factors
            if factor.type not in _DEDICATED_TYPES and factor.is_negative
        )
        return min(self.settings.other_negative_cap, total)

    def alignment_factor(
        self, prediction: str, simulator_result: OutcomeDistribution | None
    ) -> float:
        if simulator_result is None:
            return 1.0
        if simulator_result.most_likely_score == prediction:
            return self.settings.alignment_exact
        if outcome_of(simulator_result.most_likely_score) is outcome_of(prediction):
            return self.settings.alignment_same_outcome
        return self.settings.alignment_disagree

    # -- adjusted prediction --------------------------------------------------

    def calculate_adjusted_prediction(
        self,
        base: OracleAnalysis,
        factors: Sequence[ContextFactor] | None = None,
        simulator_result: OutcomeDistribution | None = None,
    ) -> AdjustedPrediction:
        """Blend context factors and a simulator result into the baseline.

        With neither factors nor a simulator result the baseline passes through
        with only the per-side goal cap applied. Otherwise every correction term
        compounds multiplicatively on the confidence, and the score is nudged
        away from implausible margins.
        """

        factors = list(factors or ())
        if not factors and simulator_result is None:
            return AdjustedPrediction(
                score=format_score(*parse_score(base.prediction), cap=self.settings.max_goals),
                confidence=base.confidence,
                reasoning=base.reasoning,
            )

        injury = self.injury_correction(factors)
        form = self.form_adjustment(factors)
        pressure = self.pressure_correction(factors)
        other = self.other_correction(factors)
        alignment = self.alignment_factor(base.prediction, simulator_result)

        raw = (
            base.confidence
            * (1.0 - injury)
            * (1.0 + form)
            * (1.0 - pressure)
            * (1.0 - other)
            * alignment
        )
        confidence = int(min(100.0, max(0.0, raw)))

        injuries = [f for f in factors if f.type is ContextFactorType.INJURIES]
        score = self._adjust_score(
            base, injury + pressure + other + max(0.0, -form), form, alignment, bool(injuries)
        )

        reasoning: List[str] = [base.reasoning]
        if injuries:
            reasoning.append(
                f"Context adjustment: {len(injuries)} injury factor(s) considered."
            )
        for factor in factors:
            if factor.type is ContextFactorType.TEAM_MORALE:
                reasoning.append(f"Form ({factor.score}/10): {factor.description}.")
        if pressure > 0:
            reasoning.append(f"Pressure factors reduce confidence by {int(pressure * 100)}%.")
        if simulator_result is not None and simulator_result.most_likely_score != base.prediction:
            reasoning.append(
                f"Simulation suggested {simulator_result.most_likely_score}, "
                f"which disagrees with the baseline {base.prediction}."
            )
        reasoning.append(f"Final adjusted prediction: {score}.")

        corrections = {
            "injury": injury,
            "form": form,
            "pressure": pressure,
            "other": other,
            "alignment": alignment,
        }
        logger.debug(
            "Adjusted %s (%d) -> %s (%d) with %s",
            base.prediction,
            base.confidence,
            score,
            confidence,
            corrections,
        )
        return AdjustedPrediction(
            score=score,
            confidence=confidence,
            reasoning=" ".join(part for part in reasoning if part),
            corrections=corrections,
        )

    def _adjust_score(
        self,
        base: OracleAnalysis,
        negative: float,
        form: float,
        alignment: float,
        has_injuries: bool,
    ) -> str:
        baseline = parse_score(base.prediction)
        home, away = baseline
        gap = abs(base.power_delta)
        outcome = outcome_of(base.prediction)

        if outcome is not Outcome.DRAW:
            favored, other = (home, away) if outcome is Outcome.HOME else (away, home)
            if negative > 0.3 and gap > 30:
                favored = max(1, _scaled_down(favored, 0.7))
                if other < 3:
                    other = min(3, _scaled_up(other, 1.3))
            elif negative > 0.1 and gap > 15:
                favored = max(1, _scaled_down(favored, 0.85))
            elif form > 0.05 and negative == 0:
                favored = min(4, max(favored, _scaled_up(favored, 1.15)))
            home, away = (favored, other) if outcome is Outcome.HOME else (other, favored)

        if has_injuries and (home, away) == baseline:
            if home > away or (home == away and home > 0):
                home -= 1
            elif away > home:
                away -= 1

        if alignment < 1.0:
            pull = 1.0 - (1.0 - alignment) * 0.3
            home = _scaled_down(home, pull)
            away = _scaled_down(away, pull)

        return format_score(home, away, cap=self.settings.max_goals)


__all__ = ["BiasCorrector", "HomeForm"]
