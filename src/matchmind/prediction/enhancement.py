"""Qualitative context overlay for arbitration signals."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Sequence, Tuple

from .configuration import EnhancementSettings
from .models import (
    ContextFactor,
    MastermindSignal,
    OutlierScenario,
    RiskLevel,
    ScenarioType,
    SignalColor,
    highest_risk,
)

logger = logging.getLogger(__name__)

_ESCALATION: Dict[ScenarioType, ScenarioType] = {
    ScenarioType.BANKER: ScenarioType.TACTICAL_DUEL,
    ScenarioType.TACTICAL_DUEL: ScenarioType.HIGH_RISK,
}

_OVERRIDE_RISKS = frozenset({RiskLevel.HIGH, RiskLevel.VERY_HIGH})


@dataclasses.dataclass(frozen=True, slots=True)
class ContextEnhancement:
    """Context factors and outlier scenarios gathered for one fixture."""

    factors: Tuple[ContextFactor, ...] = ()
    outliers: Tuple[OutlierScenario, ...] = ()

    @classmethod
    def from_sequences(
        cls,
        factors: Sequence[ContextFactor] | None,
        outliers: Sequence[OutlierScenario] | None,
    ) -> "ContextEnhancement":
        return cls(tuple(factors or ()), tuple(outliers or ()))

    @property
    def is_empty(self) -> bool:
        return not self.factors and not self.outliers

    @property
    def overall_context_score(self) -> float:
        if not self.factors:
            return 5.0
        return sum(factor.weighted_score for factor in self.factors) / len(self.factors)

    def confidence_adjustment(self, scale: float = 2.0, limit: int = 20) -> int:
        """Signed confidence delta from factor sentiment around the neutral 5."""

        if not self.factors:
            return 0
        mean = sum((f.sentiment - 5) * f.weight for f in self.factors) / len(self.factors)
        return max(-limit, min(limit, round(mean * scale)))

    @property
    def most_impactful_factor(self) -> ContextFactor | None:
        if not self.factors:
            return None
        return max(self.factors, key=lambda factor: factor.weighted_score)

    @property
    def highest_probability_outlier(self) -> OutlierScenario | None:
        if not self.outliers:
            return None
        return max(self.outliers, key=lambda outlier: outlier.probability)

    @property
    def has_high_impact_factors(self) -> bool:
        return any(factor.is_high_impact for factor in self.factors)

    def has_high_probability_outliers(self, threshold: float = 70.0) -> bool:
        return any(outlier.probability >= threshold for outlier in self.outliers)

    @property
    def negative_factor_count(self) -> int:
        return sum(1 for factor in self.factors if factor.is_negative)

    def overall_risk_level(self) -> RiskLevel:
        context_risk = (
            RiskLevel.MEDIUM
            if any(f.is_high_impact and f.is_negative for f in self.factors)
            else RiskLevel.LOW
        )
        return highest_risk([context_risk, *(o.risk_level for o in self.outliers)])

    def summary(self) -> Dict[str, Any]:
        factor = self.most_impactful_factor
        return {
            "context_score": round(self.overall_context_score, 1),
            "factor_count": len(self.factors),
            "negative_factors": self.negative_factor_count,
            "high_impact_factors": sum(1 for f in self.factors if f.is_high_impact),
            "most_impactful_factor": factor.type.value if factor is not None else None,
            "outlier_count": len(self.outliers),
            "high_risk_outliers": sum(
                1 for o in self.outliers if o.risk_level in _OVERRIDE_RISKS
            ),
            "risk_level": self.overall_risk_level().value,
        }


class ContextEnhancer:
    """Adjust a :class:`MastermindSignal` with qualitative context."""

    def __init__(self, settings: EnhancementSettings | None = None) -> None:
        self.settings = settings or EnhancementSettings()

    def should_override(self, enhancement: ContextEnhancement) -> bool:
        outlier = enhancement.highest_probability_outlier
        return (
            outlier is not None
            and outlier.probability >= self.settings.outlier_probability_threshold
            and outlier.risk_level in _OVERRIDE_RISKS
        )

    @staticmethod
    def _derive_color(current: SignalColor, risk: RiskLevel) -> SignalColor:
        if risk in _OVERRIDE_RISKS:
            return SignalColor.RED
        if risk is RiskLevel.MEDIUM:
            return SignalColor.YELLOW
        if current is SignalColor.RED:
            return SignalColor.YELLOW
        return current

    def enhance(
        self,
        signal: MastermindSignal,
        factors: Sequence[ContextFactor] | None = None,
        outliers: Sequence[OutlierScenario] | None = None,
    ) -> MastermindSignal:
        """Return a new signal reflecting ``factors`` and ``outliers``.

        Without any factors or outliers the input signal is returned as-is.
        """

        enhancement = ContextEnhancement.from_sequences(factors, outliers)
        if enhancement.is_empty:
            return signal

        settings = self.settings
        delta = enhancement.confidence_adjustment(
            settings.confidence_scale, settings.max_confidence_adjustment
        )
        confidence = max(0, min(100, signal.confidence + delta))
        risk = enhancement.overall_risk_level()
        override = self.should_override(enhancement)
        top_outlier = enhancement.highest_probability_outlier

        notes: List[str] = []
        impactful = enhancement.most_impactful_factor
        if impactful is not None:
            notes.append(
                f"Most impactful factor: {impactful.type.label} "
                f"({impactful.score}/10, weight {impactful.weight:.1f}): {impactful.description}"
            )
        high_impact = sum(1 for f in enhancement.factors if f.is_high_impact)
        notes.append(f"High-impact factors: {high_impact}")

        if override and top_outlier is not None:
            excerpt = top_outlier.description[: settings.recommendation_excerpt]
            title = f"{settings.warning_prefix}{signal.title}"
            scenario = ScenarioType.HIGH_RISK
            color = SignalColor.RED
            recommendation = f"Consider: {excerpt}..."
            notes.append(
                f"Outlier override: {top_outlier.short_summary(settings.recommendation_excerpt)} "
                f"[{top_outlier.risk_level.value}]"
            )
            logger.debug(
                "Outlier override on %s: %.0f%% %s",
                signal.title,
                top_outlier.probability,
                top_outlier.risk_level.value,
            )
        else:
            title = signal.title
            scenario = signal.scenario_type
            factor_count = len(enhancement.factors)
            if (
                factor_count
                and enhancement.negative_factor_count > factor_count * settings.negative_majority
            ):
                scenario = _ESCALATION.get(scenario, scenario)
            color = self._derive_color(signal.color, risk)
            recommendation = signal.recommendation
            if enhancement.has_high_impact_factors:
                recommendation = f"{recommendation} (high-impact context factors)"
            if top_outlier is not None:
                notes.append(f"Outlier scenario: {top_outlier.short_summary(settings.recommendation_excerpt)}")

        notes.append(f"Confidence adjustment: {delta:+d}")
        details = dict(signal.details)
        details.update(
            {
                "enhancement": enhancement.summary(),
                "confidence_delta": delta,
                "base_scenario": signal.scenario_type.value,
                "outlier_override": override,
            }
        )
        if scenario is not signal.scenario_type:
            logger.debug(
                "Context escalated %s -> %s", signal.scenario_type.value, scenario.value
            )
        return MastermindSignal(
            title=title,
            description="\n".join([signal.description, *notes]),
            color=color,
            confidence=confidence,
            recommendation=recommendation,
            scenario_type=scenario,
            details=details,
        )


__all__ = ["ContextEnhancement", "ContextEnhancer"]
