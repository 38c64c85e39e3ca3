from __future__ import annotations

import pytest

from matchmind.prediction.configuration import EnhancementSettings
from matchmind.prediction.enhancement import ContextEnhancement, ContextEnhancer
from matchmind.prediction.models import (
    ContextFactor,
    ContextFactorType,
    MastermindSignal,
    OutlierScenario,
    RiskLevel,
    ScenarioType,
    SignalColor,
)


def _signal(
    scenario: ScenarioType = ScenarioType.BANKER,
    color: SignalColor = SignalColor.GREEN,
    confidence: int = 75,
) -> MastermindSignal:
    return MastermindSignal(
        title="BANKER",
        description="Oracle and simulation agree.",
        color=color,
        confidence=confidence,
        recommendation="Home Win",
        scenario_type=scenario,
        details={"oracle_prediction": "2-0"},
    )


def _factor(factor_type: ContextFactorType, score: int, weight: float | None = None) -> ContextFactor:
    return ContextFactor.create(factor_type, score, f"{factor_type.label} report", weight)


def _outlier(probability: float, risk: RiskLevel) -> OutlierScenario:
    return OutlierScenario(
        description="Manager sacked on the eve of the match, squad in open revolt against the board",
        probability=probability,
        risk_level=risk,
        supporting_factors=("press conference",),
    )


@pytest.fixture()
def enhancer() -> ContextEnhancer:
    return ContextEnhancer()


def test_no_context_is_a_no_op(enhancer: ContextEnhancer) -> None:
    signal = _signal()
    assert enhancer.enhance(signal) is signal
    assert enhancer.enhance(signal, [], []) is signal


def test_high_probability_high_risk_outlier_overrides(enhancer: ContextEnhancer) -> None:
    outlier = _outlier(80.0, RiskLevel.HIGH)
    signal = enhancer.enhance(_signal(), [], [outlier])
    assert signal.scenario_type is ScenarioType.HIGH_RISK
    assert signal.color is SignalColor.RED
    assert signal.title == "⚠ BANKER"
    assert signal.recommendation == f"Consider: {outlier.description[:50]}..."
    assert signal.details["outlier_override"] is True
    assert signal.details["base_scenario"] == "banker"


def test_very_high_risk_also_overrides(enhancer: ContextEnhancer) -> None:
    signal = enhancer.enhance(_signal(), None, [_outlier(90.0, RiskLevel.VERY_HIGH)])
    assert signal.scenario_type is ScenarioType.HIGH_RISK


def test_medium_risk_outlier_does_not_override(enhancer: ContextEnhancer) -> None:
    signal = enhancer.enhance(_signal(), [], [_outlier(85.0, RiskLevel.MEDIUM)])
    assert signal.scenario_type is ScenarioType.BANKER
    assert signal.color is SignalColor.YELLOW
    assert signal.title == "BANKER"


def test_unlikely_high_risk_outlier_only_recolours(enhancer: ContextEnhancer) -> None:
    signal = enhancer.enhance(_signal(), [], [_outlier(60.0, RiskLevel.HIGH)])
    assert signal.scenario_type is ScenarioType.BANKER
    assert signal.color is SignalColor.RED


def test_outlier_threshold_is_configurable() -> None:
    enhancer = ContextEnhancer(settings=EnhancementSettings(outlier_probability_threshold=50.0))
    signal = enhancer.enhance(_signal(), [], [_outlier(60.0, RiskLevel.HIGH)])
    assert signal.scenario_type is ScenarioType.HIGH_RISK


@pytest.mark.parametrize(
    ("base", "expected"),
    [
        (ScenarioType.BANKER, ScenarioType.TACTICAL_DUEL),
        (ScenarioType.TACTICAL_DUEL, ScenarioType.HIGH_RISK),
        (ScenarioType.GOALS_FESTIVAL, ScenarioType.GOALS_FESTIVAL),
        (ScenarioType.HIGH_RISK, ScenarioType.HIGH_RISK),
    ],
)
def test_negative_majority_escalates_one_step(
    enhancer: ContextEnhancer, base: ScenarioType, expected: ScenarioType
) -> None:
    factors = [
        _factor(ContextFactorType.WEATHER, 2),
        _factor(ContextFactorType.TACTICAL_CHANGES, 3),
        _factor(ContextFactorType.TEAM_MORALE, 6),
    ]
    signal = enhancer.enhance(_signal(scenario=base), factors, [])
    assert signal.scenario_type is expected


def test_half_negative_does_not_escalate(enhancer: ContextEnhancer) -> None:
    factors = [_factor(ContextFactorType.WEATHER, 2), _factor(ContextFactorType.TEAM_MORALE, 7)]
    signal = enhancer.enhance(_signal(), factors, [])
    assert signal.scenario_type is ScenarioType.BANKER


@pytest.mark.parametrize(
    ("factor", "delta"),
    [
        (_factor(ContextFactorType.TEAM_MORALE, 9), 10),
        (_factor(ContextFactorType.INJURIES, 9), -12),
        (_factor(ContextFactorType.WEATHER, 0, weight=5.0), -20),
        (_factor(ContextFactorType.WEATHER, 5), 0),
    ],
)
def test_confidence_delta(enhancer: ContextEnhancer, factor: ContextFactor, delta: int) -> None:
    signal = enhancer.enhance(_signal(confidence=50), [factor], [])
    assert signal.confidence == 50 + delta
    assert signal.details["confidence_delta"] == delta
    assert f"Confidence adjustment: {delta:+d}" in signal.description


def test_confidence_is_clamped(enhancer: ContextEnhancer) -> None:
    signal = enhancer.enhance(_signal(confidence=95), [_factor(ContextFactorType.TEAM_MORALE, 10)], [])
    assert signal.confidence == 100


def test_high_impact_negative_factor_sets_yellow(enhancer: ContextEnhancer) -> None:
    signal = enhancer.enhance(_signal(), [_factor(ContextFactorType.INJURIES, 9)], [])
    assert signal.color is SignalColor.YELLOW
    assert signal.recommendation == "Home Win (high-impact context factors)"


def test_low_risk_only_softens_red(enhancer: ContextEnhancer) -> None:
    red = _signal(scenario=ScenarioType.HIGH_RISK, color=SignalColor.RED, confidence=40)
    assert enhancer.enhance(red, [_factor(ContextFactorType.WEATHER, 6)], []).color is SignalColor.YELLOW
    green = _signal()
    assert enhancer.enhance(green, [_factor(ContextFactorType.WEATHER, 6)], []).color is SignalColor.GREEN


def test_description_lists_context(enhancer: ContextEnhancer) -> None:
    factors = [_factor(ContextFactorType.INJURIES, 8), _factor(ContextFactorType.WEATHER, 4)]
    signal = enhancer.enhance(_signal(), factors, [_outlier(30.0, RiskLevel.LOW)])
    assert signal.description.startswith("Oracle and simulation agree.")
    assert "Most impactful factor: Injuries" in signal.description
    assert "High-impact factors: 1" in signal.description
    assert "Outlier scenario:" in signal.description
    assert signal.details["oracle_prediction"] == "2-0"


def test_context_enhancement_value_object() -> None:
    empty = ContextEnhancement()
    assert empty.is_empty
    assert empty.overall_context_score == 5.0
    assert empty.confidence_adjustment() == 0
    assert empty.most_impactful_factor is None
    assert empty.highest_probability_outlier is None
    assert empty.overall_risk_level() is RiskLevel.LOW

    injury = _factor(ContextFactorType.INJURIES, 9)
    weather = _factor(ContextFactorType.WEATHER, 3)
    low = _outlier(20.0, RiskLevel.LOW)
    likely = _outlier(75.0, RiskLevel.HIGH)
    enhancement = ContextEnhancement.from_sequences([injury, weather], [low, likely])
    assert enhancement.most_impactful_factor is injury
    assert enhancement.highest_probability_outlier is likely
    assert enhancement.has_high_impact_factors
    assert enhancement.has_high_probability_outliers()
    assert not enhancement.has_high_probability_outliers(threshold=80.0)
    assert enhancement.overall_context_score == pytest.approx((13.5 + 2.4) / 2)
    assert enhancement.overall_risk_level() is RiskLevel.HIGH
    summary = enhancement.summary()
    assert summary["most_impactful_factor"] == "injuries"
    assert summary["high_risk_outliers"] == 1
    assert summary["risk_level"] == "high"
