"""Decision-tree arbitration between the oracle and the simulator ("Mastermind")."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Sequence, Tuple

from .configuration import ArbitrationSettings
from .enhancement import ContextEnhancer
from .models import (
    ContextFactor,
    MastermindSignal,
    OracleAnalysis,
    Outcome,
    OutcomeDistribution,
    OutlierScenario,
    ScenarioType,
    SignalColor,
)

logger = logging.getLogger(__name__)

_OUTCOME_RECOMMENDATIONS: Dict[Outcome, str] = {
    Outcome.HOME: "Home Win",
    Outcome.AWAY: "Away Win",
    Outcome.DRAW: "Draw",
}

_Rule = Tuple[
    ScenarioType,
    Callable[[OracleAnalysis, OutcomeDistribution], bool],
    Callable[[OracleAnalysis, OutcomeDistribution], MastermindSignal],
]


def _distribution_details(result: OutcomeDistribution) -> Dict[str, Any]:
    return {
        "home_win_percentage": result.home_win_percentage,
        "draw_percentage": result.draw_percentage,
        "away_win_percentage": result.away_win_percentage,
        "btts_percentage": result.btts_percentage,
        "over2_5_percentage": result.over2_5_percentage,
        "under2_5_percentage": result.under2_5_percentage,
        "most_likely_score": result.most_likely_score,
    }


class MastermindEngine:
    """Classify a fixture into one scenario and build the final signal.

    Rules are evaluated in priority order and the first match wins, so the
    predicates do not need to be mutually exclusive.
    """

    def __init__(
        self,
        settings: ArbitrationSettings | None = None,
        enhancer: ContextEnhancer | None = None,
    ) -> None:
        self.settings = settings or ArbitrationSettings()
        self.enhancer = enhancer or ContextEnhancer()
        self._rules: List[_Rule] = [
            (ScenarioType.BANKER, self.is_banker, self._banker_signal),
            (ScenarioType.HIGH_RISK, self.is_high_risk, self._high_risk_signal),
            (ScenarioType.GOALS_FESTIVAL, self.is_goals_festival, self._goals_festival_signal),
            (ScenarioType.TACTICAL_DUEL, self.is_tactical_duel, self._tactical_duel_signal),
            (ScenarioType.DEFENSIVE_BATTLE, self.is_defensive_battle, self._defensive_battle_signal),
        ]

    # -- entry points ---------------------------------------------------------

    def analyze(
        self, oracle: OracleAnalysis, simulator_result: OutcomeDistribution | None = None
    ) -> MastermindSignal:
        if simulator_result is None:
            signal = self.analyze_oracle_only(oracle)
        else:
            for _scenario, predicate, build in self._rules:
                if predicate(oracle, simulator_result):
                    signal = build(oracle, simulator_result)
                    break
            else:
                signal = self._value_bet_signal(oracle, simulator_result)
        logger.debug(
            "Classified %s (%d%%) as %s/%s at %d%%",
            oracle.prediction,
            oracle.confidence,
            signal.scenario_type.value,
            signal.color.value,
            signal.confidence,
        )
        return signal

    def analyze_with_enhancement(
        self,
        oracle: OracleAnalysis,
        simulator_result: OutcomeDistribution | None,
        factors: Sequence[ContextFactor] | None = None,
        outliers: Sequence[OutlierScenario] | None = None,
    ) -> MastermindSignal:
        """Run :meth:`analyze` then post-process with the context enhancer.

        When neither ``factors`` nor ``outliers`` is given, the context
        attached to ``oracle.enhancement`` is used instead.
        """

        if factors is None and outliers is None and oracle.enhancement is not None:
            factors = oracle.enhancement.factors
            outliers = oracle.enhancement.outliers
        signal = self.analyze(oracle, simulator_result)
        return self.enhancer.enhance(signal, factors, outliers)

    def analyze_oracle_only(self, oracle: OracleAnalysis) -> MastermindSignal:
        settings = self.settings
        outcome = oracle.implied_outcome
        details: Dict[str, Any] = {
            "oracle_prediction": oracle.prediction,
            "oracle_confidence": oracle.confidence,
            "power_delta": oracle.power_delta,
            "implied_outcome": outcome.value,
        }
        if oracle.confidence >= settings.oracle_only_certain:
            return MastermindSignal(
                title="ORACLE CERTAINTY",
                description=f"Oracle predicts {oracle.prediction} with {oracle.confidence}% confidence.",
                color=SignalColor.GREEN,
                confidence=oracle.confidence,
                recommendation=_OUTCOME_RECOMMENDATIONS[outcome],
                scenario_type=ScenarioType.BANKER,
                details=details,
            )
        if oracle.confidence >= settings.oracle_only_moderate:
            return MastermindSignal(
                title="MODERATE CERTAINTY",
                description=(
                    f"Oracle predicts {oracle.prediction} with {oracle.confidence}% confidence; "
                    f"power delta {oracle.power_delta}."
                ),
                color=SignalColor.YELLOW,
                confidence=oracle.confidence,
                recommendation="Cautious stake",
                scenario_type=ScenarioType.TACTICAL_DUEL,
                details=details,
            )
        return MastermindSignal(
            title="LOW CERTAINTY",
            description=f"Oracle confidence of {oracle.confidence}% is too low to act on.",
            color=SignalColor.RED,
            confidence=oracle.confidence,
            recommendation="Small stake or avoid",
            scenario_type=ScenarioType.HIGH_RISK,
            details=details,
        )

    # -- predicates -------------------------------------------------------------

    def trinity_acceptable(self, oracle: OracleAnalysis) -> bool:
        context = oracle.simulation_context
        if context is None:
            return True
        return (
            context.fatigue_score <= self.settings.max_fatigue
            and context.lineup_strength >= self.settings.min_lineup_strength
        )

    def trinity_risk_reasons(self, oracle: OracleAnalysis) -> List[str]:
        context = oracle.simulation_context
        if context is None:
            return []
        reasons: List[str] = []
        if oracle.predicts_win and context.lineup_strength < self.settings.min_lineup_strength:
            reasons.append("weak_lineup")
        if oracle.predicts_win and context.fatigue_score > self.settings.max_fatigue:
            reasons.append("high_fatigue")
        if context.has_style_disadvantage:
            reasons.append("style_disadvantage")
        return reasons

    @staticmethod
    def outcomes_agree(oracle: OracleAnalysis, result: OutcomeDistribution) -> bool:
        return result.favored_outcome is oracle.implied_outcome

    @staticmethod
    def outcomes_conflict(oracle: OracleAnalysis, result: OutcomeDistribution) -> bool:
        """Return ``True`` when oracle and simulator back opposite winners."""

        implied = oracle.implied_outcome
        favored = result.favored_outcome
        return (implied is Outcome.HOME and favored is Outcome.AWAY) or (
            implied is Outcome.AWAY and favored is Outcome.HOME
        )

    def is_banker(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> bool:
        return (
            oracle.confidence >= self.settings.banker_confidence
            and self.outcomes_agree(oracle, result)
            and self.trinity_acceptable(oracle)
        )

    def is_high_risk(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> bool:
        trinity_risk = any(
            reason in {"weak_lineup", "high_fatigue"}
            for reason in self.trinity_risk_reasons(oracle)
        )
        return (
            self.outcomes_conflict(oracle, result)
            or oracle.confidence < self.settings.low_confidence
            or trinity_risk
        )

    def is_goals_festival(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> bool:
        return (
            result.over2_5_probability > self.settings.festival_over2_5
            and result.btts_probability > self.settings.festival_btts
        )

    def is_tactical_duel(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> bool:
        settings = self.settings
        return (
            -settings.tactical_power_delta <= oracle.power_delta <= settings.tactical_power_delta
            and settings.tactical_confidence_min
            <= oracle.confidence
            <= settings.tactical_confidence_max
        )

    def is_defensive_battle(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> bool:
        return (
            result.under2_5_probability > self.settings.defensive_under2_5
            and result.btts_probability < self.settings.defensive_btts
        )

    # -- signal builders ------------------------------------------------------

    def _banker_signal(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> MastermindSignal:
        outcome = oracle.implied_outcome
        simulated = result.percentage_for(outcome)
        details: Dict[str, Any] = {
            "oracle_prediction": oracle.prediction,
            "oracle_confidence": oracle.confidence,
            "simulated_percentage": simulated,
            "outcome": outcome.value,
            **_distribution_details(result),
        }
        context = oracle.simulation_context
        if context is not None and context.has_meaningful_data():
            details["trinity"] = context.summary()
        return MastermindSignal(
            title="BANKER",
            description=(
                f"Oracle ({oracle.confidence}%) and simulation ({simulated}%) agree on a "
                f"{outcome.value} result."
            ),
            color=SignalColor.GREEN,
            confidence=(oracle.confidence + simulated) // 2,
            recommendation=_OUTCOME_RECOMMENDATIONS[outcome],
            scenario_type=ScenarioType.BANKER,
            details=details,
        )

    def _high_risk_signal(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> MastermindSignal:
        reasons = self.trinity_risk_reasons(oracle)
        conflict = self.outcomes_conflict(oracle, result)
        details: Dict[str, Any] = {
            "oracle_prediction": oracle.prediction,
            "simulated_score": result.most_likely_score,
            "power_delta": oracle.power_delta,
            "oracle_confidence": oracle.confidence,
            "outcomes_conflict": conflict,
            "trinity_risks": reasons,
            **_distribution_details(result),
        }
        if oracle.simulation_context is not None:
            details["trinity"] = oracle.simulation_context.summary()
        return MastermindSignal(
            title="HIGH RISK",
            description=" ".join(self._high_risk_notes(oracle, result, conflict, reasons)),
            color=SignalColor.YELLOW,
            confidence=self.settings.high_risk_confidence,
            recommendation="Cautious stake or avoid",
            scenario_type=ScenarioType.HIGH_RISK,
            details=details,
        )

    def _high_risk_notes(
        self,
        oracle: OracleAnalysis,
        result: OutcomeDistribution,
        conflict: bool,
        reasons: Sequence[str],
    ) -> List[str]:
        notes: List[str] = []
        if conflict:
            notes.append(
                f"Oracle predicts {oracle.prediction} but the simulation points to "
                f"{result.most_likely_score}."
            )
        if oracle.confidence < self.settings.low_confidence:
            notes.append(
                f"Oracle confidence of {oracle.confidence}% is below the "
                f"{self.settings.low_confidence}% floor."
            )
        if reasons:
            labels = ", ".join(reason.replace("_", " ") for reason in reasons)
            notes.append(f"Trinity risks: {labels}.")
        notes.append(f"Power delta {oracle.power_delta}.")
        return notes

    def _goals_festival_signal(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> MastermindSignal:
        return MastermindSignal(
            title="GOALS FESTIVAL",
            description=(
                f"Over 2.5 goals {result.over2_5_percentage}%, both teams to score "
                f"{result.btts_percentage}%."
            ),
            color=SignalColor.GREEN,
            confidence=self.settings.festival_confidence,
            recommendation="Over 2.5 Goals & BTTS Yes",
            scenario_type=ScenarioType.GOALS_FESTIVAL,
            details=_distribution_details(result),
        )

    def _tactical_duel_signal(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> MastermindSignal:
        return MastermindSignal(
            title="TACTICAL DUEL",
            description=f"Power delta of only {oracle.power_delta} points.",
            color=SignalColor.YELLOW,
            confidence=self.settings.tactical_confidence,
            recommendation="Draw or narrow margin (±1 goal)",
            scenario_type=ScenarioType.TACTICAL_DUEL,
            details={
                "power_delta": oracle.power_delta,
                "oracle_confidence": oracle.confidence,
                **_distribution_details(result),
            },
        )

    def _defensive_battle_signal(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> MastermindSignal:
        return MastermindSignal(
            title="DEFENSIVE BATTLE",
            description=(
                f"Under 2.5 goals {result.under2_5_percentage}%, both teams to score only "
                f"{result.btts_percentage}%."
            ),
            color=SignalColor.YELLOW,
            confidence=self.settings.defensive_confidence,
            recommendation="Under 2.5 Goals",
            scenario_type=ScenarioType.DEFENSIVE_BATTLE,
            details=_distribution_details(result),
        )

    def _value_bet_signal(self, oracle: OracleAnalysis, result: OutcomeDistribution) -> MastermindSignal:
        threshold = self.settings.value_threshold
        if result.home_win_probability > threshold:
            outcome = Outcome.HOME
        elif result.away_win_probability > threshold:
            outcome = Outcome.AWAY
        else:
            outcome = Outcome.DRAW
        return MastermindSignal(
            title="VALUE BET",
            description=(
                f"Simulated odds {result.home_win_percentage}% H, {result.draw_percentage}% D, "
                f"{result.away_win_percentage}% A may offer value."
            ),
            color=SignalColor.GREEN,
            confidence=oracle.confidence,
            recommendation=_OUTCOME_RECOMMENDATIONS[outcome],
            scenario_type=ScenarioType.VALUE_BET,
            details={"value_outcome": outcome.value, **_distribution_details(result)},
        )


__all__ = ["MastermindEngine"]
