"""End-to-end fixture analysis wired to pluggable data providers."""

from __future__ import annotations

import dataclasses
import logging
import random
from typing import Dict, List, Mapping, Protocol, Sequence, runtime_checkable

from .arbitration import MastermindEngine
from .bias import BiasCorrector
from .configuration import (
    PredictionConfig,
    create_bias_corrector,
    create_mastermind_engine,
    create_simulator,
)
from .enhancement import ContextEnhancement
from .models import (
    AdjustedPrediction,
    ContextFactor,
    MastermindSignal,
    OracleAnalysis,
    OutcomeDistribution,
    OutlierScenario,
    SimulationContext,
)
from .simulation import TesseractSimulator

logger = logging.getLogger(__name__)


@runtime_checkable
class PowerScoreProvider(Protocol):
    def power_score(self, team: str) -> int:
        ...


@runtime_checkable
class SimulationContextProvider(Protocol):
    """Cached Trinity lookup; a miss returns ``None``."""

    def get(self, key: str) -> SimulationContext | None:
        ...


@runtime_checkable
class QualitativeContextProvider(Protocol):
    def factors(self, key: str) -> Sequence[ContextFactor]:
        ...

    def outliers(self, key: str) -> Sequence[OutlierScenario]:
        ...


@dataclasses.dataclass
class StaticProviders:
    """In-memory implementation of every collaborator protocol."""

    powers: Dict[str, int] = dataclasses.field(default_factory=dict)
    contexts: Dict[str, SimulationContext] = dataclasses.field(default_factory=dict)
    context_factors: Dict[str, List[ContextFactor]] = dataclasses.field(default_factory=dict)
    outlier_scenarios: Dict[str, List[OutlierScenario]] = dataclasses.field(default_factory=dict)

    def power_score(self, team: str) -> int:
        try:
            return self.powers[team]
        except KeyError as exc:
            raise LookupError(f"No power score for team {team!r}") from exc

    def get(self, key: str) -> SimulationContext | None:
        return self.contexts.get(key)

    def factors(self, key: str) -> Sequence[ContextFactor]:
        return list(self.context_factors.get(key, ()))

    def outliers(self, key: str) -> Sequence[OutlierScenario]:
        return list(self.outlier_scenarios.get(key, ()))


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineResult:
    fixture_id: str
    oracle: OracleAnalysis
    simulation: OutcomeDistribution
    adjusted: AdjustedPrediction
    signal: MastermindSignal

    def summary(self) -> Mapping[str, object]:
        return {
            "fixture_id": self.fixture_id,
            "oracle_prediction": self.oracle.prediction,
            "adjusted_prediction": self.adjusted.score,
            "adjusted_confidence": self.adjusted.confidence,
            "scenario": self.signal.scenario_type.value,
            "color": self.signal.color.value,
            "confidence": self.signal.confidence,
            "recommendation": self.signal.recommendation,
        }


class MatchPipeline:
    """Simulate, correct, arbitrate and enhance a single fixture."""

    def __init__(
        self,
        powers: PowerScoreProvider,
        contexts: SimulationContextProvider | None = None,
        qualitative: QualitativeContextProvider | None = None,
        *,
        simulator: TesseractSimulator | None = None,
        corrector: BiasCorrector | None = None,
        engine: MastermindEngine | None = None,
    ) -> None:
        self.powers = powers
        self.contexts = contexts
        self.qualitative = qualitative
        self.simulator = simulator or TesseractSimulator()
        self.corrector = corrector or BiasCorrector()
        self.engine = engine or MastermindEngine()

    @classmethod
    def from_config(
        cls,
        config: PredictionConfig,
        powers: PowerScoreProvider,
        contexts: SimulationContextProvider | None = None,
        qualitative: QualitativeContextProvider | None = None,
    ) -> "MatchPipeline":
        return cls(
            powers,
            contexts,
            qualitative,
            simulator=create_simulator(config),
            corrector=create_bias_corrector(config),
            engine=create_mastermind_engine(config),
        )

    def run(
        self,
        fixture_id: str,
        home: str,
        away: str,
        oracle_prediction: str,
        oracle_confidence: int,
        reasoning: str = "",
        *,
        trials: int | None = None,
        rng: random.Random | None = None,
    ) -> PipelineResult:
        home_power = self.powers.power_score(home)
        away_power = self.powers.power_score(away)
        context = self.contexts.get(fixture_id) if self.contexts is not None else None

        simulation = self.simulator.simulate(
            home_power, away_power, context, trials, rng=rng
        )
        factors: Sequence[ContextFactor] = ()
        outliers: Sequence[OutlierScenario] = ()
        if self.qualitative is not None:
            factors = self.qualitative.factors(fixture_id)
            outliers = self.qualitative.outliers(fixture_id)

        oracle = OracleAnalysis(
            prediction=oracle_prediction,
            confidence=oracle_confidence,
            reasoning=reasoning or f"{home} ({home_power}) vs {away} ({away_power})",
            home_power_score=home_power,
            away_power_score=away_power,
            tesseract=simulation,
            simulation_context=context,
            enhancement=ContextEnhancement.from_sequences(factors, outliers),
        )
        adjusted = self.corrector.calculate_adjusted_prediction(oracle, factors, simulation)
        signal = self.engine.analyze_with_enhancement(oracle, simulation)
        logger.debug(
            "Fixture %s: %s -> %s, %s", fixture_id, oracle.prediction, adjusted.score, signal.title
        )
        return PipelineResult(
            fixture_id=fixture_id,
            oracle=oracle,
            simulation=simulation,
            adjusted=adjusted,
            signal=signal,
        )


__all__ = [
    "MatchPipeline",
    "PipelineResult",
    "PowerScoreProvider",
    "QualitativeContextProvider",
    "SimulationContextProvider",
    "StaticProviders",
]
