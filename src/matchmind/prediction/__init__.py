"""Match-outcome simulation and arbitration core.

The modules are layered leaves first: power scores become scoring rates
(:mod:`.power`), rates drive the Monte Carlo simulator (:mod:`.simulation`)
and its player overlay (:mod:`.players`), and the resulting distributions
feed the bias corrector (:mod:`.bias`), the decision-tree arbitration engine
(:mod:`.arbitration`) and the qualitative context overlay
(:mod:`.enhancement`). :mod:`.batch` and :mod:`.pipeline` compose them for
many fixtures or for a single fixture backed by data providers.
"""

from .arbitration import MastermindEngine
from .batch import (
    FixtureFailure,
    FixtureRequest,
    FixtureResult,
    results_to_frame,
    simulate_fixtures,
    simulate_fixtures_async,
)
from .bias import BiasCorrector, HomeForm
from .configuration import (
    ConfigurationError,
    PredictionConfig,
    create_bias_corrector,
    create_context_enhancer,
    create_mastermind_engine,
    create_player_overlay,
    create_simulator,
    load_prediction_config,
    validate_prediction_config,
)
from .enhancement import ContextEnhancement, ContextEnhancer
from .logging import configure_logging
from .models import (
    AdjustedPrediction,
    ContextFactor,
    ContextFactorType,
    EnhancedResult,
    MastermindSignal,
    OracleAnalysis,
    Outcome,
    OutcomeDistribution,
    OutlierScenario,
    PlayerScoringProbability,
    PredictionValidationError,
    RiskLevel,
    ScenarioType,
    SignalColor,
    SimulationCancelled,
    SimulationContext,
    format_score,
    outcome_of,
    parse_score,
    safe_rate,
)
from .pipeline import MatchPipeline, PipelineResult, StaticProviders
from .players import PlayerOverlay
from .power import BASE_SCORING_RATE, ContextModulator, power_to_lambda
from .simulation import TesseractSimulator, poisson_knuth

__all__ = [
    "AdjustedPrediction",
    "BASE_SCORING_RATE",
    "BiasCorrector",
    "ConfigurationError",
    "ContextEnhancement",
    "ContextEnhancer",
    "ContextFactor",
    "ContextFactorType",
    "ContextModulator",
    "EnhancedResult",
    "FixtureFailure",
    "FixtureRequest",
    "FixtureResult",
    "HomeForm",
    "MastermindEngine",
    "MastermindSignal",
    "MatchPipeline",
    "OracleAnalysis",
    "Outcome",
    "OutcomeDistribution",
    "OutlierScenario",
    "PipelineResult",
    "PlayerOverlay",
    "PlayerScoringProbability",
    "PredictionConfig",
    "PredictionValidationError",
    "RiskLevel",
    "ScenarioType",
    "SignalColor",
    "SimulationCancelled",
    "SimulationContext",
    "StaticProviders",
    "TesseractSimulator",
    "configure_logging",
    "create_bias_corrector",
    "create_context_enhancer",
    "create_mastermind_engine",
    "create_player_overlay",
    "create_simulator",
    "format_score",
    "load_prediction_config",
    "outcome_of",
    "parse_score",
    "poisson_knuth",
    "power_to_lambda",
    "results_to_frame",
    "safe_rate",
    "simulate_fixtures",
    "simulate_fixtures_async",
    "validate_prediction_config",
]
