"""Value objects shared by the simulation and arbitration stages."""

from __future__ import annotations

import dataclasses
import enum
import logging
import re
from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Mapping, Sequence, Tuple

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .enhancement import ContextEnhancement

logger = logging.getLogger(__name__)

_SCORE_PATTERN = re.compile(r"\d+-\d+")


class PredictionValidationError(ValueError):
    """Raised when an input falls outside the accepted domain."""


class SimulationCancelled(RuntimeError):
    """Raised when a simulation is abandoned before all trials completed."""


# ---------------------------------------------------------------------------
# Score helpers
# ---------------------------------------------------------------------------


class Outcome(str, enum.Enum):
    """Match result from the home side's perspective."""

    HOME = "home"
    DRAW = "draw"
    AWAY = "away"


def parse_score(score: str) -> Tuple[int, int]:
    """Split an ``"h-a"`` scoreline into integer goal counts."""

    if not isinstance(score, str) or not _SCORE_PATTERN.fullmatch(score.strip()):
        raise PredictionValidationError(
            f"Score must be formatted as 'home-away' (e.g. '2-1'), got {score!r}"
        )
    home, away = score.strip().split("-")
    return int(home), int(away)


def format_score(home_goals: int, away_goals: int, cap: int | None = None) -> str:
    home = max(0, int(home_goals))
    away = max(0, int(away_goals))
    if cap is not None:
        home = min(home, cap)
        away = min(away, cap)
    return f"{home}-{away}"


def outcome_of(score: str) -> Outcome:
    home, away = parse_score(score)
    if home > away:
        return Outcome.HOME
    if home < away:
        return Outcome.AWAY
    return Outcome.DRAW


def safe_rate(numerator: float, denominator: float) -> float:
    """Return ``numerator / denominator`` or ``0.0`` for an empty denominator."""

    if denominator <= 0:
        return 0.0
    return numerator / denominator


def _require_range(value: float, low: float, high: float, field: str) -> None:
    if not low <= value <= high:
        raise PredictionValidationError(
            f"{field} must be between {low} and {high}, got {value}"
        )


def _require_text(value: str, field: str) -> None:
    if not value or not value.strip():
        raise PredictionValidationError(f"{field} cannot be blank")


# ---------------------------------------------------------------------------
# Simulation inputs
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True, slots=True)
class SimulationContext:
    """Per-match "Trinity" modifiers applied to the scoring rates."""

    fatigue_score: int = 0
    lineup_strength: int = 100
    style_matchup: float = 1.0
    home_distraction: int = 0
    away_distraction: int = 0
    home_fitness: int = 100
    away_fitness: int = 100
    reasoning: str = "Analysis pending..."

    NEUTRAL: ClassVar["SimulationContext"]

    def __post_init__(self) -> None:
        _require_range(self.fatigue_score, 0, 100, "fatigue_score")
        _require_range(self.lineup_strength, 0, 100, "lineup_strength")
        _require_range(self.home_distraction, 0, 100, "home_distraction")
        _require_range(self.away_distraction, 0, 100, "away_distraction")
        _require_range(self.home_fitness, 0, 100, "home_fitness")
        _require_range(self.away_fitness, 0, 100, "away_fitness")
        if not 0.0 < self.style_matchup <= 3.0:
            raise PredictionValidationError(
                f"style_matchup must be within (0, 3], got {self.style_matchup}"
            )
        if not 0.5 <= self.style_matchup <= 1.5:
            logger.debug("Atypical style matchup ratio %.2f", self.style_matchup)

    @property
    def has_high_fatigue(self) -> bool:
        return self.fatigue_score > 70

    @property
    def has_weak_lineup(self) -> bool:
        return self.lineup_strength < 70

    @property
    def has_style_advantage(self) -> bool:
        return self.style_matchup > 1.1

    @property
    def has_style_disadvantage(self) -> bool:
        return self.style_matchup < 0.9

    @property
    def has_high_distraction(self) -> bool:
        return self.home_distraction > 70 or self.away_distraction > 70

    @property
    def has_low_fitness(self) -> bool:
        return self.home_fitness < 70 or self.away_fitness < 70

    @property
    def style_matchup_label(self) -> str:
        if self.style_matchup > 1.2:
            return "Strong Advantage"
        if self.style_matchup > 1.1:
            return "Advantage"
        if self.style_matchup > 0.9:
            return "Neutral"
        if self.style_matchup > 0.8:
            return "Disadvantage"
        return "Strong Disadvantage"

    def has_meaningful_data(self) -> bool:
        """Return ``True`` when any modifier differs from the neutral defaults."""

        return (
            self.fatigue_score != 0
            or self.style_matchup != 1.0
            or self.lineup_strength != 100
            or self.home_distraction != 0
            or self.away_distraction != 0
            or self.home_fitness != 100
            or self.away_fitness != 100
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "fatigue_score": self.fatigue_score,
            "high_fatigue": self.has_high_fatigue,
            "lineup_strength": self.lineup_strength,
            "weak_lineup": self.has_weak_lineup,
            "style_matchup": round(self.style_matchup, 2),
            "style_label": self.style_matchup_label,
            "reasoning": self.reasoning,
        }


SimulationContext.NEUTRAL = SimulationContext(
    fatigue_score=0,
    lineup_strength=100,
    style_matchup=1.0,
    reasoning="Default neutral context",
)


# ---------------------------------------------------------------------------
# Simulation outputs
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True, slots=True)
class OutcomeDistribution:
    """Aggregated Monte Carlo outcome probabilities for a single fixture."""

    home_win_probability: float
    draw_probability: float
    away_win_probability: float
    most_likely_score: str
    simulation_count: int = 10_000
    btts_probability: float = 0.0
    over2_5_probability: float = 0.0
    top_score_distribution: Tuple[Tuple[str, int], ...] = ()

    def __post_init__(self) -> None:
        for field in (
            "home_win_probability",
            "draw_probability",
            "away_win_probability",
            "btts_probability",
            "over2_5_probability",
        ):
            _require_range(getattr(self, field), 0.0, 1.0, field)
        total = self.home_win_probability + self.draw_probability + self.away_win_probability
        if abs(total - 1.0) > 1e-3:
            raise PredictionValidationError(
                f"Outcome probabilities must sum to 1.0 (+/- 0.001), got {total:.4f}"
            )
        parse_score(self.most_likely_score)
        if self.simulation_count <= 0:
            raise PredictionValidationError("simulation_count must be positive")

    @property
    def under2_5_probability(self) -> float:
        return max(0.0, 1.0 - self.over2_5_probability)

    @property
    def btts_no_probability(self) -> float:
        return max(0.0, 1.0 - self.btts_probability)

    @property
    def home_win_percentage(self) -> int:
        return int(self.home_win_probability * 100)

    @property
    def draw_percentage(self) -> int:
        return int(self.draw_probability * 100)

    @property
    def away_win_percentage(self) -> int:
        return int(self.away_win_probability * 100)

    @property
    def btts_percentage(self) -> int:
        return int(self.btts_probability * 100)

    @property
    def over2_5_percentage(self) -> int:
        return int(self.over2_5_probability * 100)

    @property
    def under2_5_percentage(self) -> int:
        return int(self.under2_5_probability * 100)

    @property
    def win_probability_delta(self) -> float:
        return self.home_win_probability - self.away_win_probability

    @property
    def favored_outcome(self) -> Outcome | None:
        """Outcome with the strictly highest probability, ``None`` on a tie."""

        home = self.home_win_probability
        draw = self.draw_probability
        away = self.away_win_probability
        if home > draw and home > away:
            return Outcome.HOME
        if away > home and away > draw:
            return Outcome.AWAY
        if draw > home and draw > away:
            return Outcome.DRAW
        return None

    def probability_for(self, outcome: Outcome) -> float:
        if outcome is Outcome.HOME:
            return self.home_win_probability
        if outcome is Outcome.AWAY:
            return self.away_win_probability
        return self.draw_probability

    def percentage_for(self, outcome: Outcome) -> int:
        return int(self.probability_for(outcome) * 100)

    def top_scores_with_percentages(self) -> List[Tuple[str, int]]:
        return [
            (score, int(safe_rate(count, self.simulation_count) * 100))
            for score, count in self.top_score_distribution
        ]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "home_win_probability": self.home_win_probability,
            "draw_probability": self.draw_probability,
            "away_win_probability": self.away_win_probability,
            "btts_probability": self.btts_probability,
            "over2_5_probability": self.over2_5_probability,
            "most_likely_score": self.most_likely_score,
            "top_score_distribution": [list(item) for item in self.top_score_distribution],
            "simulation_count": self.simulation_count,
        }


@dataclasses.dataclass(frozen=True, slots=True)
class PlayerScoringProbability:
    """Individual goal-scoring chance for one player in one match."""

    player_id: str
    player_name: str
    base_probability: float
    adjusted_probability: float
    is_playing: bool = True
    position: str | None = None

    def __post_init__(self) -> None:
        _require_range(self.base_probability, 0.0, 100.0, "base_probability")
        _require_range(self.adjusted_probability, 0.0, 100.0, "adjusted_probability")

    @property
    def probability_label(self) -> str:
        if self.adjusted_probability >= 70:
            return "Very High"
        if self.adjusted_probability >= 50:
            return "High"
        if self.adjusted_probability >= 30:
            return "Moderate"
        if self.adjusted_probability >= 15:
            return "Low"
        return "Very Low"

    @property
    def expected_goal_contribution(self) -> float:
        if not self.is_playing:
            return 0.0
        return self.adjusted_probability / 100.0


@dataclasses.dataclass(frozen=True, slots=True)
class EnhancedResult:
    """Base distribution augmented with player-level scoring events."""

    base_result: OutcomeDistribution
    home_scorer_probabilities: Mapping[str, float]
    away_scorer_probabilities: Mapping[str, float]
    most_likely_home_scorer: str | None
    most_likely_away_scorer: str | None
    home_expected_goals: float
    away_expected_goals: float
    btts_probability: float
    over2_5_probability: float
    simulation_count: int


# ---------------------------------------------------------------------------
# Qualitative context
# ---------------------------------------------------------------------------


class ContextFactorType(str, enum.Enum):
    """Category of a qualitative context factor."""

    TEAM_MORALE = "team_morale"
    INJURIES = "injuries"
    TACTICAL_CHANGES = "tactical_changes"
    WEATHER = "weather"
    PRESSURE = "pressure"
    HISTORICAL_ANOMALY = "historical_anomaly"

    @property
    def default_weight(self) -> float:
        return _DEFAULT_FACTOR_WEIGHTS[self]

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


_DEFAULT_FACTOR_WEIGHTS: Dict[ContextFactorType, float] = {
    ContextFactorType.INJURIES: 1.5,
    ContextFactorType.TACTICAL_CHANGES: 1.3,
    ContextFactorType.TEAM_MORALE: 1.2,
    ContextFactorType.PRESSURE: 1.1,
    ContextFactorType.HISTORICAL_ANOMALY: 1.0,
    ContextFactorType.WEATHER: 0.8,
}


@dataclasses.dataclass(frozen=True, slots=True)
class ContextFactor:
    """Weighted qualitative input such as injuries, morale or weather.

    ``score`` is a 0-10 magnitude.  For :attr:`ContextFactorType.INJURIES` it
    measures severity, so :attr:`sentiment` inverts it; for every other type
    higher scores are favourable to the predicted outcome.
    """

    type: ContextFactorType
    score: int
    description: str
    weight: float = 1.0

    def __post_init__(self) -> None:
        _require_range(self.score, 0, 10, "score")
        if self.weight <= 0:
            raise PredictionValidationError("weight must be positive")
        _require_text(self.description, "description")

    @classmethod
    def create(
        cls,
        factor_type: ContextFactorType | str,
        score: int,
        description: str,
        weight: float | None = None,
    ) -> "ContextFactor":
        resolved = ContextFactorType(factor_type)
        return cls(
            type=resolved,
            score=score,
            description=description,
            weight=resolved.default_weight if weight is None else weight,
        )

    @property
    def weighted_score(self) -> float:
        return self.score * self.weight

    @property
    def sentiment(self) -> int:
        if self.type is ContextFactorType.INJURIES:
            return 10 - self.score
        return self.score

    @property
    def is_high_impact(self) -> bool:
        return self.score >= 8

    @property
    def is_negative(self) -> bool:
        return self.sentiment <= 4

    @property
    def is_positive(self) -> bool:
        return self.sentiment >= 6


class RiskLevel(str, enum.Enum):
    """Ordinal severity of a scenario."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)


_RISK_ORDER: List[RiskLevel] = [
    RiskLevel.LOW,
    RiskLevel.MEDIUM,
    RiskLevel.HIGH,
    RiskLevel.VERY_HIGH,
]


def highest_risk(levels: Sequence[RiskLevel]) -> RiskLevel:
    if not levels:
        return RiskLevel.LOW
    return max(levels, key=lambda level: level.rank)


@dataclasses.dataclass(frozen=True, slots=True)
class OutlierScenario:
    """Low-probability, high-impact narrative that may override a signal."""

    description: str
    probability: float
    risk_level: RiskLevel
    supporting_factors: Tuple[str, ...] = ()
    historical_precedents: Tuple[str, ...] = ()
    impact_score: int = 5

    def __post_init__(self) -> None:
        _require_text(self.description, "description")
        _require_range(self.probability, 0.0, 100.0, "probability")
        _require_range(self.impact_score, 1, 10, "impact_score")

    @classmethod
    def from_assessment(
        cls,
        description: str,
        probability: float,
        impact_score: int = 5,
        supporting_factors: Sequence[str] = (),
        historical_precedents: Sequence[str] = (),
    ) -> "OutlierScenario":
        """Build a scenario whose risk level follows probability and impact."""

        if probability >= 70.0 and impact_score >= 8:
            risk = RiskLevel.HIGH
        elif probability >= 50.0 and impact_score >= 5:
            risk = RiskLevel.MEDIUM
        else:
            risk = RiskLevel.LOW
        return cls(
            description=description,
            probability=probability,
            risk_level=risk,
            supporting_factors=tuple(supporting_factors),
            historical_precedents=tuple(historical_precedents),
            impact_score=impact_score,
        )

    def short_summary(self, length: int = 50) -> str:
        return f"{self.description[:length]}... ({int(self.probability)}% chance)"


# ---------------------------------------------------------------------------
# Predictions and signals
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True, slots=True)
class OracleAnalysis:
    """Headline rating-based prediction for a fixture."""

    prediction: str
    confidence: int
    reasoning: str
    home_power_score: int
    away_power_score: int
    tesseract: OutcomeDistribution | None = None
    simulation_context: SimulationContext | None = None
    enhancement: "ContextEnhancement | None" = None

    def __post_init__(self) -> None:
        parse_score(self.prediction)
        _require_range(self.confidence, 0, 100, "confidence")
        _require_range(self.home_power_score, 0, 100, "home_power_score")
        _require_range(self.away_power_score, 0, 100, "away_power_score")

    @property
    def power_delta(self) -> int:
        return self.home_power_score - self.away_power_score

    @property
    def implied_outcome(self) -> Outcome:
        return outcome_of(self.prediction)

    @property
    def predicts_win(self) -> bool:
        return self.implied_outcome is not Outcome.DRAW

    @property
    def is_strong_home_win(self) -> bool:
        return self.power_delta > 30

    @property
    def is_strong_away_win(self) -> bool:
        return self.power_delta < -30

    @property
    def is_close_game(self) -> bool:
        return -15 <= self.power_delta <= 15


@dataclasses.dataclass(frozen=True, slots=True)
class AdjustedPrediction:
    score: str
    confidence: int
    reasoning: str
    corrections: Mapping[str, float] = dataclasses.field(default_factory=dict)


class SignalColor(str, enum.Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class ScenarioType(str, enum.Enum):
    """Narrative classification attached to a final signal."""

    BANKER = "banker"
    HIGH_RISK = "high_risk"
    GOALS_FESTIVAL = "goals_festival"
    TACTICAL_DUEL = "tactical_duel"
    DEFENSIVE_BATTLE = "defensive_battle"
    VALUE_BET = "value_bet"


@dataclasses.dataclass(frozen=True, slots=True)
class MastermindSignal:
    """Final arbitration output: one recommendation with its supporting data."""

    title: str
    description: str
    color: SignalColor
    confidence: int
    recommendation: str
    scenario_type: ScenarioType
    details: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_range(self.confidence, 0, 100, "confidence")
        _require_text(self.title, "title")
        _require_text(self.description, "description")
        _require_text(self.recommendation, "recommendation")

    @property
    def is_banker(self) -> bool:
        return self.scenario_type is ScenarioType.BANKER

    @property
    def is_high_risk(self) -> bool:
        return self.scenario_type is ScenarioType.HIGH_RISK

    @property
    def is_goals_focus(self) -> bool:
        return self.scenario_type is ScenarioType.GOALS_FESTIVAL


__all__ = [
    "AdjustedPrediction",
    "ContextFactor",
    "ContextFactorType",
    "EnhancedResult",
    "MastermindSignal",
    "OracleAnalysis",
    "Outcome",
    "OutcomeDistribution",
    "OutlierScenario",
    "PlayerScoringProbability",
    "PredictionValidationError",
    "RiskLevel",
    "ScenarioType",
    "SignalColor",
    "SimulationCancelled",
    "SimulationContext",
    "format_score",
    "highest_risk",
    "outcome_of",
    "parse_score",
    "safe_rate",
]
