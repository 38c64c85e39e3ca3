from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Sequence, Tuple

import yaml
from pydantic import BaseModel, Field

ENVIRONMENT_VARIABLE = "MATCHMIND_ENV"
EXTRA_CONFIG_VARIABLE = "MATCHMIND_PREDICTION_CONFIG"
ENV_OVERRIDE_PREFIX = "MATCHMIND_PREDICTION__"
DEFAULT_CONFIG_PATH = Path("config/matchmind.yaml")
CONFIG_VERSION = 1

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .arbitration import MastermindEngine
    from .bias import BiasCorrector
    from .enhancement import ContextEnhancer
    from .players import PlayerOverlay
    from .simulation import TesseractSimulator


class SimulationSettings(BaseModel):
    """Rate model and Monte Carlo loop parameters."""

    trials: int = 10_000
    base_scoring_rate: float = 3.2
    noise_min: float = 0.9
    noise_max: float = 1.1
    cancel_check_interval: int = 250
    top_scores: int = 3
    seed: int | None = None


class PlayerOverlaySettings(BaseModel):
    """Constants for the per-player Bernoulli scoring overlay."""

    per_trial_factor: float = 0.3
    multi_goal_threshold: float = 70.0
    multi_goal_chance: float = 0.1
    player_contribution_weight: float = 0.4
    anytime_scorer_threshold: float = 40.0
    trials: int | None = None


class QuickFixSettings(BaseModel):
    """Thresholds for the extreme-scoreline quick fix."""

    blowout_margin: int = 3
    large_power_gap: int = 50
    moderate_power_gap: int = 30
    heavy_injuries: int = 8
    moderate_injuries: int = 4


class BiasSettings(BaseModel):
    """Correction magnitudes used by the context-adjusted prediction."""

    quick_fix: QuickFixSettings = Field(default_factory=QuickFixSettings)
    injury_tiers: Dict[int, float] = Field(
        default_factory=lambda: {9: 0.30, 7: 0.20, 5: 0.15, 3: 0.10, 0: 0.05}
    )
    injury_cap: float = 0.6
    form_tiers: Dict[float, float] = Field(
        default_factory=lambda: {9.0: 0.10, 8.0: 0.05, 4.0: 0.0, 1.5: -0.15}
    )
    form_floor: float = -0.20
    pressure_high: float = 0.10
    pressure_moderate: float = 0.05
    other_negative_step: float = 0.05
    other_negative_cap: float = 0.15
    alignment_exact: float = 1.0
    alignment_same_outcome: float = 0.90
    alignment_disagree: float = 0.80
    max_goals: int = 5


class ArbitrationSettings(BaseModel):
    """Decision-tree thresholds for the arbitration engine."""

    banker_confidence: int = 70
    low_confidence: int = 50
    max_fatigue: int = 80
    min_lineup_strength: int = 70
    festival_over2_5: float = 0.65
    festival_btts: float = 0.60
    tactical_power_delta: int = 20
    tactical_confidence_min: int = 50
    tactical_confidence_max: int = 70
    defensive_under2_5: float = 0.70
    defensive_btts: float = 0.40
    value_threshold: float = 0.5
    oracle_only_certain: int = 75
    oracle_only_moderate: int = 50
    high_risk_confidence: int = 60
    festival_confidence: int = 75
    tactical_confidence: int = 65
    defensive_confidence: int = 70


class EnhancementSettings(BaseModel):
    """Weights and thresholds for the qualitative context overlay."""

    confidence_scale: float = 2.0
    max_confidence_adjustment: int = 20
    outlier_probability_threshold: float = 70.0
    negative_majority: float = 0.5
    recommendation_excerpt: int = 50
    warning_prefix: str = "⚠ "


class PredictionConfig(BaseModel):
    """Aggregate configuration for the prediction core."""

    config_version: int = CONFIG_VERSION
    environment: str = "default"
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    players: PlayerOverlaySettings = Field(default_factory=PlayerOverlaySettings)
    bias: BiasSettings = Field(default_factory=BiasSettings)
    arbitration: ArbitrationSettings = Field(default_factory=ArbitrationSettings)
    enhancement: EnhancementSettings = Field(default_factory=EnhancementSettings)


class ConfigurationError(ValueError):
    """Raised when prediction configuration validation fails."""


_TOKEN = re.compile(r"\$\{([^}]+)\}")


# -- layered loading ------------------------------------------------------------


def _read_layer(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping of settings")
    return data


def _overlay(base: Dict[str, Any], layer: Mapping[str, Any]) -> Dict[str, Any]:
    """Return ``base`` with ``layer`` applied section by section."""

    merged = dict(base)
    for key, value in layer.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _overlay(current, value)
        else:
            merged[key] = value
    return merged


def _expand_tokens(value: Any) -> Any:
    # Every section is a mapping of scalars, so only strings carry tokens.
    if isinstance(value, str):
        return _TOKEN.sub(lambda match: os.getenv(match.group(1), ""), value)
    if isinstance(value, dict):
        return {key: _expand_tokens(item) for key, item in value.items()}
    return value


def _env_overrides() -> Iterator[Tuple[List[str], Any]]:
    """Yield ``(section path, value)`` pairs from ``MATCHMIND_PREDICTION__*``."""

    for name, raw in os.environ.items():
        if not name.startswith(ENV_OVERRIDE_PREFIX):
            continue
        path = [part.lower() for part in name[len(ENV_OVERRIDE_PREFIX) :].split("__") if part]
        if not path:
            continue
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        yield path, value


def _layer_paths(
    config_path: Path,
    environment: str | None,
    extra_paths: Sequence[str | os.PathLike[str]] | None,
) -> List[Path]:
    layers: List[Path] = []
    if environment:
        layers.append(config_path.with_name(f"{config_path.stem}.{environment}{config_path.suffix}"))
    layers.extend(Path(path) for path in extra_paths or ())
    from_env = os.getenv(EXTRA_CONFIG_VARIABLE, "")
    layers.extend(Path(token) for token in from_env.split(os.pathsep) if token)
    return [path for path in layers if path.exists()]


def load_prediction_config(
    *,
    base_path: str | os.PathLike[str] | None = None,
    environment: str | None = None,
    extra_paths: Sequence[str | os.PathLike[str]] | None = None,
) -> PredictionConfig:
    """Load layered configuration for the prediction core.

    Layers, lowest precedence first: ``config/matchmind.yaml`` (built-in
    defaults when no ``base_path`` is given and the file is absent), the
    ``config/matchmind.<env>.yaml`` file for the selected environment, files
    from ``extra_paths`` and ``MATCHMIND_PREDICTION_CONFIG``, and finally
    ``MATCHMIND_PREDICTION__section__field`` variables holding JSON values.
    ``${VAR}`` tokens in string values are expanded last.
    """

    config_path = Path(base_path) if base_path is not None else DEFAULT_CONFIG_PATH
    data: Dict[str, Any] = {}
    if base_path is not None or config_path.exists():
        data = _read_layer(config_path)

    env_name = environment or os.getenv(ENVIRONMENT_VARIABLE) or data.get("environment")
    if not isinstance(env_name, str):
        env_name = None
    for layer in _layer_paths(config_path, env_name, extra_paths):
        data = _overlay(data, _read_layer(layer))
    if env_name is not None:
        data["environment"] = env_name

    for path, value in _env_overrides():
        section = data
        for part in path[:-1]:
            child = section.get(part)
            section[part] = child = dict(child) if isinstance(child, dict) else {}
            section = child
        section[path[-1]] = value

    return PredictionConfig.model_validate(_expand_tokens(data))


def validate_prediction_config(config: PredictionConfig) -> list[str]:
    """Validate a :class:`PredictionConfig` instance.

    Args:
        config: Parsed configuration object to validate.

    Returns:
        A list of warning messages. The function raises
        :class:`ConfigurationError` if any fatal issues are detected.
    """

    errors: list[str] = []
    warnings: list[str] = []

    if config.config_version != CONFIG_VERSION:
        warnings.append(
            f"config_version {config.config_version} differs from supported version {CONFIG_VERSION}"
        )

    simulation = config.simulation
    if simulation.trials <= 0:
        errors.append("simulation.trials must be greater than zero")
    elif simulation.trials < 1_000:
        warnings.append(
            "simulation.trials is below 1000; outcome probabilities will be noisy"
        )
    if simulation.base_scoring_rate <= 0:
        errors.append("simulation.base_scoring_rate must be greater than zero")
    if simulation.noise_min <= 0:
        errors.append("simulation.noise_min must be greater than zero")
    if simulation.noise_max < simulation.noise_min:
        errors.append("simulation.noise_max must not be below simulation.noise_min")
    if simulation.cancel_check_interval <= 0:
        errors.append("simulation.cancel_check_interval must be greater than zero")
    if simulation.top_scores <= 0:
        errors.append("simulation.top_scores must be greater than zero")

    players = config.players
    if not 0 < players.per_trial_factor <= 1:
        errors.append("players.per_trial_factor must be within (0, 1]")
    if not 0 <= players.multi_goal_chance <= 1:
        errors.append("players.multi_goal_chance must be within [0, 1]")
    if not 0 <= players.player_contribution_weight <= 1:
        errors.append("players.player_contribution_weight must be within [0, 1]")
    if players.trials is not None and players.trials <= 0:
        errors.append("players.trials must be greater than zero when set")

    bias = config.bias
    if not 0 <= bias.injury_cap < 1:
        errors.append("bias.injury_cap must be within [0, 1)")
    if bias.max_goals <= 0:
        errors.append("bias.max_goals must be greater than zero")
    for name in ("alignment_exact", "alignment_same_outcome", "alignment_disagree"):
        if getattr(bias, name) <= 0:
            errors.append(f"bias.{name} must be greater than zero")
    if bias.alignment_disagree > bias.alignment_same_outcome:
        warnings.append(
            "bias.alignment_disagree exceeds bias.alignment_same_outcome; disagreement will be rewarded"
        )
    quick_fix = bias.quick_fix
    if quick_fix.large_power_gap < quick_fix.moderate_power_gap:
        errors.append("bias.quick_fix.large_power_gap must not be below moderate_power_gap")

    arbitration = config.arbitration
    for name, value in arbitration.model_dump().items():
        if value < 0:
            errors.append(f"arbitration.{name} must be non-negative")
    if arbitration.tactical_confidence_min > arbitration.tactical_confidence_max:
        errors.append("arbitration.tactical_confidence_min must not exceed tactical_confidence_max")

    enhancement = config.enhancement
    if enhancement.confidence_scale < 0:
        errors.append("enhancement.confidence_scale must be non-negative")
    if not 0 <= enhancement.max_confidence_adjustment <= 100:
        errors.append("enhancement.max_confidence_adjustment must be between 0 and 100")
    if not 0 <= enhancement.outlier_probability_threshold <= 100:
        errors.append("enhancement.outlier_probability_threshold must be between 0 and 100")
    if enhancement.recommendation_excerpt <= 0:
        errors.append("enhancement.recommendation_excerpt must be greater than zero")

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{bullet_list}")

    return warnings


def create_simulator(config: PredictionConfig) -> "TesseractSimulator":
    """Construct a :class:`TesseractSimulator` with configuration defaults."""

    from .simulation import TesseractSimulator

    return TesseractSimulator(settings=config.simulation)


def create_player_overlay(config: PredictionConfig) -> "PlayerOverlay":
    from .players import PlayerOverlay

    return PlayerOverlay(
        settings=config.players,
        simulator=create_simulator(config),
    )


def create_bias_corrector(config: PredictionConfig) -> "BiasCorrector":
    from .bias import BiasCorrector

    return BiasCorrector(settings=config.bias)


def create_context_enhancer(config: PredictionConfig) -> "ContextEnhancer":
    from .enhancement import ContextEnhancer

    return ContextEnhancer(settings=config.enhancement)


def create_mastermind_engine(config: PredictionConfig) -> "MastermindEngine":
    """Construct a :class:`MastermindEngine` wired to a configured enhancer."""

    from .arbitration import MastermindEngine

    return MastermindEngine(
        settings=config.arbitration,
        enhancer=create_context_enhancer(config),
    )


__all__ = [
    "ArbitrationSettings",
    "BiasSettings",
    "ConfigurationError",
    "EnhancementSettings",
    "PlayerOverlaySettings",
    "PredictionConfig",
    "QuickFixSettings",
    "SimulationSettings",
    "create_bias_corrector",
    "create_context_enhancer",
    "create_mastermind_engine",
    "create_player_overlay",
    "create_simulator",
    "load_prediction_config",
    "validate_prediction_config",
]
