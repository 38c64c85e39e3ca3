from __future__ import annotations

from pathlib import Path

import pytest

from matchmind.prediction.configuration import (
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


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MATCHMIND_ENV", raising=False)
    monkeypatch.delenv("MATCHMIND_PREDICTION_CONFIG", raising=False)


def test_repository_configuration_loads(repo_config_path: Path) -> None:
    config = load_prediction_config(base_path=repo_config_path)
    assert isinstance(config, PredictionConfig)
    assert config.simulation.trials == 10_000
    assert config.arbitration.banker_confidence == 70
    assert config.bias.injury_tiers[9] == pytest.approx(0.30)
    assert config.enhancement.warning_prefix == "⚠ "
    assert validate_prediction_config(config) == []


def test_defaults_when_default_file_is_missing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    config = load_prediction_config()
    assert config == PredictionConfig()


def test_explicit_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_prediction_config(base_path=tmp_path / "absent.yaml")


def test_non_mapping_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- trials\n- seed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_prediction_config(base_path=path)


def test_plain_string_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MATCHMIND_PREDICTION__ENHANCEMENT__WARNING_PREFIX", "!! ")
    config = load_prediction_config()
    assert config.enhancement.warning_prefix == "!! "


def test_configuration_layers_and_env_overrides(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    base = tmp_path / "matchmind.yaml"
    base.write_text(
        """
simulation:
  trials: 5000
  seed: 11
arbitration:
  banker_confidence: 70
  festival_btts: 0.6
"""
    )
    env_override = tmp_path / "matchmind.staging.yaml"
    env_override.write_text(
        """
simulation:
  trials: 4000
arbitration:
  banker_confidence: 72
"""
    )
    extra_override = tmp_path / "override.yaml"
    extra_override.write_text(
        """
arbitration:
  banker_confidence: 74
"""
    )

    monkeypatch.setenv("MATCHMIND_ENV", "staging")
    monkeypatch.setenv("MATCHMIND_PREDICTION_CONFIG", str(extra_override))
    monkeypatch.setenv("MATCHMIND_PREDICTION__simulation__trials", "2500")

    config = load_prediction_config(base_path=base)

    assert config.environment == "staging"
    assert config.simulation.trials == 2_500
    assert config.simulation.seed == 11
    assert config.arbitration.banker_confidence == 74
    assert config.arbitration.festival_btts == pytest.approx(0.6)


def test_environment_token_substitution(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    base = tmp_path / "matchmind.yaml"
    base.write_text(
        """
environment: ${DEPLOY_ENV}
enhancement:
  warning_prefix: "${WARNING_MARK} "
"""
    )
    monkeypatch.setenv("DEPLOY_ENV", "ci")
    monkeypatch.setenv("WARNING_MARK", "!!")
    config = load_prediction_config(base_path=base)
    assert config.environment == "ci"
    assert config.enhancement.warning_prefix == "!! "


def test_explicit_extra_paths(tmp_path: Path) -> None:
    base = tmp_path / "matchmind.yaml"
    base.write_text("players:\n  per_trial_factor: 0.3\n")
    extra = tmp_path / "tuning.yaml"
    extra.write_text("players:\n  per_trial_factor: 0.25\n")
    config = load_prediction_config(base_path=base, extra_paths=[extra])
    assert config.players.per_trial_factor == pytest.approx(0.25)


def test_validation_reports_errors_and_warnings() -> None:
    config = PredictionConfig()
    config.simulation.trials = 500
    warnings = validate_prediction_config(config)
    assert any("simulation.trials" in warning for warning in warnings)

    config.simulation.trials = 0
    config.players.per_trial_factor = 1.5
    with pytest.raises(ConfigurationError) as excinfo:
        validate_prediction_config(config)
    message = str(excinfo.value)
    assert "simulation.trials must be greater than zero" in message
    assert "players.per_trial_factor" in message


def test_version_mismatch_is_a_warning() -> None:
    config = PredictionConfig(config_version=2)
    assert validate_prediction_config(config)


def test_factories_wire_settings() -> None:
    config = PredictionConfig()
    config.simulation.trials = 1_234
    config.arbitration.banker_confidence = 88

    simulator = create_simulator(config)
    assert simulator.settings.trials == 1_234
    overlay = create_player_overlay(config)
    assert overlay.simulator.settings.trials == 1_234
    assert overlay.settings is config.players
    assert create_bias_corrector(config).settings is config.bias
    assert create_context_enhancer(config).settings is config.enhancement
    engine = create_mastermind_engine(config)
    assert engine.settings.banker_confidence == 88
    assert engine.enhancer.settings is config.enhancement
