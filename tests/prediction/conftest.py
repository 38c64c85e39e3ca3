from __future__ import annotations

import random
from pathlib import Path
from typing import Callable

import pytest

from matchmind.prediction.configuration import SimulationSettings
from matchmind.prediction.models import (
    OracleAnalysis,
    OutcomeDistribution,
    SimulationContext,
)
from matchmind.prediction.simulation import TesseractSimulator

REPO_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture()
def repo_config_path() -> Path:
    return REPO_ROOT / "config" / "matchmind.yaml"


@pytest.fixture()
def simulator() -> TesseractSimulator:
    return TesseractSimulator(settings=SimulationSettings(trials=2_000, seed=7))


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(20240601)


@pytest.fixture()
def neutral_context() -> SimulationContext:
    return SimulationContext.NEUTRAL


@pytest.fixture()
def make_oracle() -> Callable[..., OracleAnalysis]:
    def _factory(
        prediction: str = "3-0",
        confidence: int = 85,
        home_power: int = 85,
        away_power: int = 45,
        **kwargs: object,
    ) -> OracleAnalysis:
        return OracleAnalysis(
            prediction=prediction,
            confidence=confidence,
            reasoning=kwargs.pop("reasoning", "Power ratings favour the home side."),
            home_power_score=home_power,
            away_power_score=away_power,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def make_distribution() -> Callable[..., OutcomeDistribution]:
    def _factory(
        home: float = 0.6,
        draw: float = 0.25,
        away: float = 0.15,
        score: str = "2-0",
        btts: float = 0.45,
        over: float = 0.5,
        count: int = 10_000,
    ) -> OutcomeDistribution:
        return OutcomeDistribution(
            home_win_probability=home,
            draw_probability=draw,
            away_win_probability=away,
            most_likely_score=score,
            simulation_count=count,
            btts_probability=btts,
            over2_5_probability=over,
            top_score_distribution=((score, int(count * 0.25)),),
        )

    return _factory
