from __future__ import annotations

import asyncio
import random
import threading

import pytest

from matchmind.prediction.configuration import SimulationSettings
from matchmind.prediction.models import (
    PredictionValidationError,
    SimulationCancelled,
    SimulationContext,
)
from matchmind.prediction.simulation import (
    TesseractSimulator,
    _TrialTally,
    poisson_knuth,
)


def test_probabilities_sum_to_one(simulator: TesseractSimulator) -> None:
    result = simulator.simulate(70, 55, trials=3_000, seed=1)
    total = result.home_win_probability + result.draw_probability + result.away_win_probability
    assert total == pytest.approx(1.0, abs=1e-3)
    assert result.simulation_count == 3_000
    for value in (result.btts_probability, result.over2_5_probability):
        assert 0.0 <= value <= 1.0


def test_seeded_runs_are_reproducible(simulator: TesseractSimulator) -> None:
    first = simulator.simulate(60, 40, trials=1_500, seed=99)
    second = simulator.simulate(60, 40, trials=1_500, seed=99)
    assert first == second

    explicit = simulator.simulate(60, 40, trials=1_500, rng=random.Random(99))
    assert explicit == first


def test_zero_power_produces_goalless_draws(simulator: TesseractSimulator) -> None:
    result = simulator.simulate(0, 0, trials=400, seed=3)
    assert result.draw_probability == 1.0
    assert result.most_likely_score == "0-0"
    assert result.btts_probability == 0.0
    assert result.over2_5_probability == 0.0
    assert result.top_score_distribution == (("0-0", 400),)


def test_empty_lineup_shuts_out_both_sides(simulator: TesseractSimulator) -> None:
    context = SimulationContext(lineup_strength=0)
    result = simulator.simulate(90, 90, context, trials=300, seed=4)
    assert result.most_likely_score == "0-0"
    assert result.draw_probability == 1.0


def test_top_scores_are_descending(simulator: TesseractSimulator) -> None:
    result = simulator.simulate(65, 50, trials=4_000, seed=5)
    counts = [count for _, count in result.top_score_distribution]
    assert 1 <= len(counts) <= 3
    assert counts == sorted(counts, reverse=True)
    assert result.top_score_distribution[0][0] == result.most_likely_score


def test_ties_resolve_to_first_encountered_score() -> None:
    tally = _TrialTally()
    for home, away in [(1, 0), (0, 0), (0, 0), (1, 0), (2, 2)]:
        tally.record(home, away)
    assert tally.top_scores(3) == [("1-0", 2), ("0-0", 2), ("2-2", 1)]
    distribution = tally.to_distribution(5, 3)
    assert distribution.most_likely_score == "1-0"
    assert distribution.btts_probability == pytest.approx(0.2)


@pytest.mark.parametrize(
    ("home", "away", "trials"),
    [(-1, 50, 100), (50, 101, 100), (50, 50, 0), (50, 50, -10)],
)
def test_invalid_inputs_are_rejected(
    simulator: TesseractSimulator, home: int, away: int, trials: int
) -> None:
    with pytest.raises(PredictionValidationError):
        simulator.simulate(home, away, trials=trials)


def test_home_win_probability_grows_with_power_gap() -> None:
    simulator = TesseractSimulator(settings=SimulationSettings(trials=20_000))
    probabilities = [
        simulator.simulate(home, 45, trials=20_000, seed=2024).home_win_probability
        for home in (30, 45, 60, 75, 90)
    ]
    for lower, higher in zip(probabilities, probabilities[1:]):
        assert higher >= lower - 0.01
    assert probabilities[-1] > probabilities[0] + 0.25


def test_poisson_knuth_matches_rate() -> None:
    generator = random.Random(8)
    assert poisson_knuth(0.0, generator) == 0
    assert poisson_knuth(-2.0, generator) == 0
    draws = [poisson_knuth(1.6, generator) for _ in range(20_000)]
    assert sum(draws) / len(draws) == pytest.approx(1.6, abs=0.05)


def test_cancelled_simulation_raises_without_result(simulator: TesseractSimulator) -> None:
    event = threading.Event()
    event.set()
    with pytest.raises(SimulationCancelled):
        simulator.simulate(60, 40, trials=5_000, cancel_event=event)


def test_unset_cancel_event_runs_to_completion(simulator: TesseractSimulator) -> None:
    result = simulator.simulate(60, 40, trials=600, seed=6, cancel_event=threading.Event())
    assert result.simulation_count == 600


def test_simulate_async_matches_sync(simulator: TesseractSimulator) -> None:
    expected = simulator.simulate(55, 50, trials=800, seed=12)
    result = asyncio.run(simulator.simulate_async(55, 50, trials=800, seed=12))
    assert result == expected


def test_expected_goals_applies_context(simulator: TesseractSimulator) -> None:
    assert simulator.expected_goals(50) == pytest.approx(1.6)
    tired = SimulationContext(fatigue_score=100)
    assert simulator.expected_goals(50, tired) == pytest.approx(0.8)


def test_default_trials_come_from_settings() -> None:
    simulator = TesseractSimulator(settings=SimulationSettings(trials=250, seed=1))
    assert simulator.simulate(50, 50).simulation_count == 250


def test_benchmark_reports_throughput() -> None:
    simulator = TesseractSimulator(settings=SimulationSettings(trials=200, seed=1))
    benchmark = simulator.benchmark(repeats=2)
    assert benchmark.trials_run == 400
    assert benchmark.per_second > 0
