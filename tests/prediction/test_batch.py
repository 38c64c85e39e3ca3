from __future__ import annotations

import asyncio
import logging
import threading

import polars as pl
import pytest

from matchmind.prediction.batch import (
    FixtureFailure,
    FixtureRequest,
    FixtureResult,
    fixture_rng,
    results_to_frame,
    simulate_fixtures,
    simulate_fixtures_async,
)
from matchmind.prediction.models import SimulationCancelled, SimulationContext


def _requests() -> list[FixtureRequest]:
    return [
        FixtureRequest("ars-che", 80, 60),
        FixtureRequest("bad-power", 150, 40),
        FixtureRequest("liv-eve", 75, 50, SimulationContext(fatigue_score=30)),
    ]


def test_failures_are_isolated(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="matchmind.prediction.batch"):
        outcomes = simulate_fixtures(_requests(), trials=500, seed=1, max_workers=2)
    assert [type(outcome) for outcome in outcomes] == [FixtureResult, FixtureFailure, FixtureResult]
    assert [outcome.fixture_id for outcome in outcomes] == ["ars-che", "bad-power", "liv-eve"]
    assert "home_power" in outcomes[1].error
    assert "bad-power" in caplog.text


def test_seeded_batches_are_reproducible() -> None:
    first = simulate_fixtures(_requests(), trials=400, seed=9, max_workers=3)
    second = simulate_fixtures(_requests(), trials=400, seed=9, max_workers=1)
    assert first == second


def test_fixture_generators_are_independent() -> None:
    assert fixture_rng(5, 0).random() != fixture_rng(5, 1).random()
    assert fixture_rng(5, 2).random() == fixture_rng(5, 2).random()


def test_empty_batch() -> None:
    assert simulate_fixtures([]) == []


def test_cancelled_batch_raises() -> None:
    event = threading.Event()
    event.set()
    with pytest.raises(SimulationCancelled):
        simulate_fixtures([FixtureRequest("x", 50, 50)], trials=1_000, cancel_event=event)


def test_async_batch_matches_sync() -> None:
    expected = simulate_fixtures(_requests(), trials=300, seed=4)
    result = asyncio.run(simulate_fixtures_async(_requests(), trials=300, seed=4))
    assert result == expected


def test_results_to_frame() -> None:
    outcomes = simulate_fixtures(_requests(), trials=300, seed=2)
    frame = results_to_frame(outcomes)
    assert isinstance(frame, pl.DataFrame)
    assert frame.height == 3
    assert frame["fixture_id"].to_list() == ["ars-che", "bad-power", "liv-eve"]
    assert frame["error"].null_count() == 2
    assert frame["simulation_count"].to_list() == [300, None, 300]
    assert frame.schema["home_win_probability"] == pl.Float64
