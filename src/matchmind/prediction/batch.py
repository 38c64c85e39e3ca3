"""Simulate many fixtures concurrently with isolated failures."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

import polars as pl

from .models import OutcomeDistribution, PredictionValidationError, SimulationContext
from .simulation import TesseractSimulator

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class FixtureRequest:
    fixture_id: str
    home_power: int
    away_power: int
    context: SimulationContext | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class FixtureResult:
    fixture_id: str
    distribution: OutcomeDistribution


@dataclasses.dataclass(frozen=True, slots=True)
class FixtureFailure:
    """A fixture rejected by validation; other fixtures are unaffected."""

    fixture_id: str
    error: str


FixtureOutcome = FixtureResult | FixtureFailure


def fixture_rng(seed: int | None, index: int) -> random.Random:
    """Independent generator for the ``index``-th fixture of a batch."""

    if seed is None:
        return random.Random()
    return random.Random(seed * 1_000_003 + index)


def simulate_fixtures(
    requests: Sequence[FixtureRequest],
    trials: int | None = None,
    seed: int | None = None,
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
    simulator: TesseractSimulator | None = None,
) -> List[FixtureOutcome]:
    """Simulate ``requests`` on a thread pool, preserving input order.

    A validation failure becomes a :class:`FixtureFailure` for that fixture
    only. Cancellation aborts the whole batch with
    :class:`~matchmind.prediction.models.SimulationCancelled`.
    """

    if not requests:
        return []
    simulator = simulator or TesseractSimulator()
    if max_workers is None:
        max_workers = min(8, os.cpu_count() or 4)

    def run(index: int, request: FixtureRequest) -> FixtureOutcome:
        try:
            distribution = simulator.simulate(
                request.home_power,
                request.away_power,
                request.context,
                trials,
                rng=fixture_rng(seed, index),
                cancel_event=cancel_event,
            )
        except PredictionValidationError as err:
            logger.warning("Fixture %s rejected: %s", request.fixture_id, err)
            return FixtureFailure(fixture_id=request.fixture_id, error=str(err))
        return FixtureResult(fixture_id=request.fixture_id, distribution=distribution)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(run, index, request) for index, request in enumerate(requests)
        ]
        outcomes = [future.result() for future in futures]

    failures = sum(1 for outcome in outcomes if isinstance(outcome, FixtureFailure))
    logger.debug("Simulated %d fixtures (%d failed)", len(outcomes), failures)
    return outcomes


async def simulate_fixtures_async(
    requests: Sequence[FixtureRequest],
    trials: int | None = None,
    seed: int | None = None,
    max_workers: int | None = None,
    simulator: TesseractSimulator | None = None,
) -> List[FixtureOutcome]:
    cancel_event = threading.Event()
    try:
        return await asyncio.to_thread(
            simulate_fixtures,
            requests,
            trials,
            seed,
            max_workers,
            cancel_event,
            simulator,
        )
    except asyncio.CancelledError:
        cancel_event.set()
        raise


_FRAME_SCHEMA = {
    "fixture_id": pl.Utf8,
    "home_win_probability": pl.Float64,
    "draw_probability": pl.Float64,
    "away_win_probability": pl.Float64,
    "btts_probability": pl.Float64,
    "over2_5_probability": pl.Float64,
    "most_likely_score": pl.Utf8,
    "simulation_count": pl.Int64,
    "error": pl.Utf8,
}


def results_to_frame(results: Sequence[FixtureOutcome]) -> pl.DataFrame:
    """Flatten batch outcomes into a Polars DataFrame, one row per fixture."""

    records = []
    for outcome in results:
        row = {key: None for key in _FRAME_SCHEMA}
        row["fixture_id"] = outcome.fixture_id
        if isinstance(outcome, FixtureFailure):
            row["error"] = outcome.error
        else:
            payload = outcome.distribution.as_dict()
            payload.pop("top_score_distribution")
            row.update(payload)
        records.append(row)
    return pl.DataFrame(records, schema=_FRAME_SCHEMA)


__all__ = [
    "FixtureFailure",
    "FixtureOutcome",
    "FixtureRequest",
    "FixtureResult",
    "fixture_rng",
    "results_to_frame",
    "simulate_fixtures",
    "simulate_fixtures_async",
]
