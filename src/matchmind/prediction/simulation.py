"""Monte Carlo goal simulation ("Tesseract")."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import math
import random
import threading
import time
from typing import Dict, List, Tuple

from .configuration import SimulationSettings
from .models import (
    OutcomeDistribution,
    PredictionValidationError,
    SimulationCancelled,
    SimulationContext,
    safe_rate,
)
from .power import ContextModulator, power_to_lambda, validate_power

logger = logging.getLogger(__name__)


def poisson_knuth(lam: float, rng: random.Random) -> int:
    """Draw a Poisson variate using Knuth's multiplication method."""

    if lam <= 0:
        return 0
    limit = math.exp(-lam)
    k = 0
    p = 1.0
    while True:
        k += 1
        p *= rng.random()
        if p <= limit:
            return k - 1


def validate_trials(trials: int) -> int:
    if isinstance(trials, bool) or not isinstance(trials, int):
        raise PredictionValidationError(f"trials must be an integer, got {trials!r}")
    if trials <= 0:
        raise PredictionValidationError(f"trials must be greater than zero, got {trials}")
    return trials


def build_rng(rng: random.Random | None = None, seed: int | None = None) -> random.Random:
    """Return ``rng`` or a fresh generator private to one call."""

    if rng is not None:
        return rng
    return random.Random(seed)


@dataclasses.dataclass(slots=True)
class SimulationBenchmark:
    trials_run: int
    elapsed_seconds: float

    @property
    def per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return float("inf")
        return self.trials_run / self.elapsed_seconds


class _TrialTally:
    """Running counters for one simulation run."""

    __slots__ = ("home_wins", "draws", "away_wins", "btts", "over2_5", "scores")

    def __init__(self) -> None:
        self.home_wins = 0
        self.draws = 0
        self.away_wins = 0
        self.btts = 0
        self.over2_5 = 0
        self.scores: Dict[str, int] = {}

    def record(self, home_goals: int, away_goals: int) -> None:
        if home_goals > away_goals:
            self.home_wins += 1
        elif home_goals < away_goals:
            self.away_wins += 1
        else:
            self.draws += 1
        if home_goals > 0 and away_goals > 0:
            self.btts += 1
        if home_goals + away_goals > 2.5:
            self.over2_5 += 1
        key = f"{home_goals}-{away_goals}"
        self.scores[key] = self.scores.get(key, 0) + 1

    def top_scores(self, limit: int) -> List[Tuple[str, int]]:
        # sorted() is stable, so equal counts keep first-encountered order
        ranked = sorted(self.scores.items(), key=lambda item: item[1], reverse=True)
        return ranked[:limit]

    def to_distribution(self, trials: int, top_limit: int) -> OutcomeDistribution:
        top = self.top_scores(max(top_limit, 1))
        most_likely = top[0][0] if top else "0-0"
        return OutcomeDistribution(
            home_win_probability=safe_rate(self.home_wins, trials),
            draw_probability=safe_rate(self.draws, trials),
            away_win_probability=safe_rate(self.away_wins, trials),
            most_likely_score=most_likely,
            simulation_count=trials,
            btts_probability=safe_rate(self.btts, trials),
            over2_5_probability=safe_rate(self.over2_5, trials),
            top_score_distribution=tuple(top[:top_limit]),
        )


class TesseractSimulator:
    """Run independent Poisson trials and aggregate an outcome distribution.

    The simulator holds configuration only.  Every call builds or receives its
    own :class:`random.Random`, so one instance can serve concurrent callers.
    """

    def __init__(
        self,
        settings: SimulationSettings | None = None,
        modulator: ContextModulator | None = None,
    ) -> None:
        self.settings = settings or SimulationSettings()
        self.modulator = modulator or ContextModulator(
            noise_min=self.settings.noise_min,
            noise_max=self.settings.noise_max,
        )

    def base_lambdas(self, home_power: int, away_power: int) -> Tuple[float, float]:
        validate_power(home_power, "home_power")
        validate_power(away_power, "away_power")
        rate = self.settings.base_scoring_rate
        return power_to_lambda(home_power, rate), power_to_lambda(away_power, rate)

    def expected_goals(
        self, power: int, context: SimulationContext | None = None
    ) -> float:
        """Deterministic expected goals for one side, without form noise."""

        validate_power(power)
        base = power_to_lambda(power, self.settings.base_scoring_rate)
        return self.modulator.modulate(base, context)

    def simulate(
        self,
        home_power: int,
        away_power: int,
        context: SimulationContext | None = None,
        trials: int | None = None,
        *,
        rng: random.Random | None = None,
        seed: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> OutcomeDistribution:
        """Simulate ``trials`` matches and return the aggregated distribution.

        Args:
            home_power: Home power score in ``[0, 100]``.
            away_power: Away power score in ``[0, 100]``.
            context: Trinity modifiers; neutral when omitted.
            trials: Number of trials, defaulting to ``settings.trials``.
            rng: Generator to draw from. When omitted a new one is seeded from
                ``seed`` (or ``settings.seed``).
            cancel_event: Checked every ``settings.cancel_check_interval``
                trials; once set the run raises :class:`SimulationCancelled`.

        Raises:
            PredictionValidationError: If a power score or the trial count is
                out of range. Nothing is simulated in that case.
        """

        home_lambda, away_lambda = self.base_lambdas(home_power, away_power)
        total = validate_trials(self.settings.trials if trials is None else trials)
        context = context or SimulationContext.NEUTRAL
        generator = build_rng(rng, self.settings.seed if seed is None else seed)
        interval = max(1, self.settings.cancel_check_interval)

        tally = _TrialTally()
        effective = self.modulator.effective_lambda
        for index in range(total):
            if cancel_event is not None and index % interval == 0 and cancel_event.is_set():
                logger.debug("Simulation cancelled after %d of %d trials", index, total)
                raise SimulationCancelled(
                    f"Simulation cancelled after {index} of {total} trials"
                )
            home_goals = poisson_knuth(effective(home_lambda, context, generator), generator)
            away_goals = poisson_knuth(effective(away_lambda, context, generator), generator)
            tally.record(home_goals, away_goals)

        result = tally.to_distribution(total, self.settings.top_scores)
        logger.debug(
            "Tesseract %d vs %d over %d trials -> H %.3f D %.3f A %.3f (%s)",
            home_power,
            away_power,
            total,
            result.home_win_probability,
            result.draw_probability,
            result.away_win_probability,
            result.most_likely_score,
        )
        return result

    async def simulate_async(
        self,
        home_power: int,
        away_power: int,
        context: SimulationContext | None = None,
        trials: int | None = None,
        *,
        rng: random.Random | None = None,
        seed: int | None = None,
    ) -> OutcomeDistribution:
        """Run :meth:`simulate` on a worker thread.

        Cancelling the awaiting task signals the worker, which stops at its
        next cancellation check.
        """

        cancel_event = threading.Event()
        try:
            return await asyncio.to_thread(
                self.simulate,
                home_power,
                away_power,
                context,
                trials,
                rng=rng,
                seed=seed,
                cancel_event=cancel_event,
            )
        except asyncio.CancelledError:
            cancel_event.set()
            raise

    def benchmark(self, trials: int | None = None, repeats: int = 3) -> SimulationBenchmark:
        total = validate_trials(self.settings.trials if trials is None else trials)
        generator = random.Random(self.settings.seed)
        start = time.perf_counter()
        for _ in range(repeats):
            self.simulate(50, 50, trials=total, rng=generator)
        elapsed = time.perf_counter() - start
        benchmark = SimulationBenchmark(trials_run=total * repeats, elapsed_seconds=elapsed)
        logger.debug(
            "Benchmark throughput %.0f trials/second", benchmark.per_second
        )
        return benchmark


__all__ = [
    "SimulationBenchmark",
    "TesseractSimulator",
    "build_rng",
    "poisson_knuth",
    "validate_trials",
]
