"""Player-level scoring overlay on top of the team Poisson model."""

from __future__ import annotations

import logging
import random
import threading
from typing import Any, Dict, List, Sequence, Tuple

from .configuration import PlayerOverlaySettings
from .models import (
    EnhancedResult,
    OracleAnalysis,
    OutcomeDistribution,
    PlayerScoringProbability,
    SimulationCancelled,
    SimulationContext,
    safe_rate,
)
from .simulation import TesseractSimulator, build_rng, poisson_knuth, validate_trials

logger = logging.getLogger(__name__)

Insight = Tuple[str, Dict[str, Any]]


def _scorer_map(players: Sequence[PlayerScoringProbability]) -> Dict[str, float]:
    return {
        player.player_name: player.adjusted_probability
        for player in players
        if player.is_playing
    }


def _most_likely_scorer(players: Sequence[PlayerScoringProbability]) -> str | None:
    best: PlayerScoringProbability | None = None
    for player in players:
        if not player.is_playing:
            continue
        if best is None or player.adjusted_probability > best.adjusted_probability:
            best = player
    return best.player_name if best is not None else None


class PlayerOverlay:
    """Augment team goal draws with per-player Bernoulli scoring events."""

    def __init__(
        self,
        settings: PlayerOverlaySettings | None = None,
        simulator: TesseractSimulator | None = None,
    ) -> None:
        self.settings = settings or PlayerOverlaySettings()
        self.simulator = simulator or TesseractSimulator()

    def player_goals(
        self, players: Sequence[PlayerScoringProbability], rng: random.Random
    ) -> int:
        """Draw the goals contributed by ``players`` in a single trial."""

        factor = self.settings.per_trial_factor
        goals = 0
        for player in players:
            if not player.is_playing:
                continue
            if rng.random() < player.adjusted_probability / 100.0 * factor:
                goals += 1
                if (
                    player.adjusted_probability > self.settings.multi_goal_threshold
                    and rng.random() < self.settings.multi_goal_chance
                ):
                    goals += 1
        return goals

    def team_expected_goals(
        self, base_lambda: float, players: Sequence[PlayerScoringProbability]
    ) -> float:
        weight = self.settings.player_contribution_weight
        contribution = sum(player.expected_goal_contribution for player in players)
        return base_lambda * (1.0 - weight) + contribution * weight

    def run_enhanced(
        self,
        oracle: OracleAnalysis,
        home_players: Sequence[PlayerScoringProbability],
        away_players: Sequence[PlayerScoringProbability],
        trials: int | None = None,
        *,
        rng: random.Random | None = None,
        seed: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> EnhancedResult:
        """Run the player-augmented trials for ``oracle``'s fixture.

        The base distribution is ``oracle.tesseract`` when present and a fresh
        simulation otherwise. BTTS and over 2.5 are recomputed from the
        augmented trials.
        """

        simulator = self.simulator
        home_lambda, away_lambda = simulator.base_lambdas(
            oracle.home_power_score, oracle.away_power_score
        )
        if trials is None:
            trials = self.settings.trials
        if trials is None:
            trials = simulator.settings.trials
        total = validate_trials(trials)
        context = oracle.simulation_context or SimulationContext.NEUTRAL
        generator = build_rng(rng, seed)

        base_result: OutcomeDistribution
        if oracle.tesseract is not None:
            base_result = oracle.tesseract
        else:
            base_result = simulator.simulate(
                oracle.home_power_score,
                oracle.away_power_score,
                context,
                total,
                rng=generator,
                cancel_event=cancel_event,
            )

        interval = max(1, simulator.settings.cancel_check_interval)
        effective = simulator.modulator.effective_lambda
        btts = 0
        over2_5 = 0
        for index in range(total):
            if cancel_event is not None and index % interval == 0 and cancel_event.is_set():
                raise SimulationCancelled(
                    f"Player overlay cancelled after {index} of {total} trials"
                )
            home_goals = poisson_knuth(effective(home_lambda, context, generator), generator)
            away_goals = poisson_knuth(effective(away_lambda, context, generator), generator)
            home_goals += self.player_goals(home_players, generator)
            away_goals += self.player_goals(away_players, generator)
            if home_goals > 0 and away_goals > 0:
                btts += 1
            if home_goals + away_goals > 2.5:
                over2_5 += 1

        result = EnhancedResult(
            base_result=base_result,
            home_scorer_probabilities=_scorer_map(home_players),
            away_scorer_probabilities=_scorer_map(away_players),
            most_likely_home_scorer=_most_likely_scorer(home_players),
            most_likely_away_scorer=_most_likely_scorer(away_players),
            home_expected_goals=self.team_expected_goals(home_lambda, home_players),
            away_expected_goals=self.team_expected_goals(away_lambda, away_players),
            btts_probability=safe_rate(btts, total),
            over2_5_probability=safe_rate(over2_5, total),
            simulation_count=total,
        )
        logger.debug(
            "Player overlay over %d trials -> xG %.2f/%.2f BTTS %.3f O2.5 %.3f",
            total,
            result.home_expected_goals,
            result.away_expected_goals,
            result.btts_probability,
            result.over2_5_probability,
        )
        return result

    def insights(self, result: EnhancedResult) -> List[Insight]:
        """Return ``(code, payload)`` records describing notable outcomes."""

        records: List[Insight] = []
        base = result.base_result
        if base.home_win_probability > 0.6:
            records.append(("strong_home_win", {"probability": base.home_win_probability}))
        elif base.away_win_probability > 0.6:
            records.append(("strong_away_win", {"probability": base.away_win_probability}))
        elif base.draw_probability > 0.4:
            records.append(("high_draw", {"probability": base.draw_probability}))

        threshold = self.settings.anytime_scorer_threshold
        for side, scorer, probabilities in (
            ("home", result.most_likely_home_scorer, result.home_scorer_probabilities),
            ("away", result.most_likely_away_scorer, result.away_scorer_probabilities),
        ):
            if scorer is None:
                continue
            probability = probabilities.get(scorer, 0.0)
            if probability > threshold:
                records.append(
                    ("anytime_scorer", {"side": side, "player": scorer, "probability": probability})
                )

        if result.over2_5_probability > 0.7:
            records.append(("over2_5", {"probability": result.over2_5_probability}))
        elif result.over2_5_probability < 0.3:
            records.append(("under2_5", {"probability": 1.0 - result.over2_5_probability}))

        if result.btts_probability > 0.7:
            records.append(("btts_yes", {"probability": result.btts_probability}))
        elif result.btts_probability < 0.3:
            records.append(("btts_no", {"probability": 1.0 - result.btts_probability}))
        return records


__all__ = ["Insight", "PlayerOverlay"]
