"""Game runners -- tie the engine, the bots and telemetry together.

Provides two classes:

- **SimulationRunner**: plays one game between two decklists to completion.
- **BatchRunner**: plays many seeded games (optionally in parallel) and
  aggregates the results.
"""

from __future__ import annotations

import logging
import multiprocessing
import threading
import time
from typing import TYPE_CHECKING

from duel_sim.balance.metrics import compute_batch_result
from duel_sim.sim.config import SimulationConfig
from duel_sim.sim.core.entities import Player
from duel_sim.sim.core.game_state import GameState
from duel_sim.sim.core.rng import GameRNG
from duel_sim.sim.engine import GameEngine
from duel_sim.sim.errors import SimulationCancelled, TriggerRecursionError
from duel_sim.sim.play_agents.heuristic_agent import HeuristicBot
from duel_sim.sim.telemetry import BatchResult, GameOutcome, SimulationResult

if TYPE_CHECKING:
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.play_agents.base import DecisionHandler

logger = logging.getLogger(__name__)


# =====================================================================
# SimulationRunner
# =====================================================================

class SimulationRunner:
    """Runs a single game to completion.

    Parameters
    ----------
    config:
        Limits and player names; defaults to ``SimulationConfig()``.
    agent_class:
        Decision handler class instantiated once per player per game.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        agent_class: type[DecisionHandler] = HeuristicBot,
    ) -> None:
        self.config = config or SimulationConfig()
        self.agent_class = agent_class

    def build_state(
        self,
        deck1: list[CardInstance],
        deck2: list[CardInstance],
        rng: GameRNG,
    ) -> GameState:
        """Create both players with private copies of their decklists."""
        config = self.config
        player1 = Player(
            name=config.player1_name,
            life=config.starting_life,
            library=[card.clone() for card in deck1],
            decision_handler=self.agent_class(action_delay=config.action_delay),
        )
        player2 = Player(
            name=config.player2_name,
            life=config.starting_life,
            library=[card.clone() for card in deck2],
            decision_handler=self.agent_class(action_delay=config.action_delay),
        )
        return GameState(player1=player1, player2=player2, rng=rng)

    def run_game(
        self,
        deck1: list[CardInstance],
        deck2: list[CardInstance],
        seed: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> SimulationResult:
        """Play one game and return its result.

        Raises
        ------
        SimulationCancelled
            If *cancel_event* is set before a turn starts.
        """
        master_rng = GameRNG(seed) if seed is not None else GameRNG.unseeded()
        state = self.build_state(deck1, deck2, master_rng.fork("game"))
        engine = GameEngine(state, self.config)
        started = time.perf_counter()

        try:
            engine.start_game()
            while not state.is_game_over:
                if cancel_event is not None and cancel_event.is_set():
                    raise SimulationCancelled(f"Game cancelled on turn {state.turn}")
                engine.run_turn()
                if state.is_game_over:
                    break
                if state.turn >= self.config.max_turns:
                    state.end_in_draw(f"Game ended in a draw after {state.turn} turns.")
                    break
                engine.end_turn()
        except TriggerRecursionError as exc:
            logger.warning("Game with seed %s aborted: %s", master_rng.seed, exc)
            state.record(f"Game aborted: {exc}")
            return self._result(state, master_rng.seed, started, error=str(exc))

        return self._result(state, master_rng.seed, started)

    @staticmethod
    def _result(
        state: GameState,
        seed: int,
        started: float,
        error: str | None = None,
    ) -> SimulationResult:
        winner = state.winner_name
        loser: str | None = None
        if error is not None:
            outcome = GameOutcome.ABORTED
            winner = None
        elif winner is None:
            outcome = GameOutcome.DRAW
        else:
            outcome = GameOutcome.WIN
            loser = next(p.name for p in state.players if p.name != winner)
        return SimulationResult(
            winner_name=winner,
            loser_name=loser,
            outcome=outcome,
            total_turns=state.turn,
            player1_final_life=state.player1.life,
            player2_final_life=state.player2.life,
            game_log=list(state.log),
            duration_seconds=time.perf_counter() - started,
            seed=seed,
            error=error,
        )


# =====================================================================
# Multiprocessing worker
# =====================================================================

def _worker_run_single(args: tuple) -> SimulationResult:
    """Top-level worker function for multiprocessing (must be picklable)."""
    config, agent_class, deck1, deck2, seed = args
    runner = SimulationRunner(config, agent_class)
    return runner.run_game(deck1, deck2, seed=seed)


# =====================================================================
# BatchRunner
# =====================================================================

class BatchRunner:
    """Runs many games between the same two decklists, optionally in parallel."""

    def __init__(
        self,
        config: SimulationConfig | None = None,
        agent_class: type[DecisionHandler] = HeuristicBot,
    ) -> None:
        self.config = config or SimulationConfig()
        self.agent_class = agent_class

    def run_batch(
        self,
        deck1: list[CardInstance],
        deck2: list[CardInstance],
        n_games: int,
        base_seed: int = 42,
        parallel: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        """Run *n_games* games with seeds ``base_seed + i``.

        Results come back in seed order whichever path runs them.  If
        *cancel_event* gets set, the games finished so far are aggregated
        and the result is flagged ``cancelled``.

        Sequentially, the event is checked before every turn of every game.
        With ``parallel=True`` the worker processes never see it: the event
        is only noticed after the next result arrives, and leaving the pool
        then terminates the games still running.
        """
        if n_games <= 0:
            raise ValueError(f"n_games must be positive, got {n_games}")

        seeds = [base_seed + i for i in range(n_games)]
        logger.info("Running %d games (parallel=%s, base_seed=%d)", n_games, parallel, base_seed)

        if parallel and n_games > 1:
            results, cancelled = self._run_parallel(deck1, deck2, seeds, cancel_event)
        else:
            results, cancelled = self._run_sequential(deck1, deck2, seeds, cancel_event)

        if cancelled:
            logger.info("Batch cancelled after %d of %d games", len(results), n_games)
        return compute_batch_result(
            results,
            self.config.player1_name,
            self.config.player2_name,
            cancelled=cancelled,
        )

    def _run_sequential(
        self,
        deck1: list[CardInstance],
        deck2: list[CardInstance],
        seeds: list[int],
        cancel_event: threading.Event | None,
    ) -> tuple[list[SimulationResult], bool]:
        runner = SimulationRunner(self.config, self.agent_class)
        results: list[SimulationResult] = []
        for seed in seeds:
            if cancel_event is not None and cancel_event.is_set():
                return results, True
            try:
                results.append(runner.run_game(deck1, deck2, seed=seed, cancel_event=cancel_event))
            except SimulationCancelled:
                return results, True
            logger.debug("Game %d/%d done", len(results), len(seeds))
        return results, False

    def _run_parallel(
        self,
        deck1: list[CardInstance],
        deck2: list[CardInstance],
        seeds: list[int],
        cancel_event: threading.Event | None,
    ) -> tuple[list[SimulationResult], bool]:
        """Run games in a process pool.

        Workers receive pickled copies of the decklists and build their own
        runner.  They run without *cancel_event*, which is checked here
        between results; ``Pool.__exit__`` terminates whatever is in flight.
        """
        work_items = [
            (self.config, self.agent_class, deck1, deck2, seed)
            for seed in seeds
        ]
        n_workers = min(len(seeds), multiprocessing.cpu_count() or 1)

        results: list[SimulationResult] = []
        with multiprocessing.Pool(processes=n_workers) as pool:
            for result in pool.imap(_worker_run_single, work_items):
                results.append(result)
                if cancel_event is not None and cancel_event.is_set():
                    return results, True
        return results, False
