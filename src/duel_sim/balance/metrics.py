"""Pure metric computation for batches of simulated games.

No side effects, no I/O.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from duel_sim.sim.telemetry import BatchResult, GameOutcome

if TYPE_CHECKING:
    from duel_sim.sim.telemetry import SimulationResult


def compute_batch_result(
    results: list[SimulationResult],
    player1_name: str,
    player2_name: str,
    cancelled: bool = False,
) -> BatchResult:
    """Aggregate per-game results into a ``BatchResult``.

    Aborted games are set aside and do not count toward any total.  An
    empty batch yields zeros everywhere.
    """
    finished = [r for r in results if r.outcome != GameOutcome.ABORTED]
    aborted = [r for r in results if r.outcome == GameOutcome.ABORTED]
    total = len(finished)
    if total == 0:
        return BatchResult(
            total_games=0, player1_wins=0, player2_wins=0, draws=0,
            player1_win_rate=0.0, average_game_length=0.0,
            average_life_differential=0.0,
            games=[], aborted_games=aborted, cancelled=cancelled,
        )

    player1_wins = sum(1 for r in finished if r.winner_name == player1_name)
    player2_wins = sum(1 for r in finished if r.winner_name == player2_name)
    draws = sum(1 for r in finished if r.is_draw)

    return BatchResult(
        total_games=total,
        player1_wins=player1_wins,
        player2_wins=player2_wins,
        draws=draws,
        player1_win_rate=player1_wins / total,
        average_game_length=sum(r.total_turns for r in finished) / total,
        average_life_differential=sum(r.life_differential for r in finished) / total,
        games=finished,
        aborted_games=aborted,
        cancelled=cancelled,
    )
