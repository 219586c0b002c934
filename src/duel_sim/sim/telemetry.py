"""Telemetry data models for per-game and per-batch results.

- **SimulationResult**: outcome, turn count, final lives and the game log of
  one game.
- **BatchResult**: aggregate win/draw counts and averages over many games.

Both are plain ``dataclass`` instances (not Pydantic models) so collecting
them stays cheap during batch runs and they pickle across worker
processes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class GameOutcome(str, Enum):
    WIN = "win"
    DRAW = "draw"
    ABORTED = "aborted"


@dataclass
class SimulationResult:
    """Stats from a single game.

    Attributes
    ----------
    winner_name / loser_name:
        ``None`` for draws and aborted games.
    outcome:
        How the game ended.
    total_turns:
        The turn counter when the game ended.
    player1_final_life / player2_final_life:
        Life totals at the end of the game.
    game_log:
        The narrated log, in order.
    duration_seconds:
        Wall-clock time spent running the game.
    seed:
        Seed of the game's RNG.
    error:
        Message of the error that aborted the game, if any.
    """

    winner_name: str | None
    loser_name: str | None
    outcome: GameOutcome
    total_turns: int
    player1_final_life: int
    player2_final_life: int
    game_log: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    seed: int | None = None
    error: str | None = None

    @property
    def is_draw(self) -> bool:
        return self.outcome == GameOutcome.DRAW

    @property
    def life_differential(self) -> int:
        return abs(self.player1_final_life - self.player2_final_life)


@dataclass
class BatchResult:
    """Aggregate over a batch of games.

    Aborted games are not counted in the totals or averages; they are
    listed in ``aborted_games``.  ``cancelled`` is set when the batch
    stopped early.
    """

    total_games: int
    player1_wins: int
    player2_wins: int
    draws: int
    player1_win_rate: float
    average_game_length: float
    average_life_differential: float
    games: list[SimulationResult] = field(default_factory=list)
    aborted_games: list[SimulationResult] = field(default_factory=list)
    cancelled: bool = False
