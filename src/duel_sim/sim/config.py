"""Tunable limits for a simulated game."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class SimulationConfig(BaseModel):
    """Settings shared by the engine, the runners and the default bot.

    Invalid values are rejected when the model is constructed, so a runner
    never starts a game with a broken configuration.
    """

    model_config = {"frozen": True}

    max_turns: int = Field(default=100, ge=1)
    """Turn ceiling.  Reaching it ends the game as a draw."""

    starting_life: int = Field(default=20, ge=1)
    opening_hand_size: int = Field(default=7, ge=0)
    max_hand_size: int = Field(default=7, ge=0)
    max_mulligans: int = Field(default=7, ge=0)

    max_trigger_depth: int = Field(default=50, ge=1, le=500)
    """Deepest allowed nesting of trigger resolution passes.  A chain that
    runs out of interpreter stack below this depth aborts the same way."""

    action_delay: float = Field(default=0.0, ge=0.0)
    """Seconds the bot sleeps before each decision.  Zero for batch runs."""

    player1_name: str = "Bot A"
    player2_name: str = "Bot B"

    @model_validator(mode="after")
    def _distinct_names(self) -> SimulationConfig:
        if self.player1_name == self.player2_name:
            raise ValueError("player1_name and player2_name must differ")
        return self
