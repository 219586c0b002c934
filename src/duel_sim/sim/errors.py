"""Exceptions raised by the simulator.

Only two conditions are genuine failures inside a game: a decision handler
returning a choice it was not offered, and a trigger chain that nests past
the configured depth.  Cancellation is cooperative and is signalled with
its own exception so callers can tell it apart from both.
"""

from __future__ import annotations


class SimulationError(RuntimeError):
    """Base class for errors raised while a game is running."""


class IllegalActionError(SimulationError):
    """A decision handler returned a choice outside the legal set."""

    def __init__(self, player_name: str, choice: object, message: str = "") -> None:
        self.player_name = player_name
        self.choice = choice
        detail = f": {message}" if message else ""
        super().__init__(f"{player_name} chose an illegal option {choice!r}{detail}")


class TriggerRecursionError(SimulationError):
    """Nested trigger resolution exceeded the configured depth cap, or ran
    out of interpreter stack before reaching it."""

    def __init__(self, depth: int, card_names: list[str]) -> None:
        self.depth = depth
        self.card_names = list(card_names)
        chain = " -> ".join(self.card_names[-10:]) or "<none>"
        super().__init__(
            f"Trigger chain exceeded depth {depth} (most recent sources: {chain})"
        )


class SimulationCancelled(SimulationError):
    """The cancellation signal was set while a game was in progress."""
