"""Base class for decision handlers that play a duel.

Every player is driven by a ``DecisionHandler``.  The engine calls these
methods whenever the rules need a choice; it checks each answer against the
options it offered and raises
:class:`~duel_sim.sim.errors.IllegalActionError` for anything else.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from duel_sim.ir.effects import Effect
    from duel_sim.sim.actions import GameAction, Target
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.core.entities import Player
    from duel_sim.sim.core.game_state import GameState


class DecisionHandler(ABC):
    """Base class for anything that makes a player's choices.

    Parameters
    ----------
    action_delay:
        Seconds to wait before returning a non-trivial decision.  Zero for
        batch simulation; a small value makes a watched game readable.
    """

    def __init__(self, action_delay: float = 0.0) -> None:
        self.action_delay = action_delay

    def pause(self) -> None:
        if self.action_delay > 0:
            time.sleep(self.action_delay)

    @abstractmethod
    def choose_action(
        self,
        state: GameState,
        player: Player,
        legal: list[GameAction],
    ) -> GameAction:
        """Pick one of *legal* while holding priority.

        Parameters
        ----------
        state:
            The full game state.
        player:
            The player holding priority.
        legal:
            Every action currently allowed, Pass-Priority first.

        Returns
        -------
        GameAction
            One element of *legal*.
        """

    @abstractmethod
    def choose_target(
        self,
        state: GameState,
        player: Player,
        effect: Effect,
        options: list[Target],
    ) -> Target:
        """Pick a target for *effect* from a non-empty list of options."""

    @abstractmethod
    def choose_card(
        self,
        state: GameState,
        player: Player,
        prompt: str,
        options: list[CardInstance],
    ) -> CardInstance | None:
        """Pick a card from *options* (searches, fetches, returns).

        Returning ``None`` declines the choice ("fail to find").
        """

    @abstractmethod
    def choose_attackers(
        self,
        state: GameState,
        player: Player,
        eligible: list[CardInstance],
    ) -> list[CardInstance]:
        """Pick the attacking creatures, a subset of *eligible*."""

    @abstractmethod
    def choose_blockers(
        self,
        state: GameState,
        player: Player,
        attackers: list[CardInstance],
        candidates: list[CardInstance],
    ) -> dict[str, str]:
        """Assign blockers.

        Returns
        -------
        dict[str, str]
            Maps blocker id to the id of the attacker it blocks.  Each
            candidate blocks at most one attacker.
        """

    @abstractmethod
    def keep_hand(
        self,
        state: GameState,
        player: Player,
        hand: list[CardInstance],
        mulligans: int,
    ) -> bool:
        """Keep (``True``) or mulligan (``False``) the seven-card *hand*.

        *mulligans* cards will go to the bottom if this hand is kept.
        """

    @abstractmethod
    def choose_cards_to_bottom(
        self,
        state: GameState,
        player: Player,
        hand: list[CardInstance],
        count: int,
    ) -> list[CardInstance]:
        """Pick exactly *count* cards of a kept hand to put on the bottom."""

    @abstractmethod
    def choose_cards_to_discard(
        self,
        state: GameState,
        player: Player,
        count: int,
    ) -> list[CardInstance]:
        """Pick exactly *count* cards from the player's hand to discard."""
