"""Game state for a headless two-player duel.

Houses the full mutable state of one game (``GameState``): both players,
the turn/phase position, the stack, the current combat and the narrated
game log, plus the terminal-condition check.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from duel_sim.sim.core.action_stack import ActionStack
from duel_sim.sim.core.card_instance import CardInstance
from duel_sim.sim.core.entities import Player

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Phase
# ---------------------------------------------------------------------------

class Phase(str, Enum):
    """Phases and steps of a turn, in order."""

    UNTAP = "Untap"
    UPKEEP = "Upkeep"
    DRAW = "Draw"
    MAIN_1 = "Main 1"
    BEGIN_COMBAT = "Begin Combat"
    DECLARE_ATTACKERS = "Declare Attackers"
    DECLARE_BLOCKERS = "Declare Blockers"
    COMBAT_DAMAGE = "Combat Damage"
    END_COMBAT = "End Combat"
    MAIN_2 = "Main 2"
    END_STEP = "End Step"
    CLEANUP = "Cleanup"

    @property
    def grants_priority(self) -> bool:
        return self not in (Phase.UNTAP, Phase.CLEANUP)

    @property
    def is_main(self) -> bool:
        return self in (Phase.MAIN_1, Phase.MAIN_2)

    @property
    def is_combat(self) -> bool:
        return self in _COMBAT_STEPS


_COMBAT_STEPS = frozenset({
    Phase.BEGIN_COMBAT,
    Phase.DECLARE_ATTACKERS,
    Phase.DECLARE_BLOCKERS,
    Phase.COMBAT_DAMAGE,
    Phase.END_COMBAT,
})

TURN_SEQUENCE: tuple[Phase, ...] = tuple(Phase)


# ---------------------------------------------------------------------------
# CombatState
# ---------------------------------------------------------------------------

class CombatState(BaseModel):
    """Attackers and blocks for the combat in progress.

    ``blocks`` maps an attacker id to the ids of the creatures blocking it.
    """

    attacker_ids: list[str] = Field(default_factory=list)
    blocks: dict[str, list[str]] = Field(default_factory=dict)
    blockers_declared: bool = False

    def is_attacking(self, card_id: str) -> bool:
        return card_id in self.attacker_ids

    def is_blocked(self, attacker_id: str) -> bool:
        """An attacker stays blocked even if every blocker has left combat."""
        return attacker_id in self.blocks

    def unblocked_attacker_ids(self) -> list[str]:
        return [a for a in self.attacker_ids if not self.is_blocked(a)]

    def remove_creature(self, card_id: str) -> None:
        """Drop a creature that left combat (died, bounced, ninjutsu)."""
        if card_id in self.attacker_ids:
            self.attacker_ids.remove(card_id)
        self.blocks.pop(card_id, None)
        for blockers in self.blocks.values():
            if card_id in blockers:
                blockers.remove(card_id)

    def clear(self) -> None:
        self.attacker_ids.clear()
        self.blocks.clear()
        self.blockers_declared = False


# ---------------------------------------------------------------------------
# GameState
# ---------------------------------------------------------------------------

class GameState(BaseModel):
    """Everything that changes during one game.

    ``winner_name`` is ``None`` both while the game is running and when it
    ended in a draw; ``is_game_over`` tells the two apart.
    """

    model_config = {"arbitrary_types_allowed": True}

    player1: Player
    player2: Player
    turn: int = 1
    active_player_id: str = ""
    priority_player_id: str | None = None
    phase: Phase = Phase.UNTAP
    is_first_turn: bool = True

    stack: ActionStack = Field(default_factory=ActionStack, exclude=True)
    combat: CombatState = Field(default_factory=CombatState)
    log: list[str] = Field(default_factory=list)

    is_game_over: bool = False
    winner_name: str | None = None
    loss_reason: str | None = None

    rng: Any = Field(default=None, exclude=True)

    def model_post_init(self, __context: Any) -> None:
        if not self.active_player_id:
            self.active_player_id = self.player1.id

    # -- players -------------------------------------------------------------

    @property
    def players(self) -> tuple[Player, Player]:
        return self.player1, self.player2

    @property
    def active_player(self) -> Player:
        return self.get_player(self.active_player_id)

    @property
    def non_active_player(self) -> Player:
        return self.opponent_of(self.active_player)

    def get_player(self, player_id: str) -> Player:
        for player in self.players:
            if player.id == player_id:
                return player
        raise ValueError(f"No player with id {player_id!r}")

    def opponent_of(self, player: Player) -> Player:
        return self.player2 if player.id == self.player1.id else self.player1

    def apnap_order(self) -> list[Player]:
        """Active player first, then the non-active player."""
        return [self.active_player, self.non_active_player]

    # -- cards ---------------------------------------------------------------

    def find_card(self, card_id: str) -> tuple[CardInstance, Player, str] | None:
        """Locate a card in any zone: ``(card, owner, zone_name)``.

        Cards on the stack are reported with the zone name ``"stack"``.
        """
        for player in self.players:
            found = player.locate(card_id)
            if found is not None:
                return found[0], player, found[1]
        for item in self.stack.items():
            if item.is_spell and item.card.id == card_id:
                return item.card, self.get_player(item.controller_id), "stack"
        return None

    def find_permanent(self, card_id: str) -> tuple[CardInstance, Player] | None:
        for player in self.players:
            card = player.find_in_zone("battlefield", card_id)
            if card is not None:
                return card, player
        return None

    # -- log -----------------------------------------------------------------

    def record(self, message: str) -> None:
        """Append a narrated event to the game log."""
        self.log.append(message)
        logger.debug(message)

    # -- terminal conditions -------------------------------------------------

    def check_game_over(self) -> bool:
        """Evaluate the loss conditions and end the game if one holds.

        A player at 0 or less life, or one who had to draw from an empty
        library, loses.  Both at once is a draw.
        """
        if self.is_game_over:
            return True

        losers = [p for p in self.players if p.has_lost]
        if not losers:
            return False

        if len(losers) == 2:
            self.loss_reason = "both players lost simultaneously"
            self.record("Both players lose simultaneously. The game is a draw.")
            self.winner_name = None
        else:
            loser = losers[0]
            winner = self.opponent_of(loser)
            if loser.life <= 0:
                self.loss_reason = f"{loser.name} was reduced to {loser.life} life"
            else:
                self.loss_reason = f"{loser.name} drew from an empty library"
            self.record(f"{loser.name} loses: {self.loss_reason}. {winner.name} wins!")
            self.winner_name = winner.name
        self.is_game_over = True
        return True

    def end_in_draw(self, message: str) -> None:
        """Force a draw (turn ceiling)."""
        if self.is_game_over:
            return
        self.record(message)
        self.loss_reason = None
        self.winner_name = None
        self.is_game_over = True
