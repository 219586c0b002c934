"""Damage and life-total changes.

Every change to a life total runs the terminal-condition check.  Damage to
creatures is only marked here; lethal damage is handled by the engine's
state-based actions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.core.entities import Player
    from duel_sim.sim.core.game_state import GameState


def lose_life(state: GameState, player: Player, amount: int) -> None:
    if amount <= 0 or state.is_game_over:
        return
    player.adjust_life(-amount)
    state.record(f"{player.name} loses {amount} life ({player.life}).")
    state.check_game_over()


def gain_life(state: GameState, player: Player, amount: int) -> None:
    if amount <= 0 or state.is_game_over:
        return
    player.adjust_life(amount)
    state.record(f"{player.name} gains {amount} life ({player.life}).")
    state.check_game_over()


def deal_damage_to_player(
    state: GameState,
    source: CardInstance,
    player: Player,
    amount: int,
) -> int:
    """Deal *amount* damage from *source* to *player*.  Returns damage dealt."""
    if amount <= 0 or state.is_game_over:
        return 0
    player.adjust_life(-amount)
    state.record(f"{source.name} deals {amount} damage to {player.name} ({player.life}).")
    state.check_game_over()
    return amount


def deal_damage_to_creature(
    state: GameState,
    source: CardInstance,
    creature: CardInstance,
    amount: int,
) -> int:
    """Mark *amount* damage on *creature*.  Returns damage dealt."""
    if amount <= 0 or state.is_game_over:
        return 0
    creature.damage_marked += amount
    state.record(f"{source.name} deals {amount} damage to {creature.name}.")
    return amount
