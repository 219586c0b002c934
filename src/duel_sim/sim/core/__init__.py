"""Core simulation primitives for the duel simulator."""

from duel_sim.sim.core.action_stack import ActionStack, StackItem, StackItemKind
from duel_sim.sim.core.card_instance import CardInstance
from duel_sim.sim.core.entities import ManaPool, Player
from duel_sim.sim.core.game_state import (
    TURN_SEQUENCE,
    CombatState,
    GameState,
    Phase,
)
from duel_sim.sim.core.rng import GameRNG

__all__ = [
    # rng
    "GameRNG",
    # cards
    "CardInstance",
    # entities
    "ManaPool",
    "Player",
    # game_state
    "Phase",
    "TURN_SEQUENCE",
    "CombatState",
    "GameState",
    # action_stack
    "StackItemKind",
    "StackItem",
    "ActionStack",
]
