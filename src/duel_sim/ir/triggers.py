"""Static trigger declarations attached to card definitions.

A ``Trigger`` is the triple (event, condition, effect).  The simulator's
:class:`duel_sim.sim.triggers.TriggerDispatcher` turns qualifying triggers
into runtime triggered abilities.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from .effects import Effect


class GameEvent(str, Enum):
    """Game events that can cause triggers to fire."""

    ENTERS_BATTLEFIELD = "enters_battlefield"
    LEAVES_BATTLEFIELD = "leaves_battlefield"
    DIES = "dies"
    SPELL_CAST = "spell_cast"
    COMBAT_DAMAGE = "combat_damage"
    DRAW_CARD = "draw_card"
    UPKEEP = "upkeep"
    ATTACKS = "attacks"
    LAND_PLAYED = "land_played"
    CYCLED = "cycled"


class TriggerCondition(str, Enum):
    """Refines which occurrences of a ``GameEvent`` qualify."""

    SELF = "self"
    """The event's source card is the trigger's own card."""

    ANOTHER_CREATURE = "another_creature"
    """The source is a creature other than the trigger's card."""

    ANY_CREATURE = "any_creature"
    """The source is any creature, including the trigger's card."""

    CONTROLLER = "controller"
    """The acting player is the trigger's controller (own upkeep, own draws...)."""

    OPPONENT = "opponent"
    """The acting player is the controller's opponent."""

    ANY_PLAYER = "any_player"
    """Every occurrence qualifies."""

    CONTROLLER_CASTS_NONCREATURE = "controller_casts_noncreature"
    """The controller cast a spell without the Creature type."""

    OPPONENT_DRAWS_EXCEPT_FIRST = "opponent_draws_except_first"
    """The opponent drew a card other than the first one of their turn."""

    SELF_IN_GRAVEYARD = "self_in_graveyard"
    """The trigger's card is in its owner's graveyard (graveyard-live)."""


# Conditions whose triggers are live while the card sits in a graveyard.
GRAVEYARD_CONDITIONS = frozenset({TriggerCondition.SELF_IN_GRAVEYARD})


class Trigger(BaseModel):
    """An immutable trigger declaration."""

    model_config = {"frozen": True}

    event: GameEvent
    condition: TriggerCondition = TriggerCondition.SELF
    effect: Effect

    @property
    def live_in_graveyard(self) -> bool:
        return self.condition in GRAVEYARD_CONDITIONS
