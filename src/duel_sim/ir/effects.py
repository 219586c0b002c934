"""Effects -- the closed set of behaviors a spell, ability or trigger can run.

Each ``EffectType`` maps to exactly one handler in
:class:`duel_sim.sim.interpreter.EffectInterpreter`.  An ``Effect`` is the
immutable, parameterised description of one such behavior.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from .mana import ManaColor


class EffectType(str, Enum):
    """Every behavior the interpreter knows how to execute."""

    DEAL_DAMAGE = "deal_damage"
    DAMAGE_TARGET_CREATURE = "damage_target_creature"
    DAMAGE_OPPONENT = "damage_opponent"
    DAMAGE_EACH_PLAYER = "damage_each_player"
    GAIN_LIFE = "gain_life"
    LOSE_LIFE = "lose_life"
    DRAIN = "drain"
    DRAW_CARDS = "draw_cards"
    OPPONENT_DISCARDS = "opponent_discards"
    DESTROY_TARGET_CREATURE = "destroy_target_creature"
    BOUNCE_TARGET_CREATURE = "bounce_target_creature"
    COUNTER_TARGET_SPELL = "counter_target_spell"
    CREATE_TOKENS = "create_tokens"
    SEARCH_LIBRARY_TO_HAND = "search_library_to_hand"
    SEARCH_LIBRARY_TO_BATTLEFIELD = "search_library_to_battlefield"
    RETURN_FROM_GRAVEYARD_TO_HAND = "return_from_graveyard_to_hand"
    RETURN_SOURCE_TO_BATTLEFIELD = "return_source_to_battlefield"
    SACRIFICE_SOURCE = "sacrifice_source"
    PUMP_SOURCE = "pump_source"
    PUMP_OTHER_CREATURES = "pump_other_creatures"
    ADD_MANA = "add_mana"
    UNTAP_SOURCE = "untap_source"


# Effects whose chosen target is something the controller wants to hurt.
HARMFUL_EFFECTS = frozenset({
    EffectType.DEAL_DAMAGE,
    EffectType.DAMAGE_TARGET_CREATURE,
    EffectType.DESTROY_TARGET_CREATURE,
    EffectType.BOUNCE_TARGET_CREATURE,
    EffectType.COUNTER_TARGET_SPELL,
})


class TokenSpec(BaseModel):
    """Description of a token created by ``CREATE_TOKENS``."""

    model_config = {"frozen": True}

    name: str
    type_line: str = "Token Creature"
    power: int = 1
    toughness: int = 1


class Effect(BaseModel):
    """A single parameterised effect.

    Only the fields relevant to ``effect_type`` are read by its handler;
    the rest keep their defaults.
    """

    model_config = {"frozen": True}

    effect_type: EffectType
    """Which behavior this effect runs."""

    amount: int = 0
    """Damage, life, cards drawn, power bonus, mana produced, ..."""

    toughness_amount: int = 0
    """Toughness bonus for the pump effects."""

    count: int = 1
    """Number of tokens created or cards searched for."""

    subtype: str | None = None
    """Subtype (or exact card name) matched by library searches."""

    token: TokenSpec | None = None
    """Token blueprint for ``CREATE_TOKENS``."""

    mana_color: ManaColor | None = None
    """Color produced by ``ADD_MANA``."""

    description: str = ""

    @property
    def is_harmful(self) -> bool:
        return self.effect_type in HARMFUL_EFFECTS


def effect(effect_type: EffectType, amount: int = 0, **kwargs) -> Effect:
    """Shorthand constructor used by card definitions and tests."""
    return Effect(effect_type=effect_type, amount=amount, **kwargs)
