"""Static card-definition schema for the duel simulator.

Everything in this package is immutable data: mana costs, type flags,
effects and triggers.  Runtime state lives in :mod:`duel_sim.sim`.
"""

from .cards import (
    PERMANENT_TYPES,
    ActivatedAbility,
    AdventureSpell,
    CardType,
    FetchAbility,
    Keyword,
    LoyaltyAbility,
    ManaAbility,
    SpellRole,
    StaticAbility,
    StaticAbilityType,
    StaticScope,
    parse_type_line,
)
from .effects import HARMFUL_EFFECTS, Effect, EffectType, TokenSpec, effect
from .mana import ManaColor, ManaCost
from .triggers import GRAVEYARD_CONDITIONS, GameEvent, Trigger, TriggerCondition

__all__ = [
    # mana
    "ManaColor",
    "ManaCost",
    # cards
    "CardType",
    "PERMANENT_TYPES",
    "Keyword",
    "SpellRole",
    "ManaAbility",
    "FetchAbility",
    "ActivatedAbility",
    "LoyaltyAbility",
    "AdventureSpell",
    "StaticAbilityType",
    "StaticScope",
    "StaticAbility",
    "parse_type_line",
    # effects
    "EffectType",
    "Effect",
    "TokenSpec",
    "HARMFUL_EFFECTS",
    "effect",
    # triggers
    "GameEvent",
    "TriggerCondition",
    "Trigger",
    "GRAVEYARD_CONDITIONS",
]
