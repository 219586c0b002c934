"""Spell-role classification for the heuristic bot."""

from __future__ import annotations

from typing import TYPE_CHECKING

from duel_sim.ir.cards import SpellRole
from duel_sim.ir.effects import EffectType

if TYPE_CHECKING:
    from duel_sim.sim.core.card_instance import CardInstance

_REMOVAL_EFFECTS = frozenset({
    EffectType.DEAL_DAMAGE,
    EffectType.DAMAGE_TARGET_CREATURE,
    EffectType.DESTROY_TARGET_CREATURE,
    EffectType.BOUNCE_TARGET_CREATURE,
})


def classify_spell_role(card: CardInstance) -> SpellRole:
    """Return the card's explicit role, or infer one.

    Permanents and sorcery-speed spells are proactive.  Instant-speed
    spells are counterspells, removal or utility depending on their effect.
    """
    if card.spell_role is not None:
        return card.spell_role
    if card.is_permanent or not card.has_instant_timing:
        return SpellRole.PROACTIVE
    effect = card.spell_effect
    if effect is None:
        return SpellRole.INSTANT_UTILITY
    if effect.effect_type == EffectType.COUNTER_TARGET_SPELL:
        return SpellRole.COUNTERSPELL
    if effect.effect_type in _REMOVAL_EFFECTS:
        return SpellRole.INSTANT_REMOVAL
    return SpellRole.INSTANT_UTILITY
