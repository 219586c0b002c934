"""State mechanics for the duel simulator.

Re-exports the primary functions from each mechanics module for convenience.

Usage::

    from duel_sim.sim.mechanics import (
        draw_card, move_card, shuffle_library,
        deal_damage_to_player, lose_life, gain_life,
        tap_for_mana, pay_mana, plan_tap_sequence,
        refresh_static_effects, spell_cost,
    )
"""

# -- zones -------------------------------------------------------------------
from .zones import (
    draw_card,
    matches_subtype_or_name,
    move_card,
    put_on_bottom,
    remove_card,
    search_library,
    shuffle_library,
)

# -- damage ------------------------------------------------------------------
from .damage import deal_damage_to_creature, deal_damage_to_player, gain_life, lose_life

# -- statics ---------------------------------------------------------------
from .statics import cost_adjustment, refresh_static_effects, spell_cost

# -- mana --------------------------------------------------------------------
from .mana import (
    can_tap_for_mana,
    empty_mana_pool,
    pay_mana,
    plan_tap_sequence,
    producible_colors,
    sync_tap_markers,
    tap_for_mana,
    untap_mana_source,
)

__all__ = [
    # zones
    "draw_card",
    "move_card",
    "remove_card",
    "put_on_bottom",
    "search_library",
    "shuffle_library",
    "matches_subtype_or_name",
    # damage
    "deal_damage_to_player",
    "deal_damage_to_creature",
    "lose_life",
    "gain_life",
    # mana
    "producible_colors",
    "can_tap_for_mana",
    "tap_for_mana",
    "untap_mana_source",
    "pay_mana",
    "sync_tap_markers",
    "empty_mana_pool",
    "plan_tap_sequence",
    # statics
    "refresh_static_effects",
    "cost_adjustment",
    "spell_cost",
]
