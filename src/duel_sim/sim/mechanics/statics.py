"""Static abilities: continuous effects of permanents on the battlefield.

Power/toughness bonuses and granted keywords are cached on each permanent
and recomputed from scratch whenever a permanent enters or leaves the
battlefield.  Cost modifiers are looked up when a cost is checked or paid.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from duel_sim.ir.cards import StaticAbility, StaticAbilityType, StaticScope

if TYPE_CHECKING:
    from duel_sim.ir.mana import ManaCost
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.core.entities import Player
    from duel_sim.sim.core.game_state import GameState


def _active_statics(
    state: GameState,
    ability_type: StaticAbilityType,
) -> Iterator[tuple[CardInstance, Player, StaticAbility]]:
    for controller in state.apnap_order():
        for card in controller.battlefield:
            for ability in card.static_abilities:
                if ability.ability_type == ability_type:
                    yield card, controller, ability


def affects_player(ability: StaticAbility, controller: Player, player: Player) -> bool:
    if ability.scope == StaticScope.EACH_PLAYER:
        return True
    if ability.scope == StaticScope.CONTROLLER:
        return player.id == controller.id
    return player.id != controller.id


def refresh_static_effects(state: GameState) -> None:
    """Recompute every permanent's static bonuses and granted keywords."""
    for player in state.players:
        for card in player.battlefield:
            card.static_power = 0
            card.static_toughness = 0
            card.granted_keywords = []

    for ability_type in (StaticAbilityType.ANTHEM, StaticAbilityType.GRANT_KEYWORD):
        for source, controller, ability in _active_statics(state, ability_type):
            for player in state.players:
                if not affects_player(ability, controller, player):
                    continue
                for card in player.creatures:
                    if card is source and not ability.include_self:
                        continue
                    if not ability.matches(card):
                        continue
                    if ability_type == StaticAbilityType.ANTHEM:
                        card.static_power += ability.power
                        card.static_toughness += ability.toughness
                    elif ability.keyword is not None and ability.keyword not in card.granted_keywords:
                        card.granted_keywords.append(ability.keyword)


def cost_adjustment(state: GameState, player: Player, card: CardInstance) -> int:
    """Net generic-mana change static abilities make to *player* casting *card*."""
    total = 0
    for _, controller, ability in _active_statics(state, StaticAbilityType.COST_MODIFIER):
        if affects_player(ability, controller, player) and ability.matches(card):
            total += ability.cost_change
    return total


def spell_cost(state: GameState, player: Player, card: CardInstance, cost: ManaCost) -> ManaCost:
    """*cost* for casting *card* once cost modifiers are applied."""
    return cost.with_generic_change(cost_adjustment(state, player, card))
