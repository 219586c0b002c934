"""Player actions and the legality table that decides which are on offer.

Every ``ActionType`` has exactly one legality generator in ``_LEGALITY``.
A generator lists the concrete ``GameAction`` values a player may choose
right now; the engine offers their concatenation (Pass-Priority first) at
each priority window and rejects anything outside it.

Timing decisions worth knowing:

- Play-Land, Cast-Spell (without Instant/Flash), Flashback of a sorcery,
  Activate-Loyalty-Ability and sorcery adventures need sorcery timing:
  the player's own main phase with an empty stack.
- Activate-Fetch, Activate-Ability and Cycle are instant speed, so a fetch
  land can be cracked on the opponent's turn.
- Ninjutsu is only offered to the attacking player during the
  Declare-Blockers step, once blocks are known.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Callable

from pydantic import BaseModel

from duel_sim.ir.cards import CardType
from duel_sim.ir.mana import ManaColor
from duel_sim.sim.core.game_state import Phase
from duel_sim.sim.mechanics.mana import can_tap_for_mana, producible_colors
from duel_sim.sim.mechanics.statics import spell_cost

if TYPE_CHECKING:
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.core.entities import Player
    from duel_sim.sim.core.game_state import GameState


# ---------------------------------------------------------------------------
# Action values
# ---------------------------------------------------------------------------

class ActionType(str, Enum):
    PASS_PRIORITY = "pass_priority"
    PLAY_LAND = "play_land"
    TAP_CARD = "tap_card"
    UNTAP_CARD = "untap_card"
    CAST_SPELL = "cast_spell"
    ACTIVATE_FETCH = "activate_fetch"
    ACTIVATE_ABILITY = "activate_ability"
    CYCLE = "cycle"
    FLASHBACK = "flashback"
    ACTIVATE_LOYALTY_ABILITY = "activate_loyalty_ability"
    NINJUTSU = "ninjutsu"
    CAST_ADVENTURE = "cast_adventure"


class GameAction(BaseModel):
    """One choice a player can make while holding priority.

    ``card_id`` names the card acting (land, spell, ability source...).
    ``ability_index`` selects an activated or loyalty ability, ``mana_color``
    the color for a tap, and ``target_card_id`` the unblocked attacker
    returned by ninjutsu.
    """

    model_config = {"frozen": True}

    action_type: ActionType
    player_id: str
    card_id: str | None = None
    ability_index: int | None = None
    mana_color: ManaColor | None = None
    target_card_id: str | None = None

    @classmethod
    def pass_priority(cls, player_id: str) -> GameAction:
        return cls(action_type=ActionType.PASS_PRIORITY, player_id=player_id)

    @property
    def is_pass(self) -> bool:
        return self.action_type == ActionType.PASS_PRIORITY


class Target(BaseModel):
    """A resolution-time target: either a card or a player."""

    model_config = {"frozen": True}

    card_id: str | None = None
    player_id: str | None = None

    @property
    def is_player(self) -> bool:
        return self.player_id is not None


# ---------------------------------------------------------------------------
# Timing helpers
# ---------------------------------------------------------------------------

def has_sorcery_timing(state: GameState, player: Player) -> bool:
    return (
        state.active_player_id == player.id
        and state.phase.is_main
        and state.stack.is_empty
    )


def can_cast_now(state: GameState, player: Player, card: CardInstance) -> bool:
    return card.has_instant_timing or has_sorcery_timing(state, player)


def _action(action_type: ActionType, player: Player, **kwargs) -> GameAction:
    return GameAction(action_type=action_type, player_id=player.id, **kwargs)


# ---------------------------------------------------------------------------
# Legality generators
# ---------------------------------------------------------------------------

def _legal_pass(state: GameState, player: Player) -> list[GameAction]:
    return [GameAction.pass_priority(player.id)]


def _legal_play_land(state: GameState, player: Player) -> list[GameAction]:
    if not has_sorcery_timing(state, player) or not player.can_play_land:
        return []
    return [
        _action(ActionType.PLAY_LAND, player, card_id=c.id)
        for c in player.hand if c.is_land
    ]


def _legal_tap(state: GameState, player: Player) -> list[GameAction]:
    actions: list[GameAction] = []
    for card in player.battlefield:
        if not can_tap_for_mana(card, state.turn):
            continue
        for color in producible_colors(card):
            actions.append(
                _action(ActionType.TAP_CARD, player, card_id=card.id, mana_color=color)
            )
    return actions


def _legal_untap(state: GameState, player: Player) -> list[GameAction]:
    return [
        _action(ActionType.UNTAP_CARD, player, card_id=c.id)
        for c in player.battlefield
        if c.tapped_for is not None and player.mana_pool.get(c.tapped_for) > 0
    ]


def _legal_cast(state: GameState, player: Player) -> list[GameAction]:
    pool = player.mana_pool
    castable = [c for c in player.hand if not c.is_land]
    castable += [c for c in player.exile if c.on_adventure]
    return [
        _action(ActionType.CAST_SPELL, player, card_id=c.id)
        for c in castable
        if c.mana_cost is not None
        and can_cast_now(state, player, c)
        and pool.can_pay(spell_cost(state, player, c, c.mana_cost))
    ]


def _legal_fetch(state: GameState, player: Player) -> list[GameAction]:
    return [
        _action(ActionType.ACTIVATE_FETCH, player, card_id=c.id)
        for c in player.battlefield
        if c.fetch_ability is not None and not c.is_tapped
    ]


def _legal_ability(state: GameState, player: Player) -> list[GameAction]:
    actions: list[GameAction] = []
    for card in player.battlefield:
        for index, ability in enumerate(card.activated_abilities):
            if ability.tap_cost and (card.is_tapped or card.is_summoning_sick(state.turn)):
                continue
            if ability.mana_cost is not None and not player.mana_pool.can_pay(ability.mana_cost):
                continue
            actions.append(
                _action(ActionType.ACTIVATE_ABILITY, player, card_id=card.id, ability_index=index)
            )
    return actions


def _legal_cycle(state: GameState, player: Player) -> list[GameAction]:
    return [
        _action(ActionType.CYCLE, player, card_id=c.id)
        for c in player.hand
        if c.cycling_cost is not None and player.mana_pool.can_pay(c.cycling_cost)
    ]


def _legal_flashback(state: GameState, player: Player) -> list[GameAction]:
    return [
        _action(ActionType.FLASHBACK, player, card_id=c.id)
        for c in player.graveyard
        if c.flashback_cost is not None
        and can_cast_now(state, player, c)
        and player.mana_pool.can_pay(spell_cost(state, player, c, c.flashback_cost))
    ]


def _legal_loyalty(state: GameState, player: Player) -> list[GameAction]:
    if not has_sorcery_timing(state, player):
        return []
    actions: list[GameAction] = []
    for card in player.battlefield:
        if not card.is_planeswalker or card.loyalty_used_this_turn:
            continue
        for index, ability in enumerate(card.loyalty_abilities):
            if card.loyalty_counters + ability.loyalty_cost < 0:
                continue
            actions.append(
                _action(
                    ActionType.ACTIVATE_LOYALTY_ABILITY, player,
                    card_id=card.id, ability_index=index,
                )
            )
    return actions


def _legal_ninjutsu(state: GameState, player: Player) -> list[GameAction]:
    if (
        state.active_player_id != player.id
        or state.phase != Phase.DECLARE_BLOCKERS
        or not state.combat.blockers_declared
    ):
        return []
    own_ids = {c.id for c in player.battlefield}
    unblocked = [a for a in state.combat.unblocked_attacker_ids() if a in own_ids]
    actions: list[GameAction] = []
    for card in player.hand:
        if card.ninjutsu_cost is None or not player.mana_pool.can_pay(card.ninjutsu_cost):
            continue
        for attacker_id in unblocked:
            actions.append(
                _action(
                    ActionType.NINJUTSU, player,
                    card_id=card.id, target_card_id=attacker_id,
                )
            )
    return actions


def _legal_adventure(state: GameState, player: Player) -> list[GameAction]:
    actions: list[GameAction] = []
    for card in player.hand:
        adventure = card.adventure
        if adventure is None:
            continue
        if not player.mana_pool.can_pay(spell_cost(state, player, card, adventure.mana_cost)):
            continue
        instant = bool(adventure.card_types & CardType.INSTANT)
        if instant or has_sorcery_timing(state, player):
            actions.append(_action(ActionType.CAST_ADVENTURE, player, card_id=card.id))
    return actions


_LEGALITY: dict[ActionType, Callable[[GameState, Player], list[GameAction]]] = {
    ActionType.PASS_PRIORITY: _legal_pass,
    ActionType.PLAY_LAND: _legal_play_land,
    ActionType.TAP_CARD: _legal_tap,
    ActionType.UNTAP_CARD: _legal_untap,
    ActionType.CAST_SPELL: _legal_cast,
    ActionType.ACTIVATE_FETCH: _legal_fetch,
    ActionType.ACTIVATE_ABILITY: _legal_ability,
    ActionType.CYCLE: _legal_cycle,
    ActionType.FLASHBACK: _legal_flashback,
    ActionType.ACTIVATE_LOYALTY_ABILITY: _legal_loyalty,
    ActionType.NINJUTSU: _legal_ninjutsu,
    ActionType.CAST_ADVENTURE: _legal_adventure,
}


def legal_actions(state: GameState, player: Player) -> list[GameAction]:
    """All actions *player* may take right now, Pass-Priority first."""
    if state.is_game_over:
        return [GameAction.pass_priority(player.id)]
    actions: list[GameAction] = []
    for action_type in ActionType:
        actions.extend(_LEGALITY[action_type](state, player))
    return actions


def legal_actions_of_type(
    state: GameState,
    player: Player,
    action_type: ActionType,
) -> list[GameAction]:
    return _LEGALITY[action_type](state, player)
