"""Effect interpreter -- runs ``Effect`` values against the game state.

Each ``EffectType`` has one handler method, looked up through the
module-level ``_DISPATCH`` table.  Handlers receive a fresh
:class:`EffectContext`; anything that needs a choice (a target, a card to
fetch, cards to discard) is asked of the decision handler stored in the
context, and the answer is checked against the options offered.

Usage::

    interp = EffectInterpreter(engine)
    ctx = interp.make_context(state, controller, source, depth=0)
    interp.resolve(effect, ctx)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from duel_sim.ir.cards import Keyword
from duel_sim.ir.effects import Effect, EffectType
from duel_sim.sim.actions import Target
from duel_sim.sim.core.card_instance import CardInstance
from duel_sim.sim.errors import IllegalActionError
from duel_sim.sim.mechanics.damage import (
    deal_damage_to_creature,
    deal_damage_to_player,
    gain_life,
    lose_life,
)
from duel_sim.sim.mechanics.zones import (
    matches_subtype_or_name,
    move_card,
    search_library,
    shuffle_library,
)

if TYPE_CHECKING:
    from duel_sim.sim.core.entities import Player
    from duel_sim.sim.core.game_state import GameState
    from duel_sim.sim.engine import GameEngine
    from duel_sim.sim.play_agents.base import DecisionHandler
    from duel_sim.sim.triggers import TriggeredAbility

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# EffectContext
# ---------------------------------------------------------------------------

@dataclass
class EffectContext:
    """Single-use handle passed to an effect handler.

    Attributes
    ----------
    state:
        The game being played.
    controller:
        The player controlling the effect.
    source:
        The card the effect comes from.  For abilities whose source has
        left play this is the last-known snapshot.
    decision_handler:
        Consulted for every sub-decision the effect needs.
    target_card_id / target_player_id:
        The chosen target, filled in at resolution.
    fire_leave_battlefield:
        Called with ``(card, owner)`` after the effect moves a permanent
        off the battlefield so its leave/dies triggers fire.
    depth:
        Nesting depth of trigger resolution this effect runs at.
    """

    state: GameState
    controller: Player
    source: CardInstance
    decision_handler: DecisionHandler
    fire_leave_battlefield: Callable[[CardInstance, Player], None]
    target_card_id: str | None = None
    target_player_id: str | None = None
    depth: int = 0

    @property
    def opponent(self) -> Player:
        return self.state.opponent_of(self.controller)


# ---------------------------------------------------------------------------
# EffectInterpreter
# ---------------------------------------------------------------------------

class EffectInterpreter:
    """Dispatches effects to their handlers.

    The interpreter keeps no game state of its own; zone moves that
    produce events go through the owning :class:`GameEngine`.

    Parameters
    ----------
    engine:
        The engine running the game.
    """

    def __init__(self, engine: GameEngine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def make_context(
        self,
        state: GameState,
        controller: Player,
        source: CardInstance,
        depth: int,
    ) -> EffectContext:
        engine = self._engine

        def _fire_leave(card: CardInstance, owner: Player) -> None:
            engine.fire_leave_battlefield_triggers(card, owner, depth)

        return EffectContext(
            state=state,
            controller=controller,
            source=source,
            decision_handler=controller.decision_handler,
            fire_leave_battlefield=_fire_leave,
            depth=depth,
        )

    def resolve(self, effect: Effect, ctx: EffectContext) -> None:
        """Run *effect* and then check state-based actions."""
        if ctx.state.is_game_over:
            return
        handler = _DISPATCH.get(effect.effect_type)
        if handler is None:
            logger.warning("Unknown effect type: %s", effect.effect_type)
            return
        handler(self, effect, ctx)
        self._engine.check_state_based_actions(ctx.depth)

    def resolve_triggered_ability(
        self,
        ability: TriggeredAbility,
        state: GameState,
        depth: int,
    ) -> None:
        ctx = self.make_context(state, ability.controller, ability.source, depth)
        self.resolve(ability.trigger.effect, ctx)

    # ------------------------------------------------------------------
    # Targeting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def creature_targets(ctx: EffectContext) -> list[Target]:
        """Creatures the controller may target: shroud blocks everyone,
        hexproof blocks opponents."""
        targets: list[Target] = []
        for owner in ctx.state.apnap_order():
            for card in owner.creatures:
                if card.has_keyword(Keyword.SHROUD):
                    continue
                if card.has_keyword(Keyword.HEXPROOF) and owner.id != ctx.controller.id:
                    continue
                targets.append(Target(card_id=card.id))
        return targets

    @staticmethod
    def player_targets(ctx: EffectContext) -> list[Target]:
        return [Target(player_id=p.id) for p in ctx.state.apnap_order()]

    def _choose_target(
        self,
        effect: Effect,
        ctx: EffectContext,
        options: list[Target],
    ) -> Target | None:
        """Ask the controller's handler for a target and record it on *ctx*."""
        if ctx.target_card_id is not None or ctx.target_player_id is not None:
            chosen = Target(card_id=ctx.target_card_id, player_id=ctx.target_player_id)
            return chosen if chosen in options else None
        if not options:
            logger.debug("%s has no legal targets", ctx.source.name)
            ctx.state.record(f"{ctx.source.name} has no legal targets.")
            return None
        chosen = ctx.decision_handler.choose_target(ctx.state, ctx.controller, effect, options)
        if chosen not in options:
            raise IllegalActionError(ctx.controller.name, chosen, "target not offered")
        ctx.target_card_id = chosen.card_id
        ctx.target_player_id = chosen.player_id
        return chosen

    def _choose_card(
        self,
        ctx: EffectContext,
        chooser: Player,
        prompt: str,
        options: list[CardInstance],
    ) -> CardInstance | None:
        if not options:
            return None
        chosen = chooser.decision_handler.choose_card(ctx.state, chooser, prompt, options)
        if chosen is None:
            return None
        if not any(chosen is o for o in options):
            raise IllegalActionError(chooser.name, chosen, f"card not offered for {prompt!r}")
        return chosen

    def _target_creature(self, target: Target | None, ctx: EffectContext) -> tuple[CardInstance, Player] | None:
        if target is None or target.card_id is None:
            return None
        return ctx.state.find_permanent(target.card_id)

    # ------------------------------------------------------------------
    # Damage and life
    # ------------------------------------------------------------------

    def _handle_deal_damage(self, effect: Effect, ctx: EffectContext) -> None:
        options = self.creature_targets(ctx) + self.player_targets(ctx)
        target = self._choose_target(effect, ctx, options)
        if target is None:
            return
        if target.is_player:
            player = ctx.state.get_player(target.player_id)
            deal_damage_to_player(ctx.state, ctx.source, player, effect.amount)
            return
        found = self._target_creature(target, ctx)
        if found is not None:
            deal_damage_to_creature(ctx.state, ctx.source, found[0], effect.amount)

    def _handle_damage_target_creature(self, effect: Effect, ctx: EffectContext) -> None:
        target = self._choose_target(effect, ctx, self.creature_targets(ctx))
        found = self._target_creature(target, ctx)
        if found is not None:
            deal_damage_to_creature(ctx.state, ctx.source, found[0], effect.amount)

    def _handle_damage_opponent(self, effect: Effect, ctx: EffectContext) -> None:
        deal_damage_to_player(ctx.state, ctx.source, ctx.opponent, effect.amount)

    def _handle_damage_each_player(self, effect: Effect, ctx: EffectContext) -> None:
        state = ctx.state
        # Both players are damaged before either loss is checked.
        for player in state.apnap_order():
            player.adjust_life(-effect.amount)
            state.record(f"{ctx.source.name} deals {effect.amount} damage to {player.name} ({player.life}).")
        state.check_game_over()

    def _handle_gain_life(self, effect: Effect, ctx: EffectContext) -> None:
        gain_life(ctx.state, ctx.controller, effect.amount)

    def _handle_lose_life(self, effect: Effect, ctx: EffectContext) -> None:
        lose_life(ctx.state, ctx.controller, effect.amount)

    def _handle_drain(self, effect: Effect, ctx: EffectContext) -> None:
        lose_life(ctx.state, ctx.opponent, effect.amount)
        gain_life(ctx.state, ctx.controller, effect.amount)

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def _handle_draw_cards(self, effect: Effect, ctx: EffectContext) -> None:
        self._engine.draw_cards(ctx.controller, max(1, effect.amount), ctx.depth)

    def _handle_opponent_discards(self, effect: Effect, ctx: EffectContext) -> None:
        victim = ctx.opponent
        count = min(max(1, effect.amount), len(victim.hand))
        if count == 0:
            return
        chosen = victim.decision_handler.choose_cards_to_discard(ctx.state, victim, count)
        if len(chosen) != count or any(not any(c is h for h in victim.hand) for c in chosen):
            raise IllegalActionError(victim.name, chosen, "invalid discard")
        for card in chosen:
            self._engine.discard_card(victim, card)

    def _handle_search_library_to_hand(self, effect: Effect, ctx: EffectContext) -> None:
        self._search(effect, ctx, to_battlefield=False)

    def _handle_search_library_to_battlefield(self, effect: Effect, ctx: EffectContext) -> None:
        self._search(effect, ctx, to_battlefield=True)

    def _search(self, effect: Effect, ctx: EffectContext, *, to_battlefield: bool) -> None:
        player = ctx.controller
        wanted = [effect.subtype] if effect.subtype else []
        for _ in range(max(1, effect.count)):
            candidates = search_library(
                player,
                lambda c: matches_subtype_or_name(c, wanted) if wanted else c.is_land,
            )
            card = self._choose_card(ctx, player, "search library", candidates)
            if card is None:
                break
            if to_battlefield:
                self._engine.put_onto_battlefield(card, player, player.library, ctx.depth)
            else:
                move_card(card, player.library, player.hand)
                ctx.state.record(f"{player.name} searches for {card.name} and puts it into hand.")
        shuffle_library(ctx.state, player)

    def _handle_return_from_graveyard_to_hand(self, effect: Effect, ctx: EffectContext) -> None:
        player = ctx.controller
        candidates = [c for c in player.graveyard if c.is_creature and c is not ctx.source]
        card = self._choose_card(ctx, player, "return from graveyard", candidates)
        if card is None:
            return
        move_card(card, player.graveyard, player.hand)
        ctx.state.record(f"{player.name} returns {card.name} to hand.")

    # ------------------------------------------------------------------
    # Permanents
    # ------------------------------------------------------------------

    def _handle_destroy_target_creature(self, effect: Effect, ctx: EffectContext) -> None:
        target = self._choose_target(effect, ctx, self.creature_targets(ctx))
        found = self._target_creature(target, ctx)
        if found is None:
            return
        card, owner = found
        ctx.state.record(f"{ctx.source.name} destroys {card.name}.")
        self._engine.move_off_battlefield(card, owner, owner.graveyard)
        ctx.fire_leave_battlefield(card, owner)

    def _handle_bounce_target_creature(self, effect: Effect, ctx: EffectContext) -> None:
        target = self._choose_target(effect, ctx, self.creature_targets(ctx))
        found = self._target_creature(target, ctx)
        if found is None:
            return
        card, owner = found
        ctx.state.record(f"{ctx.source.name} returns {card.name} to {owner.name}'s hand.")
        self._engine.move_off_battlefield(card, owner, owner.hand)
        ctx.fire_leave_battlefield(card, owner)

    def _handle_counter_target_spell(self, effect: Effect, ctx: EffectContext) -> None:
        spells = [
            item for item in ctx.state.stack.items()
            if item.is_spell and item.controller_id != ctx.controller.id
        ]
        options = [Target(card_id=item.card.id) for item in reversed(spells)]
        target = self._choose_target(effect, ctx, options)
        if target is None:
            return
        for item in spells:
            if item.card.id == target.card_id:
                self._engine.counter_spell(item, ctx.source)
                return

    def _handle_create_tokens(self, effect: Effect, ctx: EffectContext) -> None:
        spec = effect.token
        if spec is None:
            logger.warning("CREATE_TOKENS on %s has no token spec", ctx.source.name)
            return
        for _ in range(max(1, effect.count)):
            if ctx.state.is_game_over:
                return
            token = CardInstance.create(
                spec.name, spec.type_line,
                power=spec.power, toughness=spec.toughness, is_token=True,
            )
            holding: list[CardInstance] = [token]
            self._engine.put_onto_battlefield(token, ctx.controller, holding, ctx.depth)

    def _handle_return_source_to_battlefield(self, effect: Effect, ctx: EffectContext) -> None:
        player = ctx.controller
        if not any(c is ctx.source for c in player.graveyard):
            return
        ctx.state.record(f"{ctx.source.name} returns to the battlefield.")
        self._engine.put_onto_battlefield(ctx.source, player, player.graveyard, ctx.depth)

    def _handle_sacrifice_source(self, effect: Effect, ctx: EffectContext) -> None:
        player = ctx.controller
        if not any(c is ctx.source for c in player.battlefield):
            return
        ctx.state.record(f"{player.name} sacrifices {ctx.source.name}.")
        self._engine.move_off_battlefield(ctx.source, player, player.graveyard)
        ctx.fire_leave_battlefield(ctx.source, player)

    def _handle_pump_source(self, effect: Effect, ctx: EffectContext) -> None:
        if any(c is ctx.source for c in ctx.controller.battlefield):
            ctx.source.power_bonus += effect.amount
            ctx.source.toughness_bonus += effect.toughness_amount

    def _handle_pump_other_creatures(self, effect: Effect, ctx: EffectContext) -> None:
        for creature in ctx.controller.creatures:
            if creature is ctx.source:
                continue
            creature.power_bonus += effect.amount
            creature.toughness_bonus += effect.toughness_amount

    def _handle_untap_source(self, effect: Effect, ctx: EffectContext) -> None:
        if any(c is ctx.source for c in ctx.controller.battlefield):
            ctx.source.is_tapped = False

    # ------------------------------------------------------------------
    # Mana
    # ------------------------------------------------------------------

    def _handle_add_mana(self, effect: Effect, ctx: EffectContext) -> None:
        if effect.mana_color is None:
            logger.warning("ADD_MANA on %s has no color", ctx.source.name)
            return
        ctx.controller.mana_pool.add(effect.mana_color, max(1, effect.amount))


# ---------------------------------------------------------------------------
# Dispatch table -- maps EffectType to handler method
# ---------------------------------------------------------------------------

_DISPATCH: dict[EffectType, Callable[[EffectInterpreter, Effect, EffectContext], Any]] = {
    EffectType.DEAL_DAMAGE: EffectInterpreter._handle_deal_damage,
    EffectType.DAMAGE_TARGET_CREATURE: EffectInterpreter._handle_damage_target_creature,
    EffectType.DAMAGE_OPPONENT: EffectInterpreter._handle_damage_opponent,
    EffectType.DAMAGE_EACH_PLAYER: EffectInterpreter._handle_damage_each_player,
    EffectType.GAIN_LIFE: EffectInterpreter._handle_gain_life,
    EffectType.LOSE_LIFE: EffectInterpreter._handle_lose_life,
    EffectType.DRAIN: EffectInterpreter._handle_drain,
    EffectType.DRAW_CARDS: EffectInterpreter._handle_draw_cards,
    EffectType.OPPONENT_DISCARDS: EffectInterpreter._handle_opponent_discards,
    EffectType.DESTROY_TARGET_CREATURE: EffectInterpreter._handle_destroy_target_creature,
    EffectType.BOUNCE_TARGET_CREATURE: EffectInterpreter._handle_bounce_target_creature,
    EffectType.COUNTER_TARGET_SPELL: EffectInterpreter._handle_counter_target_spell,
    EffectType.CREATE_TOKENS: EffectInterpreter._handle_create_tokens,
    EffectType.SEARCH_LIBRARY_TO_HAND: EffectInterpreter._handle_search_library_to_hand,
    EffectType.SEARCH_LIBRARY_TO_BATTLEFIELD: EffectInterpreter._handle_search_library_to_battlefield,
    EffectType.RETURN_FROM_GRAVEYARD_TO_HAND: EffectInterpreter._handle_return_from_graveyard_to_hand,
    EffectType.RETURN_SOURCE_TO_BATTLEFIELD: EffectInterpreter._handle_return_source_to_battlefield,
    EffectType.SACRIFICE_SOURCE: EffectInterpreter._handle_sacrifice_source,
    EffectType.PUMP_SOURCE: EffectInterpreter._handle_pump_source,
    EffectType.PUMP_OTHER_CREATURES: EffectInterpreter._handle_pump_other_creatures,
    EffectType.ADD_MANA: EffectInterpreter._handle_add_mana,
    EffectType.UNTAP_SOURCE: EffectInterpreter._handle_untap_source,
}
