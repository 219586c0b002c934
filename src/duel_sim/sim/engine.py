"""GameEngine -- the turn/phase state machine for one game.

The engine is the only thing that mutates a ``GameState`` during play.  It
walks the phase sequence, hands out priority, executes the actions the
decision handlers choose, resolves the stack, applies state-based actions
and routes every game event to the :class:`TriggerDispatcher`.

Typical driving loop (what :class:`~duel_sim.sim.runner.SimulationRunner`
does)::

    engine = GameEngine(state, config)
    engine.start_game()
    while not state.is_game_over:
        engine.run_turn()
        ...
        engine.end_turn()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from duel_sim.ir.triggers import GameEvent
from duel_sim.sim.actions import ActionType, GameAction, legal_actions
from duel_sim.sim.combat import CombatManager
from duel_sim.sim.config import SimulationConfig
from duel_sim.sim.core.action_stack import StackItem, StackItemKind
from duel_sim.sim.core.game_state import TURN_SEQUENCE, Phase
from duel_sim.sim.errors import IllegalActionError
from duel_sim.sim.interpreter import EffectInterpreter
from duel_sim.sim.mechanics.damage import lose_life
from duel_sim.sim.mechanics.mana import (
    empty_mana_pool,
    pay_mana,
    tap_for_mana,
    untap_mana_source,
)
from duel_sim.sim.mechanics.statics import refresh_static_effects, spell_cost
from duel_sim.sim.mechanics.zones import (
    draw_card,
    matches_subtype_or_name,
    move_card,
    put_on_bottom,
    remove_card,
    shuffle_library,
)
from duel_sim.sim.triggers import EventPayload, TriggerDispatcher

if TYPE_CHECKING:
    from duel_sim.ir.effects import Effect
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.core.entities import Player
    from duel_sim.sim.core.game_state import GameState

logger = logging.getLogger(__name__)


class GameEngine:
    """Runs one game.

    Parameters
    ----------
    state:
        A freshly built game state.  Both players must already hold their
        libraries and decision handlers, and ``state.rng`` must be set.
    config:
        Limits for hand size, mulligans and trigger depth.
    """

    def __init__(self, state: GameState, config: SimulationConfig | None = None) -> None:
        self.state = state
        self.config = config or SimulationConfig()
        self.interpreter = EffectInterpreter(self)
        self.dispatcher = TriggerDispatcher(self.interpreter, self.config.max_trigger_depth)
        self.combat = CombatManager(self)

    # ==================================================================
    # Setup
    # ==================================================================

    def start_game(self) -> None:
        """Shuffle both libraries and run each player's mulligans."""
        state = self.state
        for player in state.players:
            shuffle_library(state, player)
        for player in state.apnap_order():
            self._mulligan(player)
        state.record(f"{state.active_player.name} goes first.")

    def _draw_opening_hand(self, player: Player) -> None:
        size = min(self.config.opening_hand_size, len(player.library))
        for _ in range(size):
            player.hand.append(player.library.pop(0))

    def _mulligan(self, player: Player) -> None:
        state = self.state
        handler = player.decision_handler
        self._draw_opening_hand(player)

        mulligans = 0
        while mulligans < self.config.max_mulligans:
            if handler.keep_hand(state, player, list(player.hand), mulligans):
                break
            mulligans += 1
            state.record(f"{player.name} mulligans.")
            player.library.extend(player.hand)
            player.hand.clear()
            shuffle_library(state, player)
            self._draw_opening_hand(player)

        to_bottom = min(mulligans, len(player.hand))
        if to_bottom:
            chosen = handler.choose_cards_to_bottom(state, player, list(player.hand), to_bottom)
            self._check_subset(player, chosen, player.hand, to_bottom, "bottom")
            put_on_bottom(player, chosen)

        state.record(
            f"{player.name} keeps hand of {len(player.hand)} cards "
            f"(mulliganed {mulligans} times)."
        )

    # ==================================================================
    # Turn structure
    # ==================================================================

    def run_turn(self) -> None:
        """Play every phase of the current turn until the game ends."""
        state = self.state
        state.record(f"Turn {state.turn}: {state.active_player.name}'s turn.")
        for phase in TURN_SEQUENCE:
            if state.is_game_over:
                return
            if self._skip_step(phase):
                continue
            state.phase = phase
            logger.debug("Turn %d, %s", state.turn, phase.value)
            _TURN_BASED_ACTIONS[phase](self)
            if phase.grants_priority and not state.is_game_over:
                self.run_priority()
            if state.is_game_over:
                return
            for player in state.players:
                empty_mana_pool(player)

    def end_turn(self) -> None:
        """Advance the turn counter and pass the turn to the other player."""
        state = self.state
        state.is_first_turn = False
        state.turn += 1
        state.active_player_id = state.non_active_player.id
        state.phase = Phase.UNTAP
        state.combat.clear()

    def _skip_step(self, phase: Phase) -> bool:
        if phase in (Phase.DECLARE_BLOCKERS, Phase.COMBAT_DAMAGE):
            return not self.state.combat.attacker_ids
        return False

    # -- turn-based actions ---------------------------------------------

    def _untap_step(self) -> None:
        active = self.state.active_player
        for card in active.battlefield:
            card.is_tapped = False
            card.loyalty_used_this_turn = False
        active.reset_for_turn()
        self.state.opponent_of(active).cards_drawn_this_turn = 0
        self.state.record(f"{active.name} untaps all permanents.")

    def _upkeep_step(self) -> None:
        active = self.state.active_player
        self.fire(EventPayload(GameEvent.UPKEEP, player=active))

    def _draw_step(self) -> None:
        state = self.state
        if state.is_first_turn:
            state.record(f"{state.active_player.name} skips the first draw.")
            state.is_first_turn = False
            return
        self.draw_cards(state.active_player, 1)

    def _main_phase(self) -> None:
        pass

    def _begin_combat(self) -> None:
        self.state.combat.clear()

    def _declare_attackers(self) -> None:
        self.combat.declare_attackers()

    def _declare_blockers(self) -> None:
        self.combat.declare_blockers()

    def _combat_damage(self) -> None:
        self.combat.deal_combat_damage()

    def _end_combat(self) -> None:
        self.state.combat.clear()

    def _end_step(self) -> None:
        pass

    def _cleanup_step(self) -> None:
        state = self.state
        active = state.active_player
        excess = len(active.hand) - self.config.max_hand_size
        if excess > 0:
            chosen = active.decision_handler.choose_cards_to_discard(state, active, excess)
            self._check_subset(active, chosen, active.hand, excess, "discard")
            for card in chosen:
                self.discard_card(active, card)
        for player in state.players:
            for card in player.battlefield:
                card.damage_marked = 0
                card.power_bonus = 0
                card.toughness_bonus = 0

    # ==================================================================
    # Priority
    # ==================================================================

    def run_priority(self) -> None:
        """Alternate priority until both players pass with an empty stack.

        Two passes in a row with something on the stack resolve its top
        item; any other action hands priority back to the active player.
        """
        state = self.state
        state.priority_player_id = state.active_player_id
        passes = 0
        while not state.is_game_over:
            player = state.get_player(state.priority_player_id)
            action = self.request_action(player)
            if action.is_pass:
                passes += 1
                if passes < 2:
                    state.priority_player_id = state.opponent_of(player).id
                    continue
                if state.stack.is_empty:
                    break
                self.resolve_top_of_stack()
            else:
                self.execute_action(player, action)
            passes = 0
            state.priority_player_id = state.active_player_id
        state.priority_player_id = None

    def request_action(self, player: Player) -> GameAction:
        """Ask *player*'s handler for an action and make sure it was offered."""
        legal = legal_actions(self.state, player)
        choice = player.decision_handler.choose_action(self.state, player, legal)
        if choice not in legal:
            raise IllegalActionError(player.name, choice)
        return choice

    # ==================================================================
    # Actions
    # ==================================================================

    def execute_action(self, player: Player, action: GameAction) -> None:
        handler = _ACTION_HANDLERS[action.action_type]
        handler(self, player, action)
        self.check_state_based_actions(0)

    def _card_in(self, zone: list[CardInstance], card_id: str | None) -> CardInstance:
        for card in zone:
            if card.id == card_id:
                return card
        raise ValueError(f"Card {card_id!r} is not in the expected zone")

    def _play_land(self, player: Player, action: GameAction) -> None:
        card = self._card_in(player.hand, action.card_id)
        player.lands_played_this_turn += 1
        self.state.record(f"{player.name} plays {card.name} (land drop).")
        self.put_onto_battlefield(card, player, player.hand)
        self.fire(
            EventPayload(GameEvent.LAND_PLAYED, source=card, source_controller=player, player=player),
        )

    def _tap_card(self, player: Player, action: GameAction) -> None:
        card = self._card_in(player.battlefield, action.card_id)
        tap_for_mana(self.state, player, card, action.mana_color)

    def _untap_card(self, player: Player, action: GameAction) -> None:
        card = self._card_in(player.battlefield, action.card_id)
        untap_mana_source(player, card)

    def _cast_spell(self, player: Player, action: GameAction) -> None:
        card = next((c for c in player.hand if c.id == action.card_id), None)
        zone = player.hand
        if card is None:
            card = self._card_in(player.exile, action.card_id)
            zone = player.exile
        pay_mana(player, spell_cost(self.state, player, card, card.mana_cost))
        remove_card(zone, card)
        card.on_adventure = False
        self._push_spell(player, card, card.spell_effect)
        self.state.record(f"{player.name} casts {card.name}.")
        self._fire_spell_cast(player, card)

    def _activate_fetch(self, player: Player, action: GameAction) -> None:
        state = self.state
        card = self._card_in(player.battlefield, action.card_id)
        fetch = card.fetch_ability
        state.record(f"{player.name} activates {card.name}, paying {fetch.life_cost} life.")
        lose_life(state, player, fetch.life_cost)
        self.destroy_permanent(card, player, announce=False)
        if state.is_game_over:
            return

        candidates = [
            c for c in player.library
            if c.is_land and matches_subtype_or_name(c, fetch.search_types)
        ]
        found = None
        if candidates:
            found = player.decision_handler.choose_card(state, player, "fetch", candidates)
            if found is not None and not any(found is c for c in candidates):
                raise IllegalActionError(player.name, found, "land not offered by fetch")
        if found is None:
            state.record(f"{player.name} finds no land.")
        else:
            state.record(f"{player.name} fetches {found.name}.")
            self.put_onto_battlefield(found, player, player.library)
        shuffle_library(state, player)

    def _activate_ability(self, player: Player, action: GameAction) -> None:
        card = self._card_in(player.battlefield, action.card_id)
        ability = card.activated_abilities[action.ability_index]
        if ability.mana_cost is not None:
            pay_mana(player, ability.mana_cost)
        if ability.tap_cost:
            card.is_tapped = True
        self.state.record(
            f"{player.name} activates {card.name}"
            + (f": {ability.description}." if ability.description else ".")
        )
        if ability.sacrifice_cost:
            self.destroy_permanent(card, player, announce=False)
        self.state.stack.push(
            StackItem(
                kind=StackItemKind.ABILITY,
                card=card,
                controller_id=player.id,
                effect=ability.effect,
                description=ability.description,
            )
        )

    def _cycle(self, player: Player, action: GameAction) -> None:
        card = self._card_in(player.hand, action.card_id)
        pay_mana(player, card.cycling_cost)
        move_card(card, player.hand, player.graveyard)
        self.state.record(f"{player.name} cycles {card.name}.")
        self.draw_cards(player, 1)
        self.fire(
            EventPayload(GameEvent.CYCLED, source=card, source_controller=player, player=player),
        )

    def _flashback(self, player: Player, action: GameAction) -> None:
        card = self._card_in(player.graveyard, action.card_id)
        pay_mana(player, spell_cost(self.state, player, card, card.flashback_cost))
        remove_card(player.graveyard, card)
        self._push_spell(player, card, card.spell_effect, from_flashback=True)
        self.state.record(f"{player.name} casts {card.name} with flashback.")
        self._fire_spell_cast(player, card)

    def _activate_loyalty(self, player: Player, action: GameAction) -> None:
        card = self._card_in(player.battlefield, action.card_id)
        ability = card.loyalty_abilities[action.ability_index]
        card.loyalty_counters += ability.loyalty_cost
        card.loyalty_used_this_turn = True
        sign = "+" if ability.loyalty_cost >= 0 else ""
        self.state.record(
            f"{player.name} activates {card.name} ({sign}{ability.loyalty_cost}), "
            f"loyalty {card.loyalty_counters}."
        )
        self.state.stack.push(
            StackItem(
                kind=StackItemKind.ABILITY,
                card=card,
                controller_id=player.id,
                effect=ability.effect,
                description=ability.description,
            )
        )

    def _ninjutsu(self, player: Player, action: GameAction) -> None:
        state = self.state
        ninja = self._card_in(player.hand, action.card_id)
        attacker = self._card_in(player.battlefield, action.target_card_id)
        pay_mana(player, ninja.ninjutsu_cost)
        state.record(f"{player.name} ninjutsus {ninja.name}, returning {attacker.name}.")
        self.move_off_battlefield(attacker, player, player.hand)
        self.fire_leave_battlefield_triggers(attacker, player, 0)
        if state.is_game_over:
            return
        self.put_onto_battlefield(ninja, player, player.hand, tapped=True)
        if any(c is ninja for c in player.battlefield):
            state.combat.attacker_ids.append(ninja.id)

    def _cast_adventure(self, player: Player, action: GameAction) -> None:
        card = self._card_in(player.hand, action.card_id)
        adventure = card.adventure
        pay_mana(player, spell_cost(self.state, player, card, adventure.mana_cost))
        remove_card(player.hand, card)
        self._push_spell(player, card, adventure.effect, as_adventure=True)
        self.state.record(f"{player.name} casts {adventure.name} ({card.name}).")
        self._fire_spell_cast(player, card)

    def _push_spell(
        self,
        player: Player,
        card: CardInstance,
        effect: Effect | None,
        *,
        from_flashback: bool = False,
        as_adventure: bool = False,
    ) -> None:
        self.state.stack.push(
            StackItem(
                kind=StackItemKind.SPELL,
                card=card,
                controller_id=player.id,
                effect=effect,
                from_flashback=from_flashback,
                as_adventure=as_adventure,
            )
        )

    def _fire_spell_cast(self, player: Player, card: CardInstance) -> None:
        self.fire(
            EventPayload(GameEvent.SPELL_CAST, source=card, source_controller=player, player=player),
        )

    # ==================================================================
    # Stack
    # ==================================================================

    def resolve_top_of_stack(self) -> None:
        """Pop the top item and carry it out.  A finished game leaves the
        stack as it is."""
        state = self.state
        if state.is_game_over:
            return
        item = state.stack.pop()
        controller = state.get_player(item.controller_id)
        card = item.card
        state.record(f"{item.name} resolves.")

        if not item.is_spell:
            self._run_effect(item.effect, controller, card)
        elif item.as_adventure:
            self._run_effect(item.effect, controller, card)
            card.on_adventure = True
            controller.exile.append(card)
        elif card.is_permanent:
            self.put_onto_battlefield(card, controller, None)
        else:
            self._run_effect(item.effect, controller, card)
            if item.from_flashback:
                controller.exile.append(card)
            else:
                controller.graveyard.append(card)
        self.check_state_based_actions(0)

    def _run_effect(self, effect: Effect | None, controller: Player, source: CardInstance) -> None:
        if effect is None or self.state.is_game_over:
            return
        ctx = self.interpreter.make_context(self.state, controller, source, depth=0)
        self.interpreter.resolve(effect, ctx)

    def counter_spell(self, item: StackItem, source: CardInstance) -> None:
        """Remove a spell from the stack and send its card on."""
        state = self.state
        state.stack.remove(item)
        owner = state.get_player(item.controller_id)
        if item.from_flashback:
            owner.exile.append(item.card)
        else:
            owner.graveyard.append(item.card)
        state.record(f"{source.name} counters {item.name}.")

    # ==================================================================
    # Zone changes that generate events
    # ==================================================================

    def fire(self, payload: EventPayload, depth: int = 0) -> None:
        self.dispatcher.fire(self.state, payload, depth)

    def draw_cards(self, player: Player, count: int, depth: int = 0) -> list[CardInstance]:
        """Draw *count* cards one at a time, firing a draw event for each."""
        drawn: list[CardInstance] = []
        for _ in range(count):
            if self.state.is_game_over:
                break
            card = draw_card(self.state, player)
            if card is None:
                break
            drawn.append(card)
            self.state.record(f"{player.name} draws a card.")
            self.fire(EventPayload(GameEvent.DRAW_CARD, player=player), depth)
        return drawn

    def discard_card(self, player: Player, card: CardInstance) -> None:
        move_card(card, player.hand, player.graveyard)
        self.state.record(f"{player.name} discards {card.name}.")

    def put_onto_battlefield(
        self,
        card: CardInstance,
        controller: Player,
        from_zone: list[CardInstance] | None,
        depth: int = 0,
        *,
        tapped: bool = False,
    ) -> None:
        """Move *card* onto *controller*'s battlefield and fire its
        enters-the-battlefield event.  ``from_zone=None`` means the card is
        coming off the stack."""
        if from_zone is not None:
            remove_card(from_zone, card)
        card.reset_runtime_state()
        card.on_adventure = False
        card.is_tapped = tapped or card.enters_tapped
        card.entered_turn = self.state.turn
        if card.is_planeswalker and card.loyalty is not None:
            card.loyalty_counters = card.loyalty
        controller.battlefield.append(card)
        refresh_static_effects(self.state)
        self.fire(
            EventPayload(
                GameEvent.ENTERS_BATTLEFIELD,
                source=card,
                source_controller=controller,
                player=controller,
            ),
            depth,
        )

    def move_off_battlefield(
        self,
        card: CardInstance,
        owner: Player,
        destination: list[CardInstance],
    ) -> None:
        """Zone move only; callers fire the leave triggers afterwards."""
        remove_card(owner.battlefield, card)
        self.state.combat.remove_creature(card.id)
        card.reset_runtime_state()
        destination.append(card)
        refresh_static_effects(self.state)

    def fire_leave_battlefield_triggers(
        self,
        card: CardInstance,
        owner: Player,
        depth: int,
    ) -> None:
        """Fire leave (and, for creatures now in a graveyard, dies) events.

        Tokens stop existing once their triggers have been collected.
        """
        payload_args = dict(source=card, source_controller=owner, player=owner)
        self.fire(EventPayload(GameEvent.LEAVES_BATTLEFIELD, **payload_args), depth)
        if card.is_creature and any(c is card for c in owner.graveyard):
            self.fire(EventPayload(GameEvent.DIES, **payload_args), depth)
        if card.is_token:
            for zone in (owner.graveyard, owner.hand, owner.exile, owner.library):
                if any(c is card for c in zone):
                    remove_card(zone, card)

    def destroy_permanent(
        self,
        card: CardInstance,
        owner: Player,
        depth: int = 0,
        *,
        announce: bool = True,
    ) -> None:
        """Put a permanent into its owner's graveyard and fire its triggers."""
        if announce:
            self.state.record(f"{card.name} is put into {owner.name}'s graveyard.")
        self.move_off_battlefield(card, owner, owner.graveyard)
        self.fire_leave_battlefield_triggers(card, owner, depth)

    # ==================================================================
    # State-based actions
    # ==================================================================

    def check_state_based_actions(self, depth: int = 0) -> None:
        """Remove dead creatures, empty planeswalkers and legend-rule
        duplicates until nothing changes, then check for a winner."""
        state = self.state
        while not state.is_game_over:
            doomed: list[tuple[CardInstance, Player, str]] = []
            for player in state.apnap_order():
                seen_legends: dict[str, CardInstance] = {}
                for card in player.battlefield:
                    if card.has_lethal_damage:
                        doomed.append((card, player, f"{card.name} dies."))
                    elif card.is_planeswalker and card.loyalty is not None and card.loyalty_counters <= 0:
                        doomed.append((card, player, f"{card.name} has no loyalty left."))
                    elif card.is_legendary:
                        older = seen_legends.get(card.name)
                        if older is not None:
                            doomed.append((older, player, f"{older.name} is put into the graveyard (legend rule)."))
                        seen_legends[card.name] = card
            if not doomed:
                break
            # Simultaneous: move everything first, then fire triggers.
            for card, owner, message in doomed:
                state.record(message)
                self.move_off_battlefield(card, owner, owner.graveyard)
            for card, owner, _ in doomed:
                self.fire_leave_battlefield_triggers(card, owner, depth)
        state.check_game_over()

    # ==================================================================
    # Helpers
    # ==================================================================

    @staticmethod
    def _check_subset(
        player: Player,
        chosen: list[CardInstance],
        zone: list[CardInstance],
        count: int,
        what: str,
    ) -> None:
        ids = [c.id for c in chosen]
        if len(chosen) != count or len(set(ids)) != count:
            raise IllegalActionError(player.name, chosen, f"expected {count} cards to {what}")
        for card in chosen:
            if not any(card is z for z in zone):
                raise IllegalActionError(player.name, card, f"card not available to {what}")


# ---------------------------------------------------------------------------
# Dispatch tables
# ---------------------------------------------------------------------------

_TURN_BASED_ACTIONS: dict[Phase, Callable[[GameEngine], None]] = {
    Phase.UNTAP: GameEngine._untap_step,
    Phase.UPKEEP: GameEngine._upkeep_step,
    Phase.DRAW: GameEngine._draw_step,
    Phase.MAIN_1: GameEngine._main_phase,
    Phase.BEGIN_COMBAT: GameEngine._begin_combat,
    Phase.DECLARE_ATTACKERS: GameEngine._declare_attackers,
    Phase.DECLARE_BLOCKERS: GameEngine._declare_blockers,
    Phase.COMBAT_DAMAGE: GameEngine._combat_damage,
    Phase.END_COMBAT: GameEngine._end_combat,
    Phase.MAIN_2: GameEngine._main_phase,
    Phase.END_STEP: GameEngine._end_step,
    Phase.CLEANUP: GameEngine._cleanup_step,
}

_ACTION_HANDLERS: dict[ActionType, Callable[[GameEngine, "Player", GameAction], None]] = {
    ActionType.PLAY_LAND: GameEngine._play_land,
    ActionType.TAP_CARD: GameEngine._tap_card,
    ActionType.UNTAP_CARD: GameEngine._untap_card,
    ActionType.CAST_SPELL: GameEngine._cast_spell,
    ActionType.ACTIVATE_FETCH: GameEngine._activate_fetch,
    ActionType.ACTIVATE_ABILITY: GameEngine._activate_ability,
    ActionType.CYCLE: GameEngine._cycle,
    ActionType.FLASHBACK: GameEngine._flashback,
    ActionType.ACTIVATE_LOYALTY_ABILITY: GameEngine._activate_loyalty,
    ActionType.NINJUTSU: GameEngine._ninjutsu,
    ActionType.CAST_ADVENTURE: GameEngine._cast_adventure,
}
