"""TriggerDispatcher -- turns game events into resolved triggered abilities.

For each event the dispatcher scans the zones where triggers are live
(the battlefield for everything, the graveyard for the graveyard-live
conditions), checks every trigger's condition against the event payload,
orders the matches APNAP and resolves them one after another through the
:class:`~duel_sim.sim.interpreter.EffectInterpreter`.

Resolution may cause new events, which start nested passes one level
deeper.  A pass that would start at or beyond ``max_depth`` raises
:class:`~duel_sim.sim.errors.TriggerRecursionError`, and so does a chain
that exhausts the interpreter stack first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from duel_sim.ir.triggers import GameEvent, Trigger, TriggerCondition
from duel_sim.sim.errors import TriggerRecursionError

if TYPE_CHECKING:
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.core.entities import Player
    from duel_sim.sim.core.game_state import GameState
    from duel_sim.sim.interpreter import EffectInterpreter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event payload and triggered abilities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EventPayload:
    """What happened.

    Attributes
    ----------
    event:
        The game event.
    source:
        The card the event is about (the creature that died, the spell
        cast, the land played...).  ``None`` for player-only events such as
        upkeep and draws.
    source_controller:
        The player who controlled *source* when the event happened.
    player:
        The player who caused the event (caster, drawer, upkeep player).
    target:
        The card affected by *source*, when there is one.
    """

    event: GameEvent
    source: CardInstance | None = None
    source_controller: Player | None = None
    player: Player | None = None
    target: CardInstance | None = None


@dataclass(frozen=True)
class TriggeredAbility:
    """A trigger that qualified, bound to its source and controller."""

    trigger: Trigger
    source: CardInstance
    controller: Player


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

ConditionCheck = Callable[["CardInstance", "Player", EventPayload], bool]


def _is_self(card: CardInstance, controller: Player, payload: EventPayload) -> bool:
    return payload.source is card


def _another_creature(card: CardInstance, controller: Player, payload: EventPayload) -> bool:
    return (
        payload.source is not None
        and payload.source is not card
        and payload.source.is_creature
    )


def _any_creature(card: CardInstance, controller: Player, payload: EventPayload) -> bool:
    return payload.source is not None and payload.source.is_creature


def _controller(card: CardInstance, controller: Player, payload: EventPayload) -> bool:
    return payload.player is not None and payload.player.id == controller.id


def _opponent(card: CardInstance, controller: Player, payload: EventPayload) -> bool:
    return payload.player is not None and payload.player.id != controller.id


def _any_player(card: CardInstance, controller: Player, payload: EventPayload) -> bool:
    return True


def _controller_casts_noncreature(
    card: CardInstance, controller: Player, payload: EventPayload,
) -> bool:
    return (
        _controller(card, controller, payload)
        and payload.source is not None
        and not payload.source.is_creature
    )


def _opponent_draws_except_first(
    card: CardInstance, controller: Player, payload: EventPayload,
) -> bool:
    return (
        _opponent(card, controller, payload)
        and payload.player.cards_drawn_this_turn > 1
    )


def _self_in_graveyard(card: CardInstance, controller: Player, payload: EventPayload) -> bool:
    in_graveyard = any(c is card for c in controller.graveyard)
    return in_graveyard and _controller(card, controller, payload)


_CONDITIONS: dict[TriggerCondition, ConditionCheck] = {
    TriggerCondition.SELF: _is_self,
    TriggerCondition.ANOTHER_CREATURE: _another_creature,
    TriggerCondition.ANY_CREATURE: _any_creature,
    TriggerCondition.CONTROLLER: _controller,
    TriggerCondition.OPPONENT: _opponent,
    TriggerCondition.ANY_PLAYER: _any_player,
    TriggerCondition.CONTROLLER_CASTS_NONCREATURE: _controller_casts_noncreature,
    TriggerCondition.OPPONENT_DRAWS_EXCEPT_FIRST: _opponent_draws_except_first,
    TriggerCondition.SELF_IN_GRAVEYARD: _self_in_graveyard,
}


# ---------------------------------------------------------------------------
# TriggerDispatcher
# ---------------------------------------------------------------------------

class TriggerDispatcher:
    """Collects and resolves triggered abilities for game events.

    Parameters
    ----------
    interpreter:
        Runs each triggered ability's effect.
    max_depth:
        Deepest nested resolution pass allowed before the chain is treated
        as unbounded.
    """

    def __init__(self, interpreter: EffectInterpreter, max_depth: int = 50) -> None:
        self.interpreter = interpreter
        self.max_depth = max_depth
        self._chain: list[str] = []

    def collect(self, state: GameState, payload: EventPayload) -> list[TriggeredAbility]:
        """Return qualifying abilities: active player's first, then the
        non-active player's, each in the order their sources sit in their
        zones (battlefield, then graveyard, then a departed source)."""
        abilities: list[TriggeredAbility] = []
        for controller in state.apnap_order():
            for card in controller.battlefield:
                self._match(card, controller, payload, abilities, graveyard=False)
            for card in controller.graveyard:
                self._match(card, controller, payload, abilities, graveyard=True)

            # A source that just left the battlefield (or sits in the
            # graveyard, on the stack, ...) still sees its own SELF triggers.
            source = payload.source
            if (
                source is not None
                and payload.source_controller is not None
                and payload.source_controller.id == controller.id
                and not any(c is source for c in controller.battlefield)
            ):
                for trigger in source.triggers:
                    if (
                        trigger.event == payload.event
                        and trigger.condition == TriggerCondition.SELF
                    ):
                        abilities.append(TriggeredAbility(trigger, source, controller))
        return abilities

    def fire(self, state: GameState, payload: EventPayload, depth: int = 0) -> None:
        """Resolve every ability triggered by *payload*, in APNAP order."""
        if state.is_game_over:
            return
        abilities = self.collect(state, payload)
        if not abilities:
            return
        if depth >= self.max_depth:
            names = self._chain + [a.source.name for a in abilities]
            raise TriggerRecursionError(depth, names)

        try:
            self._resolve_all(state, payload, abilities, depth)
        except RecursionError as exc:
            # The interpreter stack ran out before max_depth was reached.
            names = self._chain + [a.source.name for a in abilities]
            raise TriggerRecursionError(depth, names) from exc

    def _resolve_all(
        self,
        state: GameState,
        payload: EventPayload,
        abilities: list[TriggeredAbility],
        depth: int,
    ) -> None:
        for ability in abilities:
            if state.is_game_over:
                break
            self._chain.append(ability.source.name)
            try:
                state.record(f"{ability.source.name} triggers ({payload.event.value}).")
                self.interpreter.resolve_triggered_ability(ability, state, depth + 1)
            finally:
                self._chain.pop()

    @staticmethod
    def _match(
        card: CardInstance,
        controller: Player,
        payload: EventPayload,
        out: list[TriggeredAbility],
        *,
        graveyard: bool,
    ) -> None:
        for trigger in card.triggers:
            if trigger.event != payload.event or trigger.live_in_graveyard != graveyard:
                continue
            check = _CONDITIONS.get(trigger.condition)
            if check is None:
                logger.warning("Unknown trigger condition %s on %s", trigger.condition, card.name)
                continue
            if check(card, controller, payload):
                out.append(TriggeredAbility(trigger, card, controller))
