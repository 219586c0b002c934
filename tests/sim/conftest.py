"""Shared fixtures and helpers for simulation tests."""

from __future__ import annotations

from collections import deque
from typing import Any

import pytest

from duel_sim.ir.effects import EffectType, effect
from duel_sim.ir.mana import ManaColor
from duel_sim.ir.triggers import GameEvent, Trigger, TriggerCondition
from duel_sim.sim.actions import ActionType, GameAction, Target
from duel_sim.sim.config import SimulationConfig
from duel_sim.sim.content.catalog import CardCatalog, default_catalog
from duel_sim.sim.core.card_instance import CardInstance
from duel_sim.sim.core.entities import Player
from duel_sim.sim.core.game_state import GameState, Phase
from duel_sim.sim.core.rng import GameRNG
from duel_sim.sim.engine import GameEngine
from duel_sim.sim.mechanics.statics import refresh_static_effects
from duel_sim.sim.play_agents.base import DecisionHandler

BASIC_LANDS = {
    ManaColor.WHITE: "Plains",
    ManaColor.BLUE: "Island",
    ManaColor.BLACK: "Swamp",
    ManaColor.RED: "Mountain",
    ManaColor.GREEN: "Forest",
}


@pytest.fixture(scope="module")
def catalog() -> CardCatalog:
    """The bundled card catalog, loaded once."""
    return default_catalog()


# ---------------------------------------------------------------------------
# Scripted decision handler
# ---------------------------------------------------------------------------

class ScriptedHandler(DecisionHandler):
    """Plays queued steps when they become legal and passes otherwise.

    Each step is a dict of ``GameAction`` fields (``action_type`` plus any
    of ``card_id``, ``mana_color``, ``ability_index``, ``target_card_id``).
    The first legal action matching the head of the queue is taken.
    """

    def __init__(
        self,
        steps: list[dict[str, Any]] | None = None,
        targets: list[Target] | None = None,
        attack_with: list[str] | None = None,
        blocks: dict[str, str] | None = None,
        keep: bool = True,
    ) -> None:
        super().__init__()
        self.steps: deque[dict[str, Any]] = deque(steps or [])
        self.targets: deque[Target] = deque(targets or [])
        self.attack_with = list(attack_with or [])
        self.blocks = dict(blocks or {})
        self.keep = keep
        self.card_choices: deque[str | None] = deque()
        self.seen_legal: list[list[GameAction]] = []

    def queue(self, action_type: ActionType, **fields: Any) -> None:
        self.steps.append({"action_type": action_type, **fields})

    def choose_action(self, state, player, legal):
        self.seen_legal.append(list(legal))
        if self.steps:
            wanted = self.steps[0]
            for action in legal:
                if all(getattr(action, k) == v for k, v in wanted.items()):
                    self.steps.popleft()
                    return action
        return next(a for a in legal if a.is_pass)

    def choose_target(self, state, player, effect, options):
        if self.targets:
            return self.targets.popleft()
        return options[0]

    def choose_card(self, state, player, prompt, options):
        if self.card_choices:
            wanted = self.card_choices.popleft()
            if wanted is None:
                return None
            return next(c for c in options if c.id == wanted or c.name == wanted)
        return options[0] if options else None

    def choose_attackers(self, state, player, eligible):
        return [c for c in eligible if c.id in self.attack_with]

    def choose_blockers(self, state, player, attackers, candidates):
        return dict(self.blocks)

    def keep_hand(self, state, player, hand, mulligans):
        return self.keep

    def choose_cards_to_bottom(self, state, player, hand, count):
        return list(hand[:count])

    def choose_cards_to_discard(self, state, player, count):
        return list(player.hand[:count])


class HostileHandler(ScriptedHandler):
    """Always targets a creature the opponent controls when it can."""

    def choose_target(self, state, player, effect, options):
        for option in options:
            found = state.find_permanent(option.card_id) if option.card_id else None
            if found is not None and found[1].id != player.id:
                return option
        return options[0]


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_card(name: str, type_line: str, mana_cost: str | None = None, **kw) -> CardInstance:
    return CardInstance.create(name, type_line, mana_cost, **kw)


def make_creature(name: str = "Bear", power: int = 2, toughness: int = 2, cost: str = "{1}{G}", **kw) -> CardInstance:
    return CardInstance.create(name, "Creature — Bear", cost, power=power, toughness=toughness, **kw)


def make_phoenix(name: str) -> CardInstance:
    """Returns from the graveyard when it dies and destroys a creature when it enters."""
    return make_creature(
        name, 1, 1,
        triggers=[
            Trigger(
                event=GameEvent.DIES,
                condition=TriggerCondition.SELF,
                effect=effect(EffectType.RETURN_SOURCE_TO_BATTLEFIELD),
            ),
            Trigger(
                event=GameEvent.ENTERS_BATTLEFIELD,
                condition=TriggerCondition.SELF,
                effect=effect(EffectType.DESTROY_TARGET_CREATURE),
            ),
        ],
    )


def make_basic(color: ManaColor = ManaColor.GREEN) -> CardInstance:
    return default_catalog().get(BASIC_LANDS[color])


def make_state(
    deck1: list[CardInstance] | None = None,
    deck2: list[CardInstance] | None = None,
    handler1: DecisionHandler | None = None,
    handler2: DecisionHandler | None = None,
    seed: int = 1,
    life: int = 20,
) -> GameState:
    p1 = Player(
        name="Alice", life=life, library=list(deck1 or []),
        decision_handler=handler1 or ScriptedHandler(),
    )
    p2 = Player(
        name="Bob", life=life, library=list(deck2 or []),
        decision_handler=handler2 or ScriptedHandler(),
    )
    return GameState(player1=p1, player2=p2, rng=GameRNG(seed))


def make_engine(state: GameState | None = None, **config: Any) -> GameEngine:
    """Engine over a hand-built state; setup and mulligans are skipped."""
    state = state or make_state()
    config.setdefault("player1_name", "Alice")
    config.setdefault("player2_name", "Bob")
    return GameEngine(state, SimulationConfig(**config))


def put_into_play(engine: GameEngine, player: Player, card: CardInstance, *, sick: bool = False) -> CardInstance:
    """Place *card* on the battlefield without firing any event."""
    card.entered_turn = engine.state.turn if sick else engine.state.turn - 1
    if card.is_planeswalker and card.loyalty is not None:
        card.loyalty_counters = card.loyalty
    player.battlefield.append(card)
    refresh_static_effects(engine.state)
    return card


def at_phase(engine: GameEngine, phase: Phase, active: Player | None = None, turn: int = 3) -> None:
    state = engine.state
    state.turn = turn
    state.is_first_turn = False
    state.phase = phase
    if active is not None:
        state.active_player_id = active.id


def land_deck(size: int = 60, color: ManaColor = ManaColor.GREEN) -> list[CardInstance]:
    return [make_basic(color) for _ in range(size)]
