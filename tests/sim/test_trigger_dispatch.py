"""Tests for TriggerDispatcher -- APNAP ordering, live zones, look-back and
the recursion cap."""

import pytest

from duel_sim.ir.effects import EffectType, effect
from duel_sim.ir.triggers import GameEvent, Trigger, TriggerCondition
from duel_sim.sim.actions import Target
from duel_sim.sim.core.game_state import Phase
from duel_sim.sim.errors import TriggerRecursionError
from duel_sim.sim.triggers import EventPayload
from tests.sim.conftest import (
    HostileHandler,
    ScriptedHandler,
    at_phase,
    make_basic,
    make_creature,
    make_engine,
    make_phoenix,
    make_state,
    put_into_play,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _watcher(name: str, event: GameEvent, condition: TriggerCondition, amount: int = 1):
    trigger = Trigger(event=event, condition=condition, effect=effect(EffectType.GAIN_LIFE, amount))
    return make_creature(name, 0, 1, triggers=[trigger])


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

class TestApnapOrdering:
    def test_active_player_triggers_first(self):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        # Bob's watcher is placed first; Alice is active.
        put_into_play(engine, bob, _watcher("Bob Watcher", GameEvent.UPKEEP, TriggerCondition.ANY_PLAYER))
        put_into_play(engine, alice, _watcher("Alice Watcher", GameEvent.UPKEEP, TriggerCondition.ANY_PLAYER))

        payload = EventPayload(GameEvent.UPKEEP, player=alice)
        names = [a.source.name for a in engine.dispatcher.collect(state, payload)]
        assert names == ["Alice Watcher", "Bob Watcher"]

        state.active_player_id = bob.id
        names = [a.source.name for a in engine.dispatcher.collect(state, payload)]
        assert names == ["Bob Watcher", "Alice Watcher"]

    def test_resolution_follows_collection_order(self):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, bob, _watcher("Bob Watcher", GameEvent.UPKEEP, TriggerCondition.ANY_PLAYER))
        put_into_play(engine, alice, _watcher("Alice Watcher", GameEvent.UPKEEP, TriggerCondition.ANY_PLAYER))
        engine.fire(EventPayload(GameEvent.UPKEEP, player=alice))
        triggered = [line for line in state.log if "triggers" in line]
        assert triggered == ["Alice Watcher triggers (upkeep).", "Bob Watcher triggers (upkeep)."]
        assert alice.life == 21
        assert bob.life == 21

    def test_same_controller_keeps_battlefield_order(self):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        for name in ("First", "Second", "Third"):
            put_into_play(engine, alice, _watcher(name, GameEvent.UPKEEP, TriggerCondition.CONTROLLER))
        payload = EventPayload(GameEvent.UPKEEP, player=alice)
        assert [a.source.name for a in engine.dispatcher.collect(state, payload)] == ["First", "Second", "Third"]


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

class TestConditions:
    def test_controller_and_opponent(self):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, alice, _watcher("Mine", GameEvent.UPKEEP, TriggerCondition.CONTROLLER))
        put_into_play(engine, alice, _watcher("Theirs", GameEvent.UPKEEP, TriggerCondition.OPPONENT))
        on_alice = engine.dispatcher.collect(state, EventPayload(GameEvent.UPKEEP, player=alice))
        on_bob = engine.dispatcher.collect(state, EventPayload(GameEvent.UPKEEP, player=bob))
        assert [a.source.name for a in on_alice] == ["Mine"]
        assert [a.source.name for a in on_bob] == ["Theirs"]

    def test_another_creature_excludes_self(self):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        watcher = put_into_play(engine, alice, _watcher("Watcher", GameEvent.ENTERS_BATTLEFIELD, TriggerCondition.ANOTHER_CREATURE))
        own = EventPayload(GameEvent.ENTERS_BATTLEFIELD, source=watcher, source_controller=alice, player=alice)
        assert engine.dispatcher.collect(state, own) == []
        bear = make_creature()
        other = EventPayload(GameEvent.ENTERS_BATTLEFIELD, source=bear, source_controller=alice, player=alice)
        assert len(engine.dispatcher.collect(state, other)) == 1

    def test_noncreature_cast(self, catalog):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        put_into_play(engine, alice, _watcher("Prowess", GameEvent.SPELL_CAST, TriggerCondition.CONTROLLER_CASTS_NONCREATURE))
        bolt = catalog.get("Lightning Bolt")
        bear = catalog.get("Grizzly Bears")
        cast_bolt = EventPayload(GameEvent.SPELL_CAST, source=bolt, source_controller=alice, player=alice)
        cast_bear = EventPayload(GameEvent.SPELL_CAST, source=bear, source_controller=alice, player=alice)
        assert len(engine.dispatcher.collect(state, cast_bolt)) == 1
        assert engine.dispatcher.collect(state, cast_bear) == []

    def test_opponent_draws_except_first(self, catalog):
        bob_handler = ScriptedHandler()
        state = make_state(deck1=[make_basic() for _ in range(5)], handler2=bob_handler)
        engine = make_engine(state)
        alice, bob = state.players
        bob_handler.targets.extend([Target(player_id=alice.id)])
        put_into_play(engine, bob, catalog.get("Orcish Bowmasters"))
        engine.draw_cards(alice, 2)
        assert alice.life == 19
        assert [line for line in state.log if "triggers" in line] == ["Orcish Bowmasters triggers (draw_card)."]


# ---------------------------------------------------------------------------
# Live zones and look-back
# ---------------------------------------------------------------------------

class TestLiveZones:
    def test_graveyard_trigger_on_own_upkeep(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        ichorid = catalog.get("Ichorid")
        alice.graveyard.append(ichorid)

        engine.fire(EventPayload(GameEvent.UPKEEP, player=bob))
        assert ichorid in alice.graveyard

        engine.fire(EventPayload(GameEvent.UPKEEP, player=alice))
        assert any(c is ichorid for c in alice.battlefield)
        assert alice.graveyard == []

    def test_battlefield_triggers_not_live_in_graveyard(self):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        alice.graveyard.append(_watcher("Dead Watcher", GameEvent.UPKEEP, TriggerCondition.ANY_PLAYER))
        assert engine.dispatcher.collect(state, EventPayload(GameEvent.UPKEEP, player=alice)) == []

    def test_dies_trigger_sees_departed_source(self):
        state = make_state(deck1=[make_basic() for _ in range(3)])
        engine = make_engine(state)
        alice = state.player1
        card = make_creature(
            "Doomed Scholar", 1, 1,
            triggers=[Trigger(event=GameEvent.DIES, effect=effect(EffectType.DRAW_CARDS, 1))],
        )
        put_into_play(engine, alice, card)
        engine.destroy_permanent(card, alice)
        assert card in alice.graveyard
        assert len(alice.hand) == 1

    def test_any_creature_dies_watcher(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, alice, catalog.get("Blood Artist"))
        bear = put_into_play(engine, bob, make_creature())
        engine.destroy_permanent(bear, bob)
        assert alice.life == 21
        assert bob.life == 19

    def test_token_leaves_no_trace(self):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        token = make_creature("Goblin", 1, 1, is_token=True)
        put_into_play(engine, alice, token)
        engine.destroy_permanent(token, alice)
        assert alice.graveyard == []
        assert alice.battlefield == []


# ---------------------------------------------------------------------------
# Recursion cap
# ---------------------------------------------------------------------------

class TestRecursionCap:
    def test_mutual_death_triggers_hit_the_cap(self):
        state = make_state(handler1=HostileHandler(), handler2=HostileHandler())
        engine = make_engine(state)
        alice, bob = state.players
        at_phase(engine, Phase.MAIN_1, alice)
        phoenix_a = put_into_play(engine, alice, make_phoenix("Phoenix A"))
        put_into_play(engine, bob, make_phoenix("Phoenix B"))

        with pytest.raises(TriggerRecursionError) as excinfo:
            engine.destroy_permanent(phoenix_a, alice)

        assert excinfo.value.depth == engine.config.max_trigger_depth
        assert "Phoenix A" in excinfo.value.card_names
        assert "Phoenix B" in excinfo.value.card_names
        assert "depth 50" in str(excinfo.value)

    def test_lower_cap_trips_sooner(self):
        state = make_state(handler1=HostileHandler(), handler2=HostileHandler())
        engine = make_engine(state, max_trigger_depth=4)
        alice, bob = state.players
        phoenix_a = put_into_play(engine, alice, make_phoenix("Phoenix A"))
        put_into_play(engine, bob, make_phoenix("Phoenix B"))
        with pytest.raises(TriggerRecursionError) as excinfo:
            engine.destroy_permanent(phoenix_a, alice)
        assert excinfo.value.depth == 4

    def test_bounded_chain_is_fine(self):
        engine = make_engine(max_trigger_depth=4)
        state = engine.state
        alice = state.player1
        put_into_play(engine, alice, _watcher("Watcher", GameEvent.UPKEEP, TriggerCondition.ANY_PLAYER))
        engine.fire(EventPayload(GameEvent.UPKEEP, player=alice))
        assert alice.life == 21

    def test_deepest_allowed_cap_still_reports_the_loop(self):
        state = make_state(handler1=HostileHandler(), handler2=HostileHandler())
        engine = make_engine(state, max_trigger_depth=500)
        alice, bob = state.players
        phoenix_a = put_into_play(engine, alice, make_phoenix("Phoenix A"))
        put_into_play(engine, bob, make_phoenix("Phoenix B"))

        with pytest.raises(TriggerRecursionError) as excinfo:
            engine.destroy_permanent(phoenix_a, alice)

        # The interpreter stack may run out before depth 500.
        assert 1 <= excinfo.value.depth <= 500
        assert "Phoenix A" in excinfo.value.card_names
        assert "Phoenix B" in excinfo.value.card_names
