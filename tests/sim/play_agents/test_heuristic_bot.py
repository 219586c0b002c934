"""Tests for the HeuristicBot decision logic."""

from duel_sim.ir.cards import SpellRole
from duel_sim.ir.effects import EffectType, effect
from duel_sim.ir.mana import ManaColor
from duel_sim.sim.actions import ActionType, legal_actions
from duel_sim.sim.core.action_stack import StackItem, StackItemKind
from duel_sim.sim.core.game_state import Phase
from duel_sim.sim.play_agents import HeuristicBot
from duel_sim.sim.play_agents.heuristic_agent import needed_colors, score_land
from duel_sim.sim.play_agents.spell_roles import classify_spell_role
from tests.sim.conftest import (
    at_phase,
    land_deck,
    make_basic,
    make_creature,
    make_engine,
    make_state,
    put_into_play,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _bot_engine(**config):
    state = make_state(handler1=HeuristicBot(), handler2=HeuristicBot())
    return make_engine(state, **config)


def _choose(engine, player):
    state = engine.state
    return player.decision_handler.choose_action(state, player, legal_actions(state, player))


def _targets(engine, controller):
    ctx = engine.interpreter.make_context(engine.state, controller, make_creature("Src"), depth=0)
    interp = engine.interpreter
    return interp.creature_targets(ctx) + interp.player_targets(ctx)


# ---------------------------------------------------------------------------
# Evaluation helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_needed_colors(self, catalog):
        engine = _bot_engine()
        alice = engine.state.player1
        alice.hand.extend([catalog.get("Lightning Bolt"), catalog.get("Counterspell"), make_basic()])
        assert needed_colors(alice) == {ManaColor.RED, ManaColor.BLUE}

    def test_score_land_ordering(self, catalog):
        wanted = {ManaColor.GREEN, ManaColor.WHITE}
        assert score_land(catalog.get("Forest"), wanted) == 100
        assert score_land(catalog.get("Brushland"), wanted) == 50
        assert score_land(catalog.get("Mountain"), wanted) == 60
        assert score_land(catalog.get("Tranquil Cove"), {ManaColor.RED}) == 0

    def test_spell_roles(self, catalog):
        assert classify_spell_role(catalog.get("Grizzly Bears")) == SpellRole.PROACTIVE
        assert classify_spell_role(catalog.get("Divination")) == SpellRole.PROACTIVE
        assert classify_spell_role(catalog.get("Counterspell")) == SpellRole.COUNTERSPELL
        assert classify_spell_role(catalog.get("Lightning Bolt")) == SpellRole.INSTANT_REMOVAL
        assert classify_spell_role(catalog.get("Opt")) == SpellRole.INSTANT_UTILITY
        assert classify_spell_role(catalog.get("Dark Ritual")) == SpellRole.PROACTIVE


# ---------------------------------------------------------------------------
# Priority
# ---------------------------------------------------------------------------

class TestMainPhase:
    def test_prefers_land_of_needed_color(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        forest, mountain = make_basic(), make_basic(ManaColor.RED)
        alice.hand.extend([mountain, forest, catalog.get("Grizzly Bears")])
        at_phase(engine, Phase.MAIN_1, alice)
        action = _choose(engine, alice)
        assert action.action_type == ActionType.PLAY_LAND
        assert action.card_id == forest.id

    def test_taps_then_casts_planned_spell(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        for _ in range(2):
            put_into_play(engine, alice, make_basic())
        bears = catalog.get("Grizzly Bears")
        alice.hand.append(bears)
        at_phase(engine, Phase.MAIN_1, alice)

        taken = []
        for _ in range(3):
            action = _choose(engine, alice)
            taken.append(action.action_type)
            engine.execute_action(alice, action)

        assert taken == [ActionType.TAP_CARD, ActionType.TAP_CARD, ActionType.CAST_SPELL]
        assert state.stack.peek().card is bears

    def test_passes_with_nothing_to_do(self):
        engine = _bot_engine()
        alice = engine.state.player1
        at_phase(engine, Phase.MAIN_1, alice)
        assert _choose(engine, alice).is_pass

    def test_skips_removal_without_targets(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        put_into_play(engine, alice, make_basic(ManaColor.BLACK))
        put_into_play(engine, alice, make_basic(ManaColor.BLACK))
        alice.hand.append(catalog.get("Doom Blade"))
        at_phase(engine, Phase.MAIN_1, alice)
        assert _choose(engine, alice).is_pass


class TestOpponentsTurn:
    def _counter_setup(self, catalog, spell_name):
        engine = _bot_engine()
        state = engine.state
        alice, bob = state.players
        for _ in range(2):
            put_into_play(engine, alice, make_basic(ManaColor.BLUE))
        alice.hand.append(catalog.get("Counterspell"))
        at_phase(engine, Phase.MAIN_1, bob)
        spell = catalog.get(spell_name)
        state.stack.push(StackItem(kind=StackItemKind.SPELL, card=spell, controller_id=bob.id))
        return engine

    def test_counters_expensive_spell(self, catalog):
        engine = self._counter_setup(catalog, "Divination")
        alice = engine.state.player1
        taken = []
        for _ in range(3):
            action = _choose(engine, alice)
            taken.append(action.action_type)
            engine.execute_action(alice, action)
        assert taken == [ActionType.TAP_CARD, ActionType.TAP_CARD, ActionType.CAST_SPELL]
        assert engine.state.stack.peek().card.name == "Counterspell"

    def test_lets_cheap_spell_resolve(self, catalog):
        engine = self._counter_setup(catalog, "Opt")
        assert _choose(engine, engine.state.player1).is_pass

    def test_removal_at_end_step(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, alice, make_basic(ManaColor.BLACK))
        put_into_play(engine, alice, make_basic(ManaColor.BLACK))
        alice.hand.append(catalog.get("Doom Blade"))
        put_into_play(engine, bob, make_creature())
        at_phase(engine, Phase.END_STEP, bob)
        assert _choose(engine, alice).action_type == ActionType.TAP_CARD

    def test_holds_removal_in_main_phase(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, alice, make_basic(ManaColor.BLACK))
        put_into_play(engine, alice, make_basic(ManaColor.BLACK))
        alice.hand.append(catalog.get("Doom Blade"))
        put_into_play(engine, bob, make_creature())
        at_phase(engine, Phase.MAIN_1, bob)
        assert _choose(engine, alice).is_pass

    def test_ninjutsu_after_blocks(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        bear = put_into_play(engine, alice, make_creature())
        for _ in range(2):
            put_into_play(engine, alice, make_basic(ManaColor.BLUE))
        alice.hand.append(catalog.get("Ninja of the Deep Hours"))
        at_phase(engine, Phase.DECLARE_BLOCKERS, alice)
        state.combat.attacker_ids.append(bear.id)
        state.combat.blockers_declared = True
        assert _choose(engine, alice).action_type == ActionType.TAP_CARD


# ---------------------------------------------------------------------------
# Resolution choices
# ---------------------------------------------------------------------------

class TestTargetChoice:
    def test_burn_kills_biggest_killable(self):
        engine = _bot_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, bob, make_creature("Huge", 5, 5))
        small = put_into_play(engine, bob, make_creature("Small", 2, 2))
        put_into_play(engine, bob, make_creature("Tiny", 1, 1))
        bolt = effect(EffectType.DEAL_DAMAGE, 3)
        chosen = alice.decision_handler.choose_target(state, alice, bolt, _targets(engine, alice))
        assert chosen.card_id == small.id

    def test_burn_goes_face_when_nothing_dies(self):
        engine = _bot_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, bob, make_creature("Huge", 5, 5))
        bolt = effect(EffectType.DEAL_DAMAGE, 3)
        chosen = alice.decision_handler.choose_target(state, alice, bolt, _targets(engine, alice))
        assert chosen.player_id == bob.id

    def test_destroy_picks_biggest_threat(self):
        engine = _bot_engine()
        state = engine.state
        alice, bob = state.players
        huge = put_into_play(engine, bob, make_creature("Huge", 5, 5))
        put_into_play(engine, bob, make_creature("Small", 2, 2))
        put_into_play(engine, alice, make_creature("Mine", 6, 6))
        destroy = effect(EffectType.DESTROY_TARGET_CREATURE)
        options = [t for t in _targets(engine, alice) if t.card_id is not None]
        assert alice.decision_handler.choose_target(state, alice, destroy, options).card_id == huge.id

    def test_card_choice_prefers_needed_color(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        alice.hand.append(catalog.get("Counterspell"))
        island, forest = make_basic(ManaColor.BLUE), make_basic()
        chosen = alice.decision_handler.choose_card(state, alice, "fetch", [forest, island])
        assert chosen is island


class TestCombatChoices:
    def test_all_in_without_blockers(self):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        attackers = [make_creature(), make_creature("Other")]
        assert alice.decision_handler.choose_attackers(state, alice, attackers) == attackers

    def test_holds_back_into_bigger_blocker(self):
        engine = _bot_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, bob, make_creature("Wall", 3, 3))
        bear = make_creature()
        assert alice.decision_handler.choose_attackers(state, alice, [bear]) == []

    def test_attacks_with_evasive_creature(self):
        engine = _bot_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, bob, make_creature("Wall", 3, 3))
        bird = make_creature("Bird", 1, 1, keywords=["flying"])
        assert alice.decision_handler.choose_attackers(state, alice, [bird]) == [bird]

    def test_blocks_with_smallest_killer(self):
        engine = _bot_engine()
        state = engine.state
        bob = state.player2
        attacker = make_creature("Attacker", 2, 2)
        small_killer = make_creature("Small Killer", 2, 2)
        big_killer = make_creature("Big Killer", 4, 4)
        chump = make_creature("Chump", 1, 1)
        blocks = bob.decision_handler.choose_blockers(state, bob, [attacker], [big_killer, chump, small_killer])
        assert blocks == {small_killer.id: attacker.id}

    def test_chumps_only_to_survive(self):
        engine = _bot_engine()
        state = engine.state
        bob = state.player2
        attacker = make_creature("Giant", 5, 5)
        chump = make_creature("Chump", 1, 1)
        assert bob.decision_handler.choose_blockers(state, bob, [attacker], [chump]) == {}
        bob.life = 5
        assert bob.decision_handler.choose_blockers(state, bob, [attacker], [chump]) == {chump.id: attacker.id}


class TestHandManagement:
    def test_keep_hand_land_ranges(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        bot = alice.decision_handler
        spells = [catalog.get("Grizzly Bears") for _ in range(7)]
        lands = land_deck(7)
        assert bot.keep_hand(state, alice, lands[:3] + spells[:4], 0)
        assert not bot.keep_hand(state, alice, spells, 0)
        assert not bot.keep_hand(state, alice, lands, 0)
        # Effective size four or less is always kept.
        assert bot.keep_hand(state, alice, lands, 3)

    def test_bottoms_excess_lands_first(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        spell = catalog.get("Grizzly Bears")
        hand = land_deck(6) + [spell]
        chosen = alice.decision_handler.choose_cards_to_bottom(state, alice, hand, 2)
        assert len(chosen) == 2
        assert all(c.is_land for c in chosen)

    def test_bottoms_cheapest_spell_when_lands_are_scarce(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        cheap, pricey = catalog.get("Lightning Bolt"), catalog.get("Shivan Dragon")
        hand = land_deck(2) + [pricey, cheap]
        chosen = alice.decision_handler.choose_cards_to_bottom(state, alice, hand, 1)
        assert chosen == [cheap]

    def test_discards_expensive_spells_first(self, catalog):
        engine = _bot_engine()
        state = engine.state
        alice = state.player1
        cheap, pricey = catalog.get("Lightning Bolt"), catalog.get("Shivan Dragon")
        land = make_basic()
        alice.hand.extend([land, cheap, pricey])
        chosen = alice.decision_handler.choose_cards_to_discard(state, alice, 2)
        assert chosen == [pricey, cheap]
