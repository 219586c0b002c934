"""Tests for the per-action legality table."""

from duel_sim.ir.mana import ManaColor
from duel_sim.sim.actions import (
    ActionType,
    GameAction,
    has_sorcery_timing,
    legal_actions,
    legal_actions_of_type,
)
from duel_sim.sim.core.action_stack import StackItem, StackItemKind
from duel_sim.sim.core.game_state import Phase
from tests.sim.conftest import at_phase, make_basic, make_creature, make_engine, put_into_play


def _ids(actions: list[GameAction]) -> list[str | None]:
    return [a.card_id for a in actions]


class TestPassAndTiming:
    def test_pass_always_first(self):
        engine = make_engine()
        state = engine.state
        for player in state.players:
            actions = legal_actions(state, player)
            assert actions[0].is_pass

    def test_only_pass_after_game_over(self, catalog):
        engine = make_engine()
        state = engine.state
        state.player1.hand.append(catalog.get("Forest"))
        at_phase(engine, Phase.MAIN_1, state.player1)
        state.player2.life = 0
        state.check_game_over()
        assert legal_actions(state, state.player1) == [GameAction.pass_priority(state.player1.id)]

    def test_sorcery_timing(self):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        at_phase(engine, Phase.MAIN_1, alice)
        assert has_sorcery_timing(state, alice)
        assert not has_sorcery_timing(state, bob)
        at_phase(engine, Phase.BEGIN_COMBAT, alice)
        assert not has_sorcery_timing(state, alice)


class TestLandAndTap:
    def test_play_land_only_once_per_turn(self, catalog):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        forest = catalog.get("Forest")
        alice.hand.append(forest)
        at_phase(engine, Phase.MAIN_1, alice)
        assert _ids(legal_actions_of_type(state, alice, ActionType.PLAY_LAND)) == [forest.id]
        alice.lands_played_this_turn = 1
        assert legal_actions_of_type(state, alice, ActionType.PLAY_LAND) == []

    def test_no_land_on_opponents_turn(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        alice.hand.append(catalog.get("Forest"))
        at_phase(engine, Phase.MAIN_1, bob)
        assert legal_actions_of_type(state, alice, ActionType.PLAY_LAND) == []

    def test_one_tap_action_per_color(self, catalog):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        put_into_play(engine, alice, catalog.get("Karplusan Forest"))
        taps = legal_actions_of_type(state, alice, ActionType.TAP_CARD)
        assert [a.mana_color for a in taps] == [ManaColor.COLORLESS, ManaColor.RED, ManaColor.GREEN]

    def test_tapped_land_offers_nothing(self):
        engine = make_engine()
        state = engine.state
        forest = put_into_play(engine, state.player1, make_basic())
        forest.is_tapped = True
        assert legal_actions_of_type(state, state.player1, ActionType.TAP_CARD) == []

    def test_untap_offered_while_mana_floats(self):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        forest = put_into_play(engine, alice, make_basic())
        tap = legal_actions_of_type(state, alice, ActionType.TAP_CARD)[0]
        engine.execute_action(alice, tap)
        assert _ids(legal_actions_of_type(state, alice, ActionType.UNTAP_CARD)) == [forest.id]


class TestCastTiming:
    def test_sorcery_not_castable_on_opponents_turn(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        divination = catalog.get("Divination")
        alice.hand.append(divination)
        alice.mana_pool.add(ManaColor.BLUE, 3)
        at_phase(engine, Phase.END_STEP, bob)
        assert legal_actions_of_type(state, alice, ActionType.CAST_SPELL) == []
        at_phase(engine, Phase.MAIN_1, alice)
        assert _ids(legal_actions_of_type(state, alice, ActionType.CAST_SPELL)) == [divination.id]

    def test_instant_castable_on_opponents_turn(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        opt = catalog.get("Opt")
        alice.hand.append(opt)
        alice.mana_pool.add(ManaColor.BLUE)
        at_phase(engine, Phase.END_STEP, bob)
        assert _ids(legal_actions_of_type(state, alice, ActionType.CAST_SPELL)) == [opt.id]

    def test_flash_creature_castable_on_opponents_turn(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        bowmasters = catalog.get("Orcish Bowmasters")
        alice.hand.append(bowmasters)
        alice.mana_pool.add(ManaColor.BLACK, 2)
        at_phase(engine, Phase.DECLARE_ATTACKERS, bob)
        assert _ids(legal_actions_of_type(state, alice, ActionType.CAST_SPELL)) == [bowmasters.id]

    def test_sorcery_speed_needs_empty_stack(self, catalog):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        alice.hand.append(catalog.get("Grizzly Bears"))
        alice.mana_pool.add(ManaColor.GREEN, 2)
        at_phase(engine, Phase.MAIN_1, alice)
        shock = catalog.get("Shock")
        state.stack.push(StackItem(kind=StackItemKind.SPELL, card=shock, controller_id=alice.id))
        assert legal_actions_of_type(state, alice, ActionType.CAST_SPELL) == []

    def test_unaffordable_spell_not_offered(self, catalog):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        alice.hand.append(catalog.get("Counterspell"))
        alice.mana_pool.add(ManaColor.BLUE)
        at_phase(engine, Phase.MAIN_1, alice)
        assert legal_actions_of_type(state, alice, ActionType.CAST_SPELL) == []

    def test_adventure_timing_follows_adventure_type(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        giant = catalog.get("Bonecrusher Giant")
        alice.hand.append(giant)
        alice.mana_pool.add(ManaColor.RED, 2)
        at_phase(engine, Phase.END_STEP, bob)
        assert _ids(legal_actions_of_type(state, alice, ActionType.CAST_ADVENTURE)) == [giant.id]
        assert legal_actions_of_type(state, alice, ActionType.CAST_SPELL) == []


class TestInstantSpeedAbilities:
    def test_fetch_legal_on_opponents_turn(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        delta = put_into_play(engine, alice, catalog.get("Polluted Delta"))
        at_phase(engine, Phase.END_STEP, bob)
        assert _ids(legal_actions_of_type(state, alice, ActionType.ACTIVATE_FETCH)) == [delta.id]

    def test_cycling_legal_on_opponents_turn(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        tusker = catalog.get("Krosan Tusker")
        alice.hand.append(tusker)
        alice.mana_pool.add(ManaColor.GREEN, 3)
        at_phase(engine, Phase.UPKEEP, bob)
        assert _ids(legal_actions_of_type(state, alice, ActionType.CYCLE)) == [tusker.id]

    def test_tap_ability_needs_untapped_unsick_creature(self, catalog):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        sorcerer = put_into_play(engine, alice, catalog.get("Prodigal Sorcerer"), sick=True)
        assert legal_actions_of_type(state, alice, ActionType.ACTIVATE_ABILITY) == []
        sorcerer.entered_turn = state.turn - 1
        assert _ids(legal_actions_of_type(state, alice, ActionType.ACTIVATE_ABILITY)) == [sorcerer.id]

    def test_sacrifice_ability_ignores_sickness(self, catalog):
        engine = make_engine()
        state = engine.state
        fanatic = put_into_play(engine, state.player1, catalog.get("Mogg Fanatic"), sick=True)
        assert _ids(legal_actions_of_type(state, state.player1, ActionType.ACTIVATE_ABILITY)) == [fanatic.id]

    def test_flashback_of_instant_any_time(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        think = catalog.get("Think Twice")
        alice.graveyard.append(think)
        alice.mana_pool.add(ManaColor.BLUE, 3)
        at_phase(engine, Phase.END_STEP, bob)
        assert _ids(legal_actions_of_type(state, alice, ActionType.FLASHBACK)) == [think.id]


class TestLoyaltyAndNinjutsu:
    def test_loyalty_once_per_turn_and_not_below_zero(self, catalog):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        liliana = put_into_play(engine, alice, catalog.get("Liliana of the Veil"))
        at_phase(engine, Phase.MAIN_1, alice)
        liliana.loyalty_counters = 1
        offered = legal_actions_of_type(state, alice, ActionType.ACTIVATE_LOYALTY_ABILITY)
        assert [a.ability_index for a in offered] == [0]
        liliana.loyalty_used_this_turn = True
        assert legal_actions_of_type(state, alice, ActionType.ACTIVATE_LOYALTY_ABILITY) == []

    def test_loyalty_needs_sorcery_timing(self, catalog):
        engine = make_engine()
        state = engine.state
        alice, bob = state.players
        put_into_play(engine, alice, catalog.get("Liliana of the Veil"))
        at_phase(engine, Phase.END_STEP, bob)
        assert legal_actions_of_type(state, alice, ActionType.ACTIVATE_LOYALTY_ABILITY) == []

    def test_ninjutsu_only_after_blocks_with_unblocked_attacker(self, catalog):
        engine = make_engine()
        state = engine.state
        alice = state.player1
        bear = put_into_play(engine, alice, make_creature())
        ninja = catalog.get("Ninja of the Deep Hours")
        alice.hand.append(ninja)
        alice.mana_pool.add(ManaColor.BLUE, 2)
        at_phase(engine, Phase.DECLARE_ATTACKERS, alice)
        state.combat.attacker_ids.append(bear.id)
        assert legal_actions_of_type(state, alice, ActionType.NINJUTSU) == []

        state.phase = Phase.DECLARE_BLOCKERS
        state.combat.blockers_declared = True
        offered = legal_actions_of_type(state, alice, ActionType.NINJUTSU)
        assert [(a.card_id, a.target_card_id) for a in offered] == [(ninja.id, bear.id)]

        state.combat.blocks[bear.id] = ["someone"]
        assert legal_actions_of_type(state, alice, ActionType.NINJUTSU) == []
