"""Combat: attacker and blocker declarations and combat damage.

Combat runs inside the engine's turn loop.  Declarations are asked of the
players' decision handlers and validated here; damage is dealt
simultaneously and lethal damage is left to the engine's state-based
actions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from duel_sim.ir.cards import Keyword
from duel_sim.ir.triggers import GameEvent
from duel_sim.sim.errors import IllegalActionError
from duel_sim.sim.mechanics.damage import deal_damage_to_creature, deal_damage_to_player
from duel_sim.sim.triggers import EventPayload

if TYPE_CHECKING:
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.engine import GameEngine


def can_attack(creature: CardInstance, turn: int) -> bool:
    return (
        creature.is_creature
        and not creature.is_tapped
        and not creature.has_keyword(Keyword.DEFENDER)
        and not creature.is_summoning_sick(turn)
    )


def can_block(blocker: CardInstance, attacker: CardInstance) -> bool:
    if not blocker.is_creature or blocker.is_tapped:
        return False
    if attacker.has_keyword(Keyword.FLYING):
        return blocker.has_keyword(Keyword.FLYING) or blocker.has_keyword(Keyword.REACH)
    return True


class CombatManager:
    """Runs the combat steps for the engine that owns it."""

    def __init__(self, engine: GameEngine) -> None:
        self.engine = engine

    @property
    def state(self):
        return self.engine.state

    # -- declarations --------------------------------------------------------

    def declare_attackers(self) -> list[CardInstance]:
        state = self.state
        attacker_player = state.active_player
        defender = state.non_active_player
        eligible = [c for c in attacker_player.creatures if can_attack(c, state.turn)]
        if not eligible:
            return []

        chosen = attacker_player.decision_handler.choose_attackers(
            state, attacker_player, list(eligible),
        )
        for card in chosen:
            if not any(card is e for e in eligible):
                raise IllegalActionError(attacker_player.name, card, "not an eligible attacker")
        if len({c.id for c in chosen}) != len(chosen):
            raise IllegalActionError(attacker_player.name, chosen, "duplicate attacker")
        if not chosen:
            return []

        for card in chosen:
            if not card.has_keyword(Keyword.VIGILANCE):
                card.is_tapped = True
            state.combat.attacker_ids.append(card.id)
        names = ", ".join(c.name for c in chosen)
        state.record(f"{attacker_player.name} attacks {defender.name} with {names}.")

        for card in chosen:
            self.engine.fire(
                EventPayload(
                    GameEvent.ATTACKS,
                    source=card,
                    source_controller=attacker_player,
                    player=attacker_player,
                ),
            )
        return chosen

    def declare_blockers(self) -> dict[str, str]:
        state = self.state
        defender = state.non_active_player
        attackers = self._current_attackers()
        state.combat.blockers_declared = True
        candidates = [c for c in defender.creatures if not c.is_tapped]
        if not attackers or not candidates:
            return {}

        blocks = defender.decision_handler.choose_blockers(
            state, defender, list(attackers), list(candidates),
        )
        by_id = {c.id: c for c in attackers}
        for blocker_id, attacker_id in blocks.items():
            blocker = next((c for c in candidates if c.id == blocker_id), None)
            attacker = by_id.get(attacker_id)
            if blocker is None or attacker is None or not can_block(blocker, attacker):
                raise IllegalActionError(
                    defender.name, (blocker_id, attacker_id), "illegal block",
                )

        for blocker_id, attacker_id in blocks.items():
            state.combat.blocks.setdefault(attacker_id, []).append(blocker_id)
            blocker = next(c for c in candidates if c.id == blocker_id)
            state.record(f"{blocker.name} blocks {by_id[attacker_id].name}.")
        return dict(blocks)

    # -- damage --------------------------------------------------------------

    def deal_combat_damage(self) -> None:
        state = self.state
        attacker_player = state.active_player
        defender = state.non_active_player
        hit_player: list[CardInstance] = []

        for attacker in self._current_attackers():
            if state.combat.is_blocked(attacker.id):
                blockers = [
                    found[0]
                    for bid in state.combat.blocks.get(attacker.id, [])
                    if (found := state.find_permanent(bid)) is not None
                ]
                self._fight(attacker, blockers)
            else:
                dealt = deal_damage_to_player(state, attacker, defender, attacker.current_power)
                if dealt:
                    hit_player.append(attacker)

        self.engine.check_state_based_actions(0)

        for attacker in hit_player:
            self.engine.fire(
                EventPayload(
                    GameEvent.COMBAT_DAMAGE,
                    source=attacker,
                    source_controller=attacker_player,
                    player=attacker_player,
                ),
            )

    def _fight(self, attacker: CardInstance, blockers: list[CardInstance]) -> None:
        """Attacker splits its power over blockers in declaration order,
        assigning lethal damage to each before moving on."""
        state = self.state
        remaining = attacker.current_power
        for i, blocker in enumerate(blockers):
            if remaining <= 0:
                break
            lethal = max(0, blocker.current_toughness - blocker.damage_marked)
            assigned = remaining if i == len(blockers) - 1 else min(remaining, lethal)
            deal_damage_to_creature(state, attacker, blocker, assigned)
            remaining -= assigned
        for blocker in blockers:
            deal_damage_to_creature(state, blocker, attacker, blocker.current_power)

    def _current_attackers(self) -> list[CardInstance]:
        attackers: list[CardInstance] = []
        for attacker_id in self.state.combat.attacker_ids:
            found = self.state.find_permanent(attacker_id)
            if found is not None:
                attackers.append(found[0])
        return attackers