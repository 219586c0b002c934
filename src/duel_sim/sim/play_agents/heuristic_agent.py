"""Heuristic-based bot that plays a reasonable game without search.

The ``HeuristicBot`` is a hand-crafted policy:

- **Priority**: every candidate *plan* (the mana taps needed, followed by
  one action) gets a score; the best plan above the pass threshold wins and
  its remaining steps are queued and replayed while they stay legal.
- **Own main phase**: land drop, fetch, activated abilities that kill
  something, the most expensive proactive spell, loyalty, adventure and
  cycling.
- **Opponent's turn**: counter big spells, kill the biggest creature during
  combat or the end step, cast utility instants at the end step.
- **Combat**: attack when lethal, unopposed, evasive, safe or trading up;
  block with the smallest creature that kills the attacker, chump only to
  survive.
- **Mulligans**: keep four or fewer cards, otherwise keep when the land
  count is in range for the hand size.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Any, Iterator

from duel_sim.ir.cards import Keyword, SpellRole
from duel_sim.ir.effects import EffectType
from duel_sim.ir.mana import ManaColor
from duel_sim.sim.actions import ActionType, GameAction, can_cast_now, has_sorcery_timing
from duel_sim.sim.combat import can_block
from duel_sim.sim.core.game_state import Phase
from duel_sim.sim.mechanics.mana import can_tap_for_mana, plan_tap_sequence, producible_colors
from duel_sim.sim.mechanics.statics import spell_cost
from duel_sim.sim.play_agents.base import DecisionHandler
from duel_sim.sim.play_agents.spell_roles import classify_spell_role

if TYPE_CHECKING:
    from duel_sim.ir.effects import Effect
    from duel_sim.ir.mana import ManaCost
    from duel_sim.sim.actions import Target
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.core.entities import Player
    from duel_sim.sim.core.game_state import GameState

Plan = tuple[int, list[GameAction]]

_PASS_THRESHOLD = 0

# Base scores per kind of play; bigger wins
_SCORE_LAND = 1000
_SCORE_FETCH = 900
_SCORE_COUNTER = 850
_SCORE_NINJUTSU = 800
_SCORE_KILL_ABILITY = 700
_SCORE_REMOVAL = 600
_SCORE_HARMFUL_ADVENTURE = 510
_SCORE_PROACTIVE = 500
_SCORE_LOYALTY = 450
_SCORE_PING_ABILITY = 420
_SCORE_ADVENTURE = 400
_SCORE_UTILITY = 300
_SCORE_CYCLE = 100

# Opponent spells cheaper than this are let through
_COUNTER_MIN_CMC = 2

# Acceptable land counts by effective hand size
_LAND_RANGES: dict[int, tuple[int, int]] = {
    7: (2, 5),
    6: (2, 4),
    5: (1, 4),
}

_DAMAGE_EFFECTS = frozenset({EffectType.DEAL_DAMAGE, EffectType.DAMAGE_TARGET_CREATURE})
_CREATURE_TARGET_EFFECTS = frozenset({
    EffectType.DAMAGE_TARGET_CREATURE,
    EffectType.DESTROY_TARGET_CREATURE,
    EffectType.BOUNCE_TARGET_CREATURE,
})
_COMBAT_OR_END = frozenset({
    Phase.BEGIN_COMBAT,
    Phase.DECLARE_ATTACKERS,
    Phase.DECLARE_BLOCKERS,
    Phase.COMBAT_DAMAGE,
    Phase.END_COMBAT,
    Phase.END_STEP,
})


# ---------------------------------------------------------------------------
# Small evaluation helpers
# ---------------------------------------------------------------------------

def needed_colors(player: Player) -> set[ManaColor]:
    """Colors required by the spells in *player*'s hand."""
    colors: set[ManaColor] = set()
    for card in player.hand:
        if not card.is_land and card.mana_cost is not None:
            colors.update(card.mana_cost.color_requirements)
    return colors


def score_land(land: CardInstance, wanted: set[ManaColor]) -> int:
    """Basic making a needed color > nonbasic making one > basic > other.

    Lands that cost life to tap are marked down.
    """
    produces = set(producible_colors(land))
    makes_needed = bool(produces & wanted)
    score = 0
    if land.is_basic and makes_needed:
        score += 100
    elif makes_needed:
        score += 80
    elif land.is_basic:
        score += 60
    if land.mana_ability is not None and land.mana_ability.self_damage:
        score -= 30
    return score


def targetable_enemy_creatures(player: Player, opponent: Player) -> list[CardInstance]:
    return [
        c for c in opponent.creatures
        if not c.has_keyword(Keyword.SHROUD) and not c.has_keyword(Keyword.HEXPROOF)
    ]


def _remaining_toughness(creature: CardInstance) -> int:
    return creature.current_toughness - creature.damage_marked


def _threat_key(creature: CardInstance) -> tuple[int, int]:
    return creature.current_power, creature.cmc


# ---------------------------------------------------------------------------
# HeuristicBot
# ---------------------------------------------------------------------------

class HeuristicBot(DecisionHandler):
    """Bot that plays by fixed priorities.

    Parameters
    ----------
    action_delay:
        Seconds to pause before each non-pass action.
    **kwargs:
        Absorbs extra kwargs from the runners.
    """

    def __init__(self, action_delay: float = 0.0, **kwargs: Any) -> None:
        super().__init__(action_delay)
        self._planned: deque[GameAction] = deque()

    # ==================================================================
    # Priority
    # ==================================================================

    def choose_action(
        self,
        state: GameState,
        player: Player,
        legal: list[GameAction],
    ) -> GameAction:
        while self._planned:
            action = self._planned.popleft()
            if action in legal:
                self.pause()
                return action
            self._planned.clear()

        best_score = _PASS_THRESHOLD
        best: list[GameAction] | None = None
        for score, steps in self._candidate_plans(state, player, legal):
            if score > best_score and steps and steps[0] in legal:
                best_score, best = score, steps

        if best is None:
            return next(a for a in legal if a.is_pass)
        self._planned.extend(best[1:])
        self.pause()
        return best[0]

    def _candidate_plans(
        self,
        state: GameState,
        player: Player,
        legal: list[GameAction],
    ) -> Iterator[Plan]:
        opponent = state.opponent_of(player)
        if state.active_player_id == player.id:
            if has_sorcery_timing(state, player):
                yield from self._land_plans(player, legal)
                yield from self._fetch_plans(player, legal)
                yield from self._ability_plans(state, player, opponent)
                yield from self._proactive_plans(state, player, opponent)
                yield from self._loyalty_plans(state, player, opponent, legal)
                yield from self._adventure_plans(state, player, opponent)
                yield from self._cycle_plans(state, player)
            elif state.phase == Phase.DECLARE_BLOCKERS:
                yield from self._ninjutsu_plans(state, player)
        else:
            yield from self._reaction_plans(state, player, opponent)

    # -- own main phase ------------------------------------------------------

    def _land_plans(self, player: Player, legal: list[GameAction]) -> Iterator[Plan]:
        wanted = needed_colors(player)
        for action in legal:
            if action.action_type != ActionType.PLAY_LAND:
                continue
            land = player.find_in_zone("hand", action.card_id)
            yield _SCORE_LAND + score_land(land, wanted), [action]

    def _fetch_plans(self, player: Player, legal: list[GameAction]) -> Iterator[Plan]:
        if not any(not c.is_land and c.mana_cost is not None for c in player.hand):
            return
        for action in legal:
            if action.action_type == ActionType.ACTIVATE_FETCH:
                yield _SCORE_FETCH, [action]

    def _ability_plans(
        self,
        state: GameState,
        player: Player,
        opponent: Player,
    ) -> Iterator[Plan]:
        enemies = targetable_enemy_creatures(player, opponent)
        for card in player.battlefield:
            for index, ability in enumerate(card.activated_abilities):
                if ability.mana_cost is None and not ability.tap_cost and not ability.sacrifice_cost:
                    continue
                if ability.tap_cost and (card.is_tapped or card.is_summoning_sick(state.turn)):
                    continue

                effect = ability.effect
                if effect.effect_type in _DAMAGE_EFFECTS and any(
                    _remaining_toughness(c) <= effect.amount for c in enemies
                ):
                    score = _SCORE_KILL_ABILITY
                elif ability.tap_cost and not ability.sacrifice_cost and effect.effect_type in (
                    EffectType.DEAL_DAMAGE, EffectType.DAMAGE_OPPONENT, EffectType.DRAIN,
                ):
                    score = _SCORE_PING_ABILITY
                else:
                    continue

                action = GameAction(
                    action_type=ActionType.ACTIVATE_ABILITY,
                    player_id=player.id,
                    card_id=card.id,
                    ability_index=index,
                )
                steps = self._pay_then(state, player, ability.mana_cost, action)
                if steps is not None:
                    yield score, steps

    def _proactive_plans(
        self,
        state: GameState,
        player: Player,
        opponent: Player,
    ) -> Iterator[Plan]:
        for card, action_type, cost in self._castable_cards(state, player):
            if classify_spell_role(card) != SpellRole.PROACTIVE:
                continue
            if card.is_legendary and any(c.name == card.name for c in player.battlefield):
                continue
            if not self._worth_resolving(state, player, opponent, card.spell_effect):
                continue
            action = GameAction(action_type=action_type, player_id=player.id, card_id=card.id)
            steps = self._pay_then(state, player, cost, action)
            if steps is not None:
                yield _SCORE_PROACTIVE + card.cmc, steps

    def _loyalty_plans(
        self,
        state: GameState,
        player: Player,
        opponent: Player,
        legal: list[GameAction],
    ) -> Iterator[Plan]:
        for action in legal:
            if action.action_type != ActionType.ACTIVATE_LOYALTY_ABILITY:
                continue
            walker = player.find_in_zone("battlefield", action.card_id)
            ability = walker.loyalty_abilities[action.ability_index]
            if not self._worth_resolving(state, player, opponent, ability.effect):
                continue
            if ability.effect.is_harmful:
                yield _SCORE_LOYALTY + 20, [action]
            elif ability.loyalty_cost >= 0:
                yield _SCORE_LOYALTY, [action]
            elif walker.loyalty_counters + ability.loyalty_cost > 0:
                yield _SCORE_LOYALTY - 10, [action]

    def _adventure_plans(
        self,
        state: GameState,
        player: Player,
        opponent: Player,
    ) -> Iterator[Plan]:
        for card in player.hand:
            adventure = card.adventure
            if adventure is None:
                continue
            if not self._worth_resolving(state, player, opponent, adventure.effect):
                continue
            base = _SCORE_HARMFUL_ADVENTURE if adventure.effect.is_harmful else _SCORE_ADVENTURE
            action = GameAction(
                action_type=ActionType.CAST_ADVENTURE, player_id=player.id, card_id=card.id,
            )
            cost = spell_cost(state, player, card, adventure.mana_cost)
            steps = self._pay_then(state, player, cost, action)
            if steps is not None:
                yield base + adventure.mana_cost.cmc, steps

    def _cycle_plans(self, state: GameState, player: Player) -> Iterator[Plan]:
        for card in player.hand:
            if card.cycling_cost is None:
                continue
            if (
                card.mana_cost is not None
                and self._tap_plan(state, player, spell_cost(state, player, card, card.mana_cost)) is not None
            ):
                continue
            action = GameAction(action_type=ActionType.CYCLE, player_id=player.id, card_id=card.id)
            steps = self._pay_then(state, player, card.cycling_cost, action)
            if steps is not None:
                yield _SCORE_CYCLE, steps

    # -- combat tricks -------------------------------------------------------

    def _ninjutsu_plans(self, state: GameState, player: Player) -> Iterator[Plan]:
        if not state.combat.blockers_declared:
            return
        unblocked = [
            c for c in player.battlefield
            if c.id in state.combat.unblocked_attacker_ids()
        ]
        for ninja in player.hand:
            if ninja.ninjutsu_cost is None:
                continue
            for attacker in sorted(unblocked, key=lambda c: c.current_power):
                if attacker.current_power > ninja.current_power:
                    continue
                action = GameAction(
                    action_type=ActionType.NINJUTSU,
                    player_id=player.id,
                    card_id=ninja.id,
                    target_card_id=attacker.id,
                )
                steps = self._pay_then(state, player, ninja.ninjutsu_cost, action)
                if steps is not None:
                    yield _SCORE_NINJUTSU + ninja.current_power - attacker.current_power, steps
                break

    # -- opponent's turn -----------------------------------------------------

    def _reaction_plans(
        self,
        state: GameState,
        player: Player,
        opponent: Player,
    ) -> Iterator[Plan]:
        top = state.stack.peek()
        if top is not None:
            if top.is_spell and top.controller_id != player.id and top.card.cmc >= _COUNTER_MIN_CMC:
                for card, action_type, cost in self._castable_cards(state, player):
                    if classify_spell_role(card) != SpellRole.COUNTERSPELL:
                        continue
                    if not can_cast_now(state, player, card):
                        continue
                    action = GameAction(action_type=action_type, player_id=player.id, card_id=card.id)
                    steps = self._pay_then(state, player, cost, action)
                    if steps is not None:
                        yield _SCORE_COUNTER, steps
            return

        if state.phase in _COMBAT_OR_END:
            enemies = targetable_enemy_creatures(player, opponent)
            if enemies:
                biggest = max(c.current_power for c in enemies)
                yield from self._instant_plans(
                    state, player, SpellRole.INSTANT_REMOVAL, _SCORE_REMOVAL + biggest,
                )
        if state.phase == Phase.END_STEP:
            yield from self._instant_plans(state, player, SpellRole.INSTANT_UTILITY, _SCORE_UTILITY)

    def _instant_plans(
        self,
        state: GameState,
        player: Player,
        role: SpellRole,
        score: int,
    ) -> Iterator[Plan]:
        opponent = state.opponent_of(player)
        for card, action_type, cost in self._castable_cards(state, player):
            if classify_spell_role(card) != role or not can_cast_now(state, player, card):
                continue
            if not self._worth_resolving(state, player, opponent, card.spell_effect):
                continue
            action = GameAction(action_type=action_type, player_id=player.id, card_id=card.id)
            steps = self._pay_then(state, player, cost, action)
            if steps is not None:
                yield score, steps

    # -- plan building -------------------------------------------------------

    @staticmethod
    def _castable_cards(
        state: GameState,
        player: Player,
    ) -> list[tuple[CardInstance, ActionType, ManaCost]]:
        """Spells the player could cast from any zone, with the action and
        the cost to pay after static cost modifiers."""
        found: list[tuple[CardInstance, ActionType, ManaCost]] = []
        for card in player.hand:
            if not card.is_land and card.mana_cost is not None:
                found.append((card, ActionType.CAST_SPELL, spell_cost(state, player, card, card.mana_cost)))
        for card in player.exile:
            if card.on_adventure and card.mana_cost is not None:
                found.append((card, ActionType.CAST_SPELL, spell_cost(state, player, card, card.mana_cost)))
        for card in player.graveyard:
            if card.flashback_cost is not None:
                found.append((card, ActionType.FLASHBACK, spell_cost(state, player, card, card.flashback_cost)))
        return found

    @staticmethod
    def _tap_plan(
        state: GameState,
        player: Player,
        cost: ManaCost,
    ) -> list[tuple[str, ManaColor]] | None:
        sources = [
            (card.id, producible_colors(card))
            for card in player.battlefield
            if can_tap_for_mana(card, state.turn)
        ]
        return plan_tap_sequence(player.mana_pool, sources, cost)

    def _pay_then(
        self,
        state: GameState,
        player: Player,
        cost: ManaCost | None,
        action: GameAction,
    ) -> list[GameAction] | None:
        """Taps needed for *cost* followed by *action*, or ``None``."""
        if cost is None:
            return [action]
        taps = self._tap_plan(state, player, cost)
        if taps is None:
            return None
        steps = [
            GameAction(
                action_type=ActionType.TAP_CARD,
                player_id=player.id,
                card_id=card_id,
                mana_color=color,
            )
            for card_id, color in taps
        ]
        steps.append(action)
        return steps

    @staticmethod
    def _worth_resolving(
        state: GameState,
        player: Player,
        opponent: Player,
        effect: Effect | None,
    ) -> bool:
        """Whether *effect* would do something useful right now."""
        if effect is None:
            return True
        kind = effect.effect_type
        if kind in _CREATURE_TARGET_EFFECTS:
            return bool(targetable_enemy_creatures(player, opponent))
        if kind == EffectType.COUNTER_TARGET_SPELL:
            return any(
                item.is_spell and item.controller_id != player.id
                for item in state.stack.items()
            )
        if kind == EffectType.OPPONENT_DISCARDS:
            return bool(opponent.hand)
        if kind == EffectType.RETURN_FROM_GRAVEYARD_TO_HAND:
            return any(c.is_creature for c in player.graveyard)
        return True

    # ==================================================================
    # Choices during resolution
    # ==================================================================

    def choose_target(
        self,
        state: GameState,
        player: Player,
        effect: Effect,
        options: list[Target],
    ) -> Target:
        if effect.effect_type == EffectType.COUNTER_TARGET_SPELL:
            return options[0]

        opponent = state.opponent_of(player)
        mine: list[tuple[CardInstance, Target]] = []
        theirs: list[tuple[CardInstance, Target]] = []
        for option in options:
            if option.card_id is None:
                continue
            found = state.find_permanent(option.card_id)
            if found is None:
                continue
            card, owner = found
            (mine if owner.id == player.id else theirs).append((card, option))
        player_option = {o.player_id: o for o in options if o.is_player}

        if effect.is_harmful:
            if effect.effect_type in _DAMAGE_EFFECTS:
                killable = [
                    pair for pair in theirs
                    if _remaining_toughness(pair[0]) <= effect.amount
                ]
                if killable:
                    return max(killable, key=lambda p: _threat_key(p[0]))[1]
                if opponent.id in player_option:
                    return player_option[opponent.id]
            if theirs:
                return max(theirs, key=lambda p: _threat_key(p[0]))[1]
            if opponent.id in player_option:
                return player_option[opponent.id]
            if mine:
                return min(mine, key=lambda p: _threat_key(p[0]))[1]
            return options[0]

        if mine:
            return max(mine, key=lambda p: _threat_key(p[0]))[1]
        if player.id in player_option:
            return player_option[player.id]
        return options[0]

    def choose_card(
        self,
        state: GameState,
        player: Player,
        prompt: str,
        options: list[CardInstance],
    ) -> CardInstance | None:
        if not options:
            return None
        wanted = needed_colors(player)
        return max(
            options,
            key=lambda c: (score_land(c, wanted) if c.is_land else 0, c.cmc),
        )

    # ==================================================================
    # Combat
    # ==================================================================

    def choose_attackers(
        self,
        state: GameState,
        player: Player,
        eligible: list[CardInstance],
    ) -> list[CardInstance]:
        if not eligible:
            return []
        opponent = state.opponent_of(player)
        blockers = [c for c in opponent.creatures if not c.is_tapped]

        total_power = sum(c.current_power for c in eligible)
        if total_power >= opponent.life or not blockers:
            return list(eligible)

        attackers: list[CardInstance] = []
        for attacker in eligible:
            able = [b for b in blockers if can_block(b, attacker)]
            if not able:
                # Evasive: nothing can block it
                attackers.append(attacker)
                continue
            if not any(b.current_power >= attacker.current_toughness for b in able):
                attackers.append(attacker)
                continue
            if any(attacker.current_power >= b.current_toughness for b in able):
                attackers.append(attacker)
        return attackers

    def choose_blockers(
        self,
        state: GameState,
        player: Player,
        attackers: list[CardInstance],
        candidates: list[CardInstance],
    ) -> dict[str, str]:
        assignments: dict[str, str] = {}
        remaining = sum(a.current_power for a in attackers)

        for attacker in sorted(attackers, key=lambda a: a.current_power, reverse=True):
            free = [
                b for b in candidates
                if b.id not in assignments and can_block(b, attacker)
            ]
            killers = [b for b in free if b.current_power >= attacker.current_toughness]
            if killers:
                chosen = min(killers, key=lambda b: b.current_power)
            elif remaining >= player.life and free:
                chosen = min(free, key=lambda b: b.current_power)
            else:
                continue
            assignments[chosen.id] = attacker.id
            remaining -= attacker.current_power
        return assignments

    # ==================================================================
    # Hand management
    # ==================================================================

    def keep_hand(
        self,
        state: GameState,
        player: Player,
        hand: list[CardInstance],
        mulligans: int,
    ) -> bool:
        effective = len(hand) - mulligans
        if effective <= 4:
            return True
        lands = sum(1 for c in hand if c.is_land)
        low, high = _LAND_RANGES[min(effective, 7)]
        return low <= lands <= high

    def choose_cards_to_bottom(
        self,
        state: GameState,
        player: Player,
        hand: list[CardInstance],
        count: int,
    ) -> list[CardInstance]:
        chosen: list[CardInstance] = []
        remaining = list(hand)

        # Excess lands first
        target_lands = max(2, round(len(remaining) * 0.4))
        lands = [c for c in remaining if c.is_land]
        while len(chosen) < count and len(lands) > target_lands:
            land = lands.pop(0)
            chosen.append(land)
            remaining.remove(land)

        # Then the cheapest spells
        spells = sorted((c for c in remaining if not c.is_land), key=lambda c: c.cmc)
        for spell in spells:
            if len(chosen) >= count:
                break
            chosen.append(spell)
            remaining.remove(spell)

        for card in remaining:
            if len(chosen) >= count:
                break
            chosen.append(card)
        return chosen

    def choose_cards_to_discard(
        self,
        state: GameState,
        player: Player,
        count: int,
    ) -> list[CardInstance]:
        spells = sorted(
            (c for c in player.hand if not c.is_land),
            key=lambda c: c.cmc,
            reverse=True,
        )
        lands = [c for c in player.hand if c.is_land]
        return (spells + lands)[:count]
