"""Mana production, payment and tap planning."""

from __future__ import annotations

from typing import TYPE_CHECKING

from duel_sim.ir.mana import ManaColor, ManaCost
from duel_sim.sim.mechanics.damage import lose_life

if TYPE_CHECKING:
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.core.entities import ManaPool, Player
    from duel_sim.sim.core.game_state import GameState


def producible_colors(card: CardInstance) -> list[ManaColor]:
    if card.mana_ability is None:
        return []
    return card.mana_ability.produces


def can_tap_for_mana(card: CardInstance, turn: int) -> bool:
    return (
        card.mana_ability is not None
        and not card.is_tapped
        and not card.is_summoning_sick(turn)
    )


def tap_for_mana(
    state: GameState,
    player: Player,
    card: CardInstance,
    color: ManaColor,
) -> None:
    """Tap *card* for one mana of *color*.

    Pain lands cost life when tapped for a colored choice.  Raises
    ``ValueError`` if the card cannot produce *color*.
    """
    if color not in producible_colors(card):
        raise ValueError(f"{card.name} cannot produce {color.value}")
    card.is_tapped = True
    card.tapped_for = color
    player.mana_pool.add(color)
    ability = card.mana_ability
    if ability.self_damage and ability.fixed_color is None and color != ManaColor.COLORLESS:
        lose_life(state, player, ability.self_damage)


def untap_mana_source(player: Player, card: CardInstance) -> None:
    """Undo a mana tap whose mana is still floating."""
    if card.tapped_for is None:
        raise ValueError(f"{card.name} was not tapped for mana")
    player.mana_pool.remove(card.tapped_for)
    card.tapped_for = None
    card.is_tapped = False


def pay_mana(player: Player, cost: ManaCost) -> None:
    """Pay *cost* from the pool.  Raises ``ValueError`` if it cannot."""
    player.mana_pool.pay(cost)
    sync_tap_markers(player)


def sync_tap_markers(player: Player) -> None:
    """Clear "tapped for" markers whose mana has been spent.

    A source can only be untapped again while its mana is still floating,
    so after a payment the newest markers of each color are dropped until
    they match what the pool still holds.
    """
    for color in ManaColor:
        marked = [c for c in player.battlefield if c.tapped_for == color]
        excess = len(marked) - player.mana_pool.get(color)
        for card in reversed(marked):
            if excess <= 0:
                break
            card.tapped_for = None
            excess -= 1


def empty_mana_pool(player: Player) -> None:
    player.mana_pool.clear()
    for card in player.battlefield:
        card.tapped_for = None


def plan_tap_sequence(
    pool: ManaPool,
    sources: list[tuple[str, list[ManaColor]]],
    cost: ManaCost,
) -> list[tuple[str, ManaColor]] | None:
    """Choose which sources to tap, and for which color, to pay *cost*.

    *sources* pairs each untapped source id with the colors it can make.
    Floating mana is used first.  Colored requirements are covered by
    single-color sources before flexible ones; generic mana is then paid
    by the least flexible sources left.  Returns ``None`` when the cost
    cannot be met.
    """
    floating = dict(pool.amounts)
    remaining_colored: dict[ManaColor, int] = {}
    for color, needed in cost.color_requirements.items():
        used = min(needed, floating.get(color, 0))
        floating[color] = floating.get(color, 0) - used
        if needed > used:
            remaining_colored[color] = needed - used
    generic = max(0, cost.generic - sum(floating.values()))

    available = list(sources)
    plan: list[tuple[str, ManaColor]] = []

    for color, needed in remaining_colored.items():
        for _ in range(needed):
            candidates = [s for s in available if color in s[1]]
            if not candidates:
                return None
            # Fixed-color sources first, then the least flexible
            best = min(candidates, key=lambda s: len(s[1]))
            available.remove(best)
            plan.append((best[0], color))

    for _ in range(generic):
        if not available:
            return None
        best = min(available, key=lambda s: len(s[1]))
        available.remove(best)
        plan.append((best[0], best[1][0]))

    return plan
