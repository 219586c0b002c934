"""Zone manipulation helpers.

Moving a card is always a transfer: it is removed from one list and
appended to another, never copied.  Event firing is the engine's job;
these helpers only mutate zones.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from duel_sim.sim.core.card_instance import CardInstance
    from duel_sim.sim.core.entities import Player
    from duel_sim.sim.core.game_state import GameState


def remove_card(zone: list[CardInstance], card: CardInstance) -> None:
    """Remove *card* (by identity) from *zone*.

    Raises ``ValueError`` if the card is not there.
    """
    for i, existing in enumerate(zone):
        if existing is card:
            del zone[i]
            return
    raise ValueError(f"{card.name} ({card.id}) is not in the expected zone")


def move_card(
    card: CardInstance,
    source: list[CardInstance],
    destination: list[CardInstance],
    *,
    to_bottom: bool = True,
) -> None:
    """Move *card* from *source* to *destination*.

    ``to_bottom=False`` inserts at index 0, which is the top of a library.
    """
    remove_card(source, card)
    if to_bottom:
        destination.append(card)
    else:
        destination.insert(0, card)


def draw_card(state: GameState, player: Player) -> CardInstance | None:
    """Draw the top card of *player*'s library into their hand.

    Drawing from an empty library flags the player and runs the terminal
    check; ``None`` is returned in that case.
    """
    if not player.library:
        player.drew_from_empty_library = True
        state.record(f"{player.name} cannot draw: library is empty.")
        state.check_game_over()
        return None
    card = player.library.pop(0)
    player.hand.append(card)
    player.cards_drawn_this_turn += 1
    state.check_game_over()
    return card


def shuffle_library(state: GameState, player: Player) -> None:
    """Shuffle *player*'s library with the game's seeded RNG."""
    state.rng.shuffle(player.library)


def put_on_bottom(player: Player, cards: list[CardInstance]) -> None:
    """Move cards from the hand to the bottom of the library, in order."""
    for card in cards:
        move_card(card, player.hand, player.library)


def search_library(
    player: Player,
    predicate: Callable[[CardInstance], bool],
) -> list[CardInstance]:
    """Cards in *player*'s library matching *predicate*, in library order."""
    return [c for c in player.library if predicate(c)]


def matches_subtype_or_name(card: CardInstance, wanted: list[str]) -> bool:
    lowered = {w.lower() for w in wanted}
    if card.name.lower() in lowered:
        return True
    return any(s.lower() in lowered for s in card.subtypes)
