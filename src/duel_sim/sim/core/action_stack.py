"""The LIFO stack of spells and abilities awaiting resolution.

Spells own their card while it is on the stack: the card has left its
previous zone and lands in a new one when the item resolves or is
countered.  Abilities refer to their source, wherever it now is.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from duel_sim.ir.effects import Effect
from duel_sim.sim.core.card_instance import CardInstance


# ---------------------------------------------------------------------------
# StackItem (value object)
# ---------------------------------------------------------------------------

class StackItemKind(str, Enum):
    SPELL = "spell"
    ABILITY = "ability"


class StackItem(BaseModel):
    """One spell or ability on the stack.

    Parameters
    ----------
    kind:
        Spell or ability.
    card:
        For spells, the card being cast.  For abilities, the source card,
        which stays in its own zone and is only referenced here.
    controller_id:
        The player who cast or activated it.
    effect:
        The effect that runs on resolution (``None`` for permanent spells
        without one).
    from_flashback:
        The spell was cast from the graveyard and is exiled on resolution.
    as_adventure:
        The adventure half was cast; the card goes on an adventure.
    """

    model_config = {"arbitrary_types_allowed": True}

    kind: StackItemKind
    card: CardInstance
    controller_id: str
    effect: Effect | None = None
    from_flashback: bool = False
    as_adventure: bool = False
    description: str = ""

    @property
    def is_spell(self) -> bool:
        return self.kind == StackItemKind.SPELL

    @property
    def name(self) -> str:
        if self.as_adventure and self.card.adventure is not None:
            return self.card.adventure.name
        return self.card.name


# ---------------------------------------------------------------------------
# ActionStack
# ---------------------------------------------------------------------------

class ActionStack:
    """LIFO stack of ``StackItem`` objects.

    This is a plain Python class (not a Pydantic model) because it holds
    mutable internal state that is never serialized.
    """

    def __init__(self) -> None:
        self._items: list[StackItem] = []

    def push(self, item: StackItem) -> None:
        self._items.append(item)

    def pop(self) -> StackItem:
        """Remove and return the top item.  Raises ``IndexError`` when empty."""
        if not self._items:
            raise IndexError("pop from an empty stack")
        return self._items.pop()

    def peek(self) -> StackItem | None:
        return self._items[-1] if self._items else None

    def remove(self, item: StackItem) -> None:
        """Take a specific item off the stack (countered spells)."""
        for i, existing in enumerate(self._items):
            if existing is item:
                del self._items[i]
                return
        raise ValueError(f"{item.name} is not on the stack")

    def items(self) -> list[StackItem]:
        """Items from bottom to top."""
        return list(self._items)

    @property
    def is_empty(self) -> bool:
        return len(self._items) == 0

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"ActionStack(depth={len(self._items)})"
