"""Players and their mana pools."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field

from duel_sim.ir.mana import ManaColor, ManaCost
from duel_sim.sim.core.card_instance import CardInstance

ZONE_NAMES = ("library", "hand", "battlefield", "graveyard", "exile")


# ---------------------------------------------------------------------------
# ManaPool
# ---------------------------------------------------------------------------

class ManaPool(BaseModel):
    """Floating mana, emptied at the end of every step."""

    amounts: dict[ManaColor, int] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.amounts.values())

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def get(self, color: ManaColor) -> int:
        return self.amounts.get(color, 0)

    def add(self, color: ManaColor, amount: int = 1) -> None:
        self.amounts[color] = self.get(color) + amount

    def remove(self, color: ManaColor, amount: int = 1) -> None:
        """Take *amount* of *color* out of the pool.

        Raises ``ValueError`` if the pool does not hold that much.
        """
        have = self.get(color)
        if have < amount:
            raise ValueError(f"Pool holds {have} {color.value}, cannot remove {amount}")
        if have == amount:
            del self.amounts[color]
        else:
            self.amounts[color] = have - amount

    def can_pay(self, cost: ManaCost) -> bool:
        """True when every colored requirement is met and enough mana remains
        for the generic part."""
        colored = 0
        for color, needed in cost.color_requirements.items():
            if self.get(color) < needed:
                return False
            colored += needed
        return self.total - colored >= cost.generic

    def pay(self, cost: ManaCost) -> None:
        """Spend mana for *cost*: colored symbols first, then generic from
        whichever color has the most floating (ties in ``ManaColor`` order).

        Raises ``ValueError`` when the pool cannot pay.
        """
        if not self.can_pay(cost):
            raise ValueError(f"Cannot pay {cost} from pool {self.describe()}")
        for color, needed in cost.color_requirements.items():
            self.remove(color, needed)
        for _ in range(cost.generic):
            largest = max(
                (c for c in ManaColor if self.get(c) > 0),
                key=self.get,
            )
            self.remove(largest)

    def clear(self) -> None:
        self.amounts.clear()

    def describe(self) -> str:
        return "".join(
            f"{{{c.value}}}" * self.get(c) for c in ManaColor if self.get(c)
        ) or "empty"


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------

class Player(BaseModel):
    """One of the two players.

    Each zone is an ordered list that owns its cards outright.  The top of
    the library is index 0.
    """

    model_config = {"arbitrary_types_allowed": True}

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    life: int = 20

    library: list[CardInstance] = Field(default_factory=list)
    hand: list[CardInstance] = Field(default_factory=list)
    battlefield: list[CardInstance] = Field(default_factory=list)
    graveyard: list[CardInstance] = Field(default_factory=list)
    exile: list[CardInstance] = Field(default_factory=list)

    mana_pool: ManaPool = Field(default_factory=ManaPool)
    decision_handler: Any = Field(default=None, exclude=True)

    lands_played_this_turn: int = 0
    max_land_drops: int = 1
    drew_from_empty_library: bool = False
    cards_drawn_this_turn: int = 0

    # -- queries -------------------------------------------------------------

    @property
    def has_lost(self) -> bool:
        return self.life <= 0 or self.drew_from_empty_library

    @property
    def can_play_land(self) -> bool:
        return self.lands_played_this_turn < self.max_land_drops

    @property
    def creatures(self) -> list[CardInstance]:
        return [c for c in self.battlefield if c.is_creature]

    @property
    def lands(self) -> list[CardInstance]:
        return [c for c in self.battlefield if c.is_land]

    def zone(self, name: str) -> list[CardInstance]:
        if name not in ZONE_NAMES:
            raise ValueError(f"Unknown zone {name!r}")
        return getattr(self, name)

    def find_in_zone(self, name: str, card_id: str) -> CardInstance | None:
        for card in self.zone(name):
            if card.id == card_id:
                return card
        return None

    def locate(self, card_id: str) -> tuple[CardInstance, str] | None:
        """Return ``(card, zone_name)`` for a card owned by this player."""
        for name in ZONE_NAMES:
            card = self.find_in_zone(name, card_id)
            if card is not None:
                return card, name
        return None

    def total_cards(self) -> int:
        """Cards in this player's zones, tokens excepted."""
        return sum(1 for name in ZONE_NAMES for card in self.zone(name) if not card.is_token)

    # -- mutations -----------------------------------------------------------

    def adjust_life(self, delta: int) -> None:
        self.life += delta

    def reset_for_turn(self) -> None:
        self.lands_played_this_turn = 0
        self.cards_drawn_this_turn = 0
