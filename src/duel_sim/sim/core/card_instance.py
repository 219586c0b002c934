"""Runtime card representation.

A ``CardInstance`` carries both the definitional fields of a card (name,
cost, types, triggers...) and its per-game runtime state (tapped, damage,
counters).  Decklists are lists of template instances; the runner
``clone()``s each template so the live game never touches the originals.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field

from duel_sim.ir.cards import (
    PERMANENT_TYPES,
    ActivatedAbility,
    AdventureSpell,
    CardType,
    FetchAbility,
    Keyword,
    LoyaltyAbility,
    ManaAbility,
    SpellRole,
    StaticAbility,
    parse_type_line,
)
from duel_sim.ir.effects import Effect
from duel_sim.ir.mana import ManaColor, ManaCost
from duel_sim.ir.triggers import Trigger


class CardInstance(BaseModel):
    """One physical card in one game.

    Each copy has its own ``id`` so that two copies of the same card are
    never confused, even across players.
    """

    model_config = {"arbitrary_types_allowed": True}

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    # -- definition ----------------------------------------------------------

    name: str
    type_line: str = ""
    card_types: CardType = CardType.NONE
    subtypes: list[str] = Field(default_factory=list)
    mana_cost: ManaCost | None = None
    mana_ability: ManaAbility | None = None
    power: int | None = None
    toughness: int | None = None
    keywords: list[Keyword] = Field(default_factory=list)
    triggers: list[Trigger] = Field(default_factory=list)
    is_token: bool = False
    is_legendary: bool = False
    fetch_ability: FetchAbility | None = None

    spell_effect: Effect | None = None
    """What an instant or sorcery does when it resolves."""

    spell_role: SpellRole | None = None
    """Explicit role for the bot; inferred from the card when ``None``."""

    activated_abilities: list[ActivatedAbility] = Field(default_factory=list)
    cycling_cost: ManaCost | None = None
    flashback_cost: ManaCost | None = None
    loyalty: int | None = None
    loyalty_abilities: list[LoyaltyAbility] = Field(default_factory=list)
    ninjutsu_cost: ManaCost | None = None
    adventure: AdventureSpell | None = None
    enters_tapped: bool = False
    static_abilities: list[StaticAbility] = Field(default_factory=list)

    # -- runtime -------------------------------------------------------------

    is_tapped: bool = False
    damage_marked: int = 0
    entered_turn: int | None = None
    """Turn number on which the card last entered the battlefield."""

    loyalty_counters: int = 0
    loyalty_used_this_turn: bool = False
    power_bonus: int = 0
    toughness_bonus: int = 0
    """Until-end-of-turn modifiers, cleared during cleanup."""

    static_power: int = 0
    static_toughness: int = 0
    granted_keywords: list[Keyword] = Field(default_factory=list)
    """Contributions of static abilities on the battlefield, recomputed by
    :func:`~duel_sim.sim.mechanics.statics.refresh_static_effects`."""

    on_adventure: bool = False
    tapped_for: ManaColor | None = None
    """Color this permanent was tapped for while that mana is still unspent."""

    # -- construction --------------------------------------------------------

    @classmethod
    def create(
        cls,
        name: str,
        type_line: str,
        mana_cost: str | None = None,
        **kwargs,
    ) -> CardInstance:
        """Build a card from a type line and a cost string.

        Type flags and subtypes come from *type_line*; ``"Legendary"`` in
        the type line sets ``is_legendary``.
        """
        card_types, subtypes = parse_type_line(type_line)
        kwargs.setdefault("is_legendary", "legendary" in type_line.lower())
        cost = ManaCost.parse(mana_cost) if mana_cost is not None else None
        return cls(
            name=name,
            type_line=type_line,
            card_types=card_types,
            subtypes=subtypes,
            mana_cost=cost,
            **kwargs,
        )

    def clone(self) -> CardInstance:
        """Copy the definition under a fresh id, with default runtime state."""
        copy = self.model_copy(deep=True, update={"id": uuid.uuid4().hex})
        copy.reset_runtime_state()
        return copy

    def reset_runtime_state(self) -> None:
        """Forget everything that only matters while on the battlefield."""
        self.is_tapped = False
        self.damage_marked = 0
        self.entered_turn = None
        self.loyalty_counters = 0
        self.loyalty_used_this_turn = False
        self.power_bonus = 0
        self.toughness_bonus = 0
        self.tapped_for = None
        self.static_power = 0
        self.static_toughness = 0
        self.granted_keywords = []

    # -- type queries --------------------------------------------------------

    def has_type(self, card_type: CardType) -> bool:
        return bool(self.card_types & card_type)

    @property
    def is_land(self) -> bool:
        return self.has_type(CardType.LAND)

    @property
    def is_creature(self) -> bool:
        return self.has_type(CardType.CREATURE)

    @property
    def is_instant(self) -> bool:
        return self.has_type(CardType.INSTANT)

    @property
    def is_planeswalker(self) -> bool:
        return self.has_type(CardType.PLANESWALKER)

    @property
    def is_permanent(self) -> bool:
        return self.has_type(PERMANENT_TYPES)

    @property
    def is_basic(self) -> bool:
        return "basic" in self.type_line.lower()

    @property
    def has_instant_timing(self) -> bool:
        return self.is_instant or self.has_keyword(Keyword.FLASH)

    def has_keyword(self, keyword: Keyword) -> bool:
        return keyword in self.keywords or keyword in self.granted_keywords

    # -- numbers -------------------------------------------------------------

    @property
    def cmc(self) -> int:
        return self.mana_cost.cmc if self.mana_cost is not None else 0

    @property
    def current_power(self) -> int:
        return (self.power or 0) + self.power_bonus + self.static_power

    @property
    def current_toughness(self) -> int:
        return (self.toughness or 0) + self.toughness_bonus + self.static_toughness

    @property
    def has_lethal_damage(self) -> bool:
        return self.is_creature and (
            self.current_toughness <= 0
            or self.damage_marked >= self.current_toughness
        )

    def is_summoning_sick(self, turn: int) -> bool:
        """Creatures that entered this turn cannot attack or use tap costs."""
        if not self.is_creature or self.has_keyword(Keyword.HASTE):
            return False
        return self.entered_turn is None or self.entered_turn >= turn

    def __str__(self) -> str:
        return self.name
