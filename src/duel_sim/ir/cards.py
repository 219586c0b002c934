"""Card definition building blocks: type flags, keywords and ability descriptors."""

from __future__ import annotations

from enum import Enum, IntFlag

from pydantic import BaseModel, Field

from .effects import Effect
from .mana import ManaColor, ManaCost


class CardType(IntFlag):
    """Card type bit-set.  A card may combine flags (Artifact Creature)."""

    NONE = 0
    LAND = 1
    CREATURE = 2
    ENCHANTMENT = 4
    INSTANT = 8
    SORCERY = 16
    ARTIFACT = 32
    PLANESWALKER = 64


# Flags that stay on the battlefield when the spell resolves.
PERMANENT_TYPES = (
    CardType.LAND
    | CardType.CREATURE
    | CardType.ENCHANTMENT
    | CardType.ARTIFACT
    | CardType.PLANESWALKER
)

_TYPE_WORDS: dict[str, CardType] = {
    "land": CardType.LAND,
    "creature": CardType.CREATURE,
    "enchantment": CardType.ENCHANTMENT,
    "instant": CardType.INSTANT,
    "sorcery": CardType.SORCERY,
    "artifact": CardType.ARTIFACT,
    "planeswalker": CardType.PLANESWALKER,
}


def parse_type_line(type_line: str) -> tuple[CardType, list[str]]:
    """Split a type line into type flags and subtypes.

    ``"Legendary Artifact Creature — Human Wizard"`` yields
    ``(ARTIFACT | CREATURE, ["Human", "Wizard"])``.  Both the em dash and a
    plain ``-`` surrounded by spaces are accepted as the separator.
    """
    if not type_line:
        return CardType.NONE, []
    text = type_line.replace(" - ", " — ")
    main, _, sub = text.partition("—")
    flags = CardType.NONE
    for word in main.split():
        flags |= _TYPE_WORDS.get(word.lower(), CardType.NONE)
    return flags, sub.split()


class Keyword(str, Enum):
    """Keywords the simulator understands."""

    FLYING = "flying"
    REACH = "reach"
    HASTE = "haste"
    VIGILANCE = "vigilance"
    DEFENDER = "defender"
    FLASH = "flash"
    SHROUD = "shroud"
    HEXPROOF = "hexproof"


class SpellRole(str, Enum):
    """How the heuristic bot thinks about a spell."""

    PROACTIVE = "proactive"
    COUNTERSPELL = "counterspell"
    INSTANT_REMOVAL = "instant_removal"
    INSTANT_UTILITY = "instant_utility"


class ManaAbility(BaseModel):
    """A tap-for-mana ability.

    Either ``fixed_color`` (basic lands) or ``choice_colors`` (dual lands,
    pain lands) is set.
    """

    model_config = {"frozen": True}

    fixed_color: ManaColor | None = None
    choice_colors: list[ManaColor] = Field(default_factory=list)
    self_damage: int = 0
    """Life the controller loses when tapping for a colored choice (pain lands)."""

    @property
    def produces(self) -> list[ManaColor]:
        if self.fixed_color is not None:
            return [self.fixed_color]
        return list(self.choice_colors)

    @classmethod
    def fixed(cls, color: ManaColor) -> ManaAbility:
        return cls(fixed_color=color)

    @classmethod
    def choice(cls, *colors: ManaColor, self_damage: int = 0) -> ManaAbility:
        return cls(choice_colors=list(colors), self_damage=self_damage)


class FetchAbility(BaseModel):
    """Pay life, sacrifice this land, search for a land with a matching
    subtype or name and put it onto the battlefield."""

    model_config = {"frozen": True}

    search_types: list[str]
    life_cost: int = 1


class ActivatedAbility(BaseModel):
    """A non-mana activated ability of a permanent."""

    model_config = {"frozen": True}

    effect: Effect
    mana_cost: ManaCost | None = None
    tap_cost: bool = False
    sacrifice_cost: bool = False
    description: str = ""


class LoyaltyAbility(BaseModel):
    """A planeswalker ability; ``loyalty_cost`` is signed (+1, -3, ...)."""

    model_config = {"frozen": True}

    loyalty_cost: int
    effect: Effect
    description: str = ""


class AdventureSpell(BaseModel):
    """The instant or sorcery half of an adventurer card."""

    model_config = {"frozen": True}

    name: str
    mana_cost: ManaCost
    card_types: CardType = CardType.SORCERY
    effect: Effect


class StaticAbilityType(str, Enum):
    """Continuous effects a permanent applies while it is on the battlefield."""

    ANTHEM = "anthem"
    GRANT_KEYWORD = "grant_keyword"
    COST_MODIFIER = "cost_modifier"


class StaticScope(str, Enum):
    """Whose creatures or spells a static ability affects."""

    CONTROLLER = "controller"
    OPPONENT = "opponent"
    EACH_PLAYER = "each_player"


class StaticAbility(BaseModel):
    """A static ability.

    - ``ANTHEM`` adds ``power``/``toughness`` to the affected creatures.
    - ``GRANT_KEYWORD`` gives them ``keyword``.
    - ``COST_MODIFIER`` changes the generic part of the affected spells'
      costs by ``cost_change`` (negative reduces, never below zero).

    ``subtype``, ``card_types`` and ``noncreature_only`` narrow what is
    affected; ``include_self`` lets a creature buff itself.
    """

    model_config = {"frozen": True}

    ability_type: StaticAbilityType
    scope: StaticScope = StaticScope.CONTROLLER
    power: int = 0
    toughness: int = 0
    keyword: Keyword | None = None
    cost_change: int = 0
    subtype: str | None = None
    card_types: CardType = CardType.NONE
    noncreature_only: bool = False
    include_self: bool = False

    def matches(self, card) -> bool:
        """True when *card* passes the subtype and type filters."""
        if self.subtype is not None and self.subtype not in card.subtypes:
            return False
        if self.card_types and not card.card_types & self.card_types:
            return False
        if self.noncreature_only and card.is_creature:
            return False
        return True
