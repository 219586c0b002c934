"""Card catalog -- loads card definitions and preset decks and builds decklists.

The bundled definitions live in ``data/cards.json`` next to this module.
Each entry is parsed into a template :class:`CardInstance`; decks are built
from clones of the templates so every card in play has its own identity.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from duel_sim.ir.cards import (
    ActivatedAbility,
    AdventureSpell,
    FetchAbility,
    Keyword,
    LoyaltyAbility,
    ManaAbility,
    SpellRole,
    StaticAbility,
    parse_type_line,
)
from duel_sim.ir.effects import Effect
from duel_sim.ir.mana import ManaCost
from duel_sim.ir.triggers import Trigger
from duel_sim.sim.core.card_instance import CardInstance

logger = logging.getLogger(__name__)

_DEFAULT_CARDS_PATH = Path(__file__).resolve().parent / "data" / "cards.json"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _parse_cost(raw: str | None) -> ManaCost | None:
    return ManaCost.parse(raw) if raw is not None else None


def _parse_activated(raw: dict[str, Any]) -> ActivatedAbility:
    return ActivatedAbility(
        effect=Effect.model_validate(raw["effect"]),
        mana_cost=_parse_cost(raw.get("mana_cost")),
        tap_cost=raw.get("tap_cost", False),
        sacrifice_cost=raw.get("sacrifice_cost", False),
        description=raw.get("description", ""),
    )


def _parse_adventure(raw: dict[str, Any]) -> AdventureSpell:
    card_types, _ = parse_type_line(raw.get("type_line", "Sorcery"))
    return AdventureSpell(
        name=raw["name"],
        mana_cost=ManaCost.parse(raw["mana_cost"]),
        card_types=card_types,
        effect=Effect.model_validate(raw["effect"]),
    )


def _parse_card(raw: dict[str, Any]) -> CardInstance:
    """Parse a raw JSON dict into a template CardInstance."""
    kwargs: dict[str, Any] = {
        "power": raw.get("power"),
        "toughness": raw.get("toughness"),
        "keywords": [Keyword(k) for k in raw.get("keywords", [])],
        "triggers": [Trigger.model_validate(t) for t in raw.get("triggers", [])],
        "activated_abilities": [_parse_activated(a) for a in raw.get("activated_abilities", [])],
        "loyalty_abilities": [LoyaltyAbility.model_validate(a) for a in raw.get("loyalty_abilities", [])],
        "cycling_cost": _parse_cost(raw.get("cycling_cost")),
        "flashback_cost": _parse_cost(raw.get("flashback_cost")),
        "ninjutsu_cost": _parse_cost(raw.get("ninjutsu_cost")),
        "loyalty": raw.get("loyalty"),
        "enters_tapped": raw.get("enters_tapped", False),
        "static_abilities": [StaticAbility.model_validate(s) for s in raw.get("static_abilities", [])],
    }
    if "mana_ability" in raw:
        kwargs["mana_ability"] = ManaAbility.model_validate(raw["mana_ability"])
    if "fetch_ability" in raw:
        kwargs["fetch_ability"] = FetchAbility.model_validate(raw["fetch_ability"])
    if "spell_effect" in raw:
        kwargs["spell_effect"] = Effect.model_validate(raw["spell_effect"])
    if "spell_role" in raw:
        kwargs["spell_role"] = SpellRole(raw["spell_role"])
    if "adventure" in raw:
        kwargs["adventure"] = _parse_adventure(raw["adventure"])

    return CardInstance.create(raw["name"], raw["type_line"], raw.get("mana_cost"), **kwargs)


# ---------------------------------------------------------------------------
# CardCatalog
# ---------------------------------------------------------------------------

class CardCatalog:
    """Serves card templates by name and builds decklists from them."""

    def __init__(self) -> None:
        self._templates: dict[str, CardInstance] = {}
        self._decks: dict[str, dict[str, int]] = {}

    def load(self, path: str | Path = _DEFAULT_CARDS_PATH) -> None:
        """Load card definitions (and any preset decks) from a JSON file."""
        with open(path) as f:
            raw = json.load(f)
        for entry in raw.get("cards", []):
            self.register(_parse_card(entry))
        for name, counts in raw.get("decks", {}).items():
            self._decks[name] = dict(counts)
        logger.debug("Loaded %d cards and %d decks from %s", len(self._templates), len(self._decks), path)

    def register(self, card: CardInstance) -> None:
        if card.name in self._templates:
            logger.warning("Card %r registered twice; keeping the newer definition", card.name)
        self._templates[card.name] = card

    # -- queries -------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        return sorted(self._templates)

    @property
    def deck_names(self) -> list[str]:
        return sorted(self._decks)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, name: str) -> CardInstance:
        """Return a fresh copy of the named card.  Raises ``KeyError``."""
        template = self._templates.get(name)
        if template is None:
            raise KeyError(f"Unknown card {name!r}")
        return template.clone()

    # -- decks ---------------------------------------------------------------

    def build_deck(self, counts: dict[str, int]) -> list[CardInstance]:
        """Build a decklist from ``{card name: copies}``.

        Raises ``KeyError`` for unknown names and ``ValueError`` for
        negative counts.
        """
        deck: list[CardInstance] = []
        for name, count in counts.items():
            if count < 0:
                raise ValueError(f"Negative count {count} for {name!r}")
            deck.extend(self.get(name) for _ in range(count))
        return deck

    def preset_deck(self, name: str) -> list[CardInstance]:
        counts = self._decks.get(name)
        if counts is None:
            raise KeyError(f"Unknown preset deck {name!r}")
        return self.build_deck(counts)


@lru_cache(maxsize=1)
def default_catalog() -> CardCatalog:
    """The catalog of bundled cards, loaded once per process."""
    catalog = CardCatalog()
    catalog.load()
    return catalog


def build_deck(counts: dict[str, int]) -> list[CardInstance]:
    """Build a decklist from the bundled cards."""
    return default_catalog().build_deck(counts)
