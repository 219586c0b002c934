"""Mana symbols and mana costs.

Costs are written the way they appear on cards -- ``"{2}{R}{R}"`` -- and
parsed into per-color requirements plus a generic remainder.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, Field


class ManaColor(str, Enum):
    """The five colors plus colorless mana."""

    WHITE = "W"
    BLUE = "U"
    BLACK = "B"
    RED = "R"
    GREEN = "G"
    COLORLESS = "C"


_SYMBOL_RE = re.compile(r"\{([^}]+)\}")


class ManaCost(BaseModel):
    """A parsed mana cost.

    ``color_requirements`` holds the colored (and explicit colorless ``{C}``)
    symbols; ``generic`` holds the number that any mana can pay.
    """

    model_config = {"frozen": True}

    color_requirements: dict[ManaColor, int] = Field(default_factory=dict)
    generic: int = 0

    @property
    def cmc(self) -> int:
        """Converted mana cost: generic plus every colored symbol."""
        return self.generic + sum(self.color_requirements.values())

    @property
    def colors(self) -> list[ManaColor]:
        return [c for c in self.color_requirements if c != ManaColor.COLORLESS]

    @classmethod
    def parse(cls, text: str) -> ManaCost:
        """Parse a cost string such as ``"{1}{U}{U}"``.

        Raises ``ValueError`` on symbols that are neither a number nor one
        of ``W U B R G C``.
        """
        generic = 0
        requirements: dict[ManaColor, int] = {}
        for symbol in _SYMBOL_RE.findall(text or ""):
            symbol = symbol.strip().upper()
            if symbol.isdigit():
                generic += int(symbol)
                continue
            try:
                color = ManaColor(symbol)
            except ValueError:
                raise ValueError(f"Unknown mana symbol {{{symbol}}} in {text!r}") from None
            requirements[color] = requirements.get(color, 0) + 1
        return cls(color_requirements=requirements, generic=generic)

    def with_generic_change(self, delta: int) -> ManaCost:
        """Copy of this cost with *delta* added to the generic part (floored at 0)."""
        if delta == 0:
            return self
        return ManaCost(
            color_requirements=dict(self.color_requirements),
            generic=max(0, self.generic + delta),
        )

    def __str__(self) -> str:
        parts = [f"{{{self.generic}}}"] if self.generic else []
        for color in ManaColor:
            parts.extend(f"{{{color.value}}}" for _ in range(self.color_requirements.get(color, 0)))
        return "".join(parts) or "{0}"
