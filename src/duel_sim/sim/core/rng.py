"""Seeded randomness for reproducible games.

Every random decision in a game (library shuffles and mulligan
reshuffles) goes through the game's ``GameRNG``.  Named sub-streams made
with ``fork`` stay independent of the parent and of each other.
"""

from __future__ import annotations

import hashlib
import random
from typing import TypeVar

T = TypeVar("T")


class GameRNG:
    """Deterministic RNG that can be split into named sub-streams.

    Parameters
    ----------
    seed:
        Integer seed for the underlying ``random.Random``.
    """

    def __init__(self, seed: int) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    @classmethod
    def unseeded(cls) -> GameRNG:
        """Return an RNG with a fresh seed drawn from system entropy."""
        return cls(random.SystemRandom().randrange(2**63))

    @property
    def seed(self) -> int:
        return self._seed

    # -- draws ---------------------------------------------------------------

    def shuffle(self, cards: list[T]) -> None:
        """Shuffle *cards* in place."""
        self._rng.shuffle(cards)

    # -- forking -------------------------------------------------------------

    def fork(self, name: str) -> GameRNG:
        """Derive an independent child stream from this seed and *name*.

        The child depends only on ``(seed, name)``, never on how many values
        the parent has already produced.
        """
        digest = hashlib.sha256(f"{self._seed}/{name}".encode()).digest()
        return GameRNG(int.from_bytes(digest[:8], "big"))

    def __repr__(self) -> str:
        return f"GameRNG(seed={self._seed})"
