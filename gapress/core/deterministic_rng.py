"""Deterministic RNG container handing out named random streams."""

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass


@dataclass
class DeterministicRNG:
    """Owns deterministic RNG streams without touching global random state.

    Every stochastic component of the search (initializer, selector, breeder,
    mutator) draws from its own named stream, so adding draws in one component
    never shifts the sequence seen by another.
    """

    seed: int

    def __post_init__(self) -> None:
        self._streams: dict[str, random.Random] = {}

    def stream(self, name: str) -> random.Random:
        """Return independent deterministic stream by name."""
        if name not in self._streams:
            # Stable cross-process derivation; built-in hash() is salted.
            digest = hashlib.sha256(f"{self.seed}:{name}".encode("utf-8")).digest()
            derived_seed = int.from_bytes(digest[:8], byteorder="big", signed=False) & 0xFFFFFFFF
            self._streams[name] = random.Random(derived_seed)
        return self._streams[name]
