"""Two-point crossover breeding."""

from __future__ import annotations

import random

from gapress.core.errors import LengthMismatchError
from gapress.evolution.base import Breeder
from gapress.genome.base import Genome


def two_point_crossover(first: Genome, second: Genome, start: int, end: int) -> Genome:
    """Child with ``first``'s genes outside ``[start, end)`` and ``second``'s inside."""
    if len(first) != len(second):
        raise LengthMismatchError(len(first), len(second), what="parent")
    if not 0 <= start < end <= len(first):
        raise ValueError(f"cut points must satisfy 0 <= start < end <= {len(first)}")
    child = first.copy()
    for index in range(start, end):
        child.set_gene(index, second[index])
    return child


class TwoPointBreeder(Breeder):
    """Splice a random segment of the second parent into the first."""

    def breed(self, first: Genome, second: Genome, rng: random.Random) -> Genome:
        if len(first) != len(second):
            raise LengthMismatchError(len(first), len(second), what="parent")
        if len(first) == 0:
            return first.copy()
        start, end = sorted(rng.sample(range(len(first) + 1), 2))
        return two_point_crossover(first, second, start, end)

    def __str__(self) -> str:
        return "TwoPointBreeder"
