"""Tournament parent selection."""

from __future__ import annotations

import random
from typing import Sequence

from gapress.evolution.base import Selector
from gapress.genome.base import Genome


class TournamentSelector(Selector):
    """Tournament selection with a configurable win probability.

    ``size`` contestants are drawn uniformly with replacement and ordered
    best-first. Walking that order, each contestant wins with ``probability``;
    the last one wins when every other contestant was passed over.
    """

    def __init__(self, probability: float = 0.7, size: int = 5) -> None:
        if not 0.0 < probability <= 1.0:
            raise ValueError("tournament probability must be in (0, 1]")
        if size < 1:
            raise ValueError("tournament size must be >= 1")
        self.probability = float(probability)
        self.size = int(size)

    def select(self, population: Sequence[Genome], rng: random.Random, minimize: bool = True) -> Genome:
        if not population:
            raise ValueError("Cannot select from an empty population.")
        contestants = [population[rng.randrange(len(population))] for _ in range(self.size)]
        for contestant in contestants:
            if contestant.score is None:
                raise ValueError("Tournament contestants must be evaluated.")
        contestants.sort(key=lambda genome: genome.score, reverse=not minimize)

        for contestant in contestants[:-1]:
            if rng.random() < self.probability:
                return contestant
        return contestants[-1]

    def __str__(self) -> str:
        return f"TournamentSelector(p={self.probability}, k={self.size})"
