"""Search operator contracts."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Sequence

from gapress.genome.base import Genome


def rank(population: Sequence[Genome], minimize: bool = True) -> list[int]:
    """Return population indices ordered best-first.

    Every genome must already be evaluated. The sort is stable, so ties keep
    population order.
    """
    scores = [genome.score for genome in population]
    if any(score is None for score in scores):
        raise ValueError("All genomes must be evaluated before ranking.")
    return sorted(range(len(population)), key=lambda i: scores[i], reverse=not minimize)


class Initializer(ABC):
    """Builds the first population from a seed genome."""

    @abstractmethod
    def initialize(self, seed_genome: Genome, population_size: int, rng: random.Random) -> list[Genome]:
        """Return ``population_size`` genomes derived from ``seed_genome``.

        Invariants:
            - The seed genome itself is never part of the result.
            - Returned genomes share no mutable state with each other.
        """


class Selector(ABC):
    """Chooses one parent per call from an evaluated population."""

    @abstractmethod
    def select(self, population: Sequence[Genome], rng: random.Random, minimize: bool = True) -> Genome:
        """Pick a parent biased toward better fitness.

        Invariants:
            - Must not mutate the population or the returned genome.
        """


class Breeder(ABC):
    """Recombines two parents into one child."""

    @abstractmethod
    def breed(self, first: Genome, second: Genome, rng: random.Random) -> Genome:
        """Create an offspring genome.

        Invariants:
            - Must not mutate either parent.
            - The child shares no mutable state with the parents.
        """


class MutationOperator(ABC):
    """Single in-place mutation applied to one genome."""

    name: str = "mutation"

    @abstractmethod
    def apply(self, genome: Genome, rng: random.Random) -> None:
        """Mutate ``genome`` in place through ``set_gene``."""
