"""Population initializers."""

from __future__ import annotations

import random

from gapress.core.errors import EmptyPopulationError
from gapress.evolution.base import Initializer
from gapress.genome.base import Genome


class CopyInitializer(Initializer):
    """Fill the population with independent copies of the seed genome."""

    def initialize(self, seed_genome: Genome, population_size: int, rng: random.Random) -> list[Genome]:
        if population_size < 1:
            raise EmptyPopulationError(f"population_size must be >= 1, got {population_size}")
        return [seed_genome.copy() for _ in range(population_size)]

    def __str__(self) -> str:
        return "CopyInitializer"
