"""Fixed-length bounded integer genome."""

from __future__ import annotations

from typing import Iterable

from gapress.core.errors import OutOfRangeError
from gapress.genome.base import FitnessFn, Genome


class IntGenome:
    """Vector of integers bounded by ``[min_value, max_value]``.

    The genome caches its fitness after the first evaluation. Any gene write
    drops the cache, so the next ``evaluate`` recomputes it.
    """

    __slots__ = ("min_value", "max_value", "_genes", "_fitness")

    def __init__(self, genes: Iterable[int], min_value: int, max_value: int) -> None:
        if min_value > max_value:
            raise ValueError(f"min_value {min_value} must be <= max_value {max_value}")
        self.min_value = int(min_value)
        self.max_value = int(max_value)
        values = [int(value) for value in genes]
        for value in values:
            self._check(value)
        self._genes = values
        self._fitness: float | None = None

    @classmethod
    def zeros(cls, length: int, min_value: int, max_value: int) -> "IntGenome":
        """Create a genome of ``length`` zero genes."""
        if length < 0:
            raise ValueError("length must be >= 0")
        return cls([0] * length, min_value, max_value)

    def _check(self, value: int) -> None:
        if not self.min_value <= value <= self.max_value:
            raise OutOfRangeError(value, self.min_value, self.max_value)

    @property
    def genes(self) -> tuple[int, ...]:
        return tuple(self._genes)

    @property
    def score(self) -> float | None:
        """Cached fitness, or ``None`` when the genome is not evaluated."""
        return self._fitness

    def copy(self) -> "IntGenome":
        clone = IntGenome.__new__(IntGenome)
        clone.min_value = self.min_value
        clone.max_value = self.max_value
        clone._genes = list(self._genes)
        # Same genes, same fitness.
        clone._fitness = self._fitness
        return clone

    def set_gene(self, index: int, value: int) -> None:
        value = int(value)
        self._check(value)
        self._genes[index] = value
        self._fitness = None

    def evaluate(self, fitness_fn: FitnessFn) -> float:
        if self._fitness is None:
            self._fitness = float(fitness_fn(self))
        return self._fitness

    def distance(self, other: Genome) -> float:
        """Mean absolute gene difference to ``other``."""
        if len(other) != len(self):
            raise ValueError("Genomes must have equal length to compute distance.")
        if not self._genes:
            return 0.0
        total = sum(abs(self._genes[i] - other[i]) for i in range(len(self._genes)))
        return total / len(self._genes)

    def __len__(self) -> int:
        return len(self._genes)

    def __getitem__(self, index: int) -> int:
        return self._genes[index]

    def __iter__(self):
        return iter(self._genes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IntGenome):
            return NotImplemented
        return (
            self._genes == other._genes
            and self.min_value == other.min_value
            and self.max_value == other.max_value
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"IntGenome(len={len(self._genes)}, bounds=[{self.min_value}, {self.max_value}], "
            f"score={self._fitness})"
        )
