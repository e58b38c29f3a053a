"""Mutation operators and the counting multi-mutator."""

from __future__ import annotations

import random
import threading
from typing import Iterable

from gapress.evolution.base import MutationOperator
from gapress.genome.base import Genome


class ShiftMutator(MutationOperator):
    """Nudge one gene by a small nonzero signed step, clamped to bounds."""

    name = "shift"

    def __init__(self, max_step: int = 1) -> None:
        if max_step < 1:
            raise ValueError("max_step must be >= 1")
        self.max_step = int(max_step)

    def apply(self, genome: Genome, rng: random.Random) -> None:
        if len(genome) == 0:
            return
        index = rng.randrange(len(genome))
        step = rng.randint(1, self.max_step)
        if rng.random() < 0.5:
            step = -step
        value = min(max(genome[index] + step, genome.min_value), genome.max_value)
        genome.set_gene(index, value)


class SwitchMutator(MutationOperator):
    """Swap the values of two random genes."""

    name = "switch"

    def apply(self, genome: Genome, rng: random.Random) -> None:
        if len(genome) == 0:
            return
        first = rng.randrange(len(genome))
        second = rng.randrange(len(genome))
        first_value, second_value = genome[first], genome[second]
        genome.set_gene(first, second_value)
        genome.set_gene(second, first_value)


class RandomResetMutator(MutationOperator):
    """Replace one gene with a uniformly random in-bounds value."""

    name = "random"

    def apply(self, genome: Genome, rng: random.Random) -> None:
        if len(genome) == 0:
            return
        index = rng.randrange(len(genome))
        genome.set_gene(index, rng.randint(genome.min_value, genome.max_value))


class MultiMutator:
    """Ordered registry of mutation operators.

    Each operator is applied independently with probability ``probability``.
    Invocation counts are kept per operator for reporting only and never feed
    back into the search.
    """

    def __init__(self, probability: float = 0.5, operators: Iterable[MutationOperator] = ()) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError("mutation probability must be in [0, 1]")
        self.probability = float(probability)
        self._operators: list[MutationOperator] = []
        self._counts: list[int] = []
        self._lock = threading.Lock()
        for operator in operators:
            self.add(operator)

    def add(self, operator: MutationOperator) -> None:
        with self._lock:
            self._operators.append(operator)
            self._counts.append(0)

    @property
    def operators(self) -> list[MutationOperator]:
        return list(self._operators)

    def mutate(self, genome: Genome, rng: random.Random) -> int:
        """Mutate ``genome`` in place and return how many operators fired."""
        applied = 0
        for index, operator in enumerate(self._operators):
            if rng.random() >= self.probability:
                continue
            operator.apply(genome, rng)
            with self._lock:
                self._counts[index] += 1
            applied += 1
        return applied

    def counts(self) -> dict[str, int]:
        """Invocation count per operator name, in registration order."""
        with self._lock:
            result: dict[str, int] = {}
            for operator, count in zip(self._operators, self._counts):
                result[operator.name] = result.get(operator.name, 0) + count
            return result

    def total(self) -> int:
        with self._lock:
            return sum(self._counts)

    def stats(self) -> str:
        return " ".join(f"{name}={count}" for name, count in self.counts().items())


def default_mutator(probability: float = 0.5, shift_step: int = 1) -> MultiMutator:
    """Shift, switch and random-reset operators in that order."""
    return MultiMutator(
        probability=probability,
        operators=(ShiftMutator(max_step=shift_step), SwitchMutator(), RandomResetMutator()),
    )
