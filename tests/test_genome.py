"""Tests for the bounded integer genome."""

from __future__ import annotations

import random

import pytest

from gapress.core.errors import OutOfRangeError
from gapress.genome.base import Genome
from gapress.genome.int_genome import IntGenome


def _length_fitness(genome: IntGenome) -> float:
    return float(sum(genome.genes))


def test_zeros_builds_unevaluated_genome() -> None:
    genome = IntGenome.zeros(4, -10, 10)

    assert genome.genes == (0, 0, 0, 0)
    assert len(genome) == 4
    assert genome.score is None
    assert isinstance(genome, Genome)


def test_set_gene_rejects_values_outside_bounds() -> None:
    genome = IntGenome.zeros(3, -2, 2)

    with pytest.raises(OutOfRangeError, match="outside bounds"):
        genome.set_gene(0, 3)
    with pytest.raises(OutOfRangeError):
        genome.set_gene(1, -3)

    assert genome.genes == (0, 0, 0)


def test_constructor_rejects_out_of_range_genes_and_inverted_bounds() -> None:
    with pytest.raises(OutOfRangeError):
        IntGenome([0, 11], -10, 10)
    with pytest.raises(ValueError, match="min_value"):
        IntGenome([], 5, -5)


def test_evaluate_caches_until_a_gene_changes() -> None:
    calls = []

    def fitness(genome: IntGenome) -> float:
        calls.append(1)
        return float(sum(genome.genes))

    genome = IntGenome.zeros(3, -5, 5)
    assert genome.evaluate(fitness) == 0.0
    assert genome.evaluate(fitness) == 0.0
    assert len(calls) == 1

    genome.set_gene(2, 4)
    assert genome.score is None
    assert genome.evaluate(fitness) == 4.0
    assert len(calls) == 2


def test_cache_never_survives_random_writes() -> None:
    rng = random.Random(3)
    genome = IntGenome.zeros(8, -10, 10)
    for _ in range(50):
        genome.evaluate(_length_fitness)
        genome.set_gene(rng.randrange(8), rng.randint(-10, 10))
        assert genome.evaluate(_length_fitness) == float(sum(genome.genes))


def test_copy_is_value_isolated() -> None:
    original = IntGenome([1, 2, 3], -5, 5)
    original.evaluate(_length_fitness)

    clone = original.copy()
    assert clone == original
    assert clone.score == original.score

    clone.set_gene(0, -5)
    assert original.genes == (1, 2, 3)
    assert original.score == 6.0
    assert clone.score is None
    assert (clone.min_value, clone.max_value) == (-5, 5)


def test_distance_is_mean_absolute_difference() -> None:
    a = IntGenome([0, 0, 0, 0], -4, 4)
    b = IntGenome([4, -4, 0, 0], -4, 4)

    assert a.distance(b) == 2.0
    assert a.distance(a) == 0.0
