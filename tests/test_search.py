"""Lifecycle, invariant and determinism checks for the genetic search."""

from __future__ import annotations

import threading

import pytest

from gapress.core.errors import EmptyPopulationError, SearchStateError
from gapress.engine.search import GeneticSearch, SearchState
from gapress.evolution.breeding import TwoPointBreeder
from gapress.evolution.mutation import default_mutator
from gapress.evolution.selection import TournamentSelector
from gapress.fitness.compressors import create_compressor, identity_length
from gapress.fitness.evaluator import CompressionFitness
from gapress.genome.int_genome import IntGenome


def _build(fitness, seed: int = 1, workers: int = 1, minimize: bool = True, **kwargs) -> GeneticSearch:
    return GeneticSearch(
        fitness_fn=fitness,
        selector=TournamentSelector(probability=0.7, size=5),
        breeder=TwoPointBreeder(),
        mutator=default_mutator(probability=0.5),
        breed_probability=0.7,
        seed=seed,
        workers=workers,
        minimize=minimize,
        **kwargs,
    )


def _zlib_fitness(length: int = 64) -> CompressionFitness:
    reference = bytes((i * 37) % 256 for i in range(length))
    return CompressionFitness(reference, create_compressor("zlib"))


class _FailsOnce:
    """Sum fitness that raises on one chosen call."""

    def __init__(self, fail_on: int) -> None:
        self.fail_on = fail_on
        self.calls = 0
        self.successes = 0
        self._lock = threading.Lock()

    def __call__(self, genome) -> float:
        with self._lock:
            self.calls += 1
            failing = self.calls == self.fail_on
        if failing:
            raise RuntimeError("compressor failed")
        with self._lock:
            self.successes += 1
        return float(sum(genome.genes))


def test_init_builds_population_of_seed_copies() -> None:
    fitness = CompressionFitness(bytes(16), identity_length)
    search = _build(fitness)
    seed = IntGenome.zeros(16, -10, 10)

    search.init(10, seed)

    assert search.state == SearchState.READY
    assert len(search.population) == 10
    assert all(genome == seed for genome in search.population)


def test_first_generation_evaluates_each_genome_once() -> None:
    fitness = CompressionFitness(bytes(16), identity_length)
    search = _build(fitness)
    search.init(10, IntGenome.zeros(16, -10, 10))

    search.run_generation()

    assert fitness.calls == 10
    assert search.evaluations == 10


def test_immediate_stop_runs_exactly_one_generation() -> None:
    fitness = _zlib_fitness()
    search = _build(fitness)
    search.init(10, IntGenome.zeros(64, -10, 10))
    seen = []

    best = search.run_until(lambda genome: seen.append(genome) or True)

    assert search.generation == 1
    assert len(seen) == 1
    assert best is seen[0]
    assert search.state == SearchState.TERMINATED


def test_population_size_is_invariant() -> None:
    search = _build(_zlib_fitness())
    search.init(7, IntGenome.zeros(64, -10, 10))

    for _ in range(5):
        search.run_generation()
        assert len(search.population) == 7


def test_elite_survives_unchanged_and_best_never_regresses() -> None:
    search = _build(_zlib_fitness(), seed=3)
    search.init(10, IntGenome.zeros(64, -10, 10))

    previous_best = None
    for _ in range(15):
        best = search.run_generation()
        assert search.population[0] is best
        genes_before = best.genes
        if previous_best is not None:
            assert best.score <= previous_best
        previous_best = best.score
        search.evaluate_population()
        assert best.genes == genes_before
        assert search.top_k(1)[0].score <= best.score


def test_max_generations_caps_a_never_true_predicate() -> None:
    search = _build(_zlib_fitness())
    search.init(4, IntGenome.zeros(64, -10, 10))

    search.run_until(lambda _best: False, max_generations=3)

    assert search.generation == 3


def test_zero_generation_cap_runs_nothing() -> None:
    search = _build(_zlib_fitness())
    search.init(4, IntGenome.zeros(64, -10, 10))

    assert search.run_until(lambda _best: True, max_generations=0) is None
    assert search.generation == 0


def test_empty_population_is_rejected() -> None:
    search = _build(_zlib_fitness())

    with pytest.raises(EmptyPopulationError):
        search.init(0, IntGenome.zeros(64, -10, 10))
    assert search.state == SearchState.UNINITIALIZED


def test_operations_before_init_fail() -> None:
    search = _build(_zlib_fitness())

    with pytest.raises(SearchStateError):
        search.run_until(lambda _best: True)
    with pytest.raises(SearchStateError):
        search.top_k(1)


def test_same_seed_gives_same_search() -> None:
    results = []
    for _ in range(2):
        search = _build(_zlib_fitness(), seed=99)
        search.init(8, IntGenome.zeros(64, -10, 10))
        search.run_until(lambda _best: False, max_generations=6)
        results.append([genome.genes for genome in search.population])

    assert results[0] == results[1]


def test_parallel_evaluation_matches_serial() -> None:
    outcomes = []
    for workers in (1, 4):
        fitness = _zlib_fitness()
        search = _build(fitness, seed=5, workers=workers)
        search.init(8, IntGenome.zeros(64, -10, 10))
        search.run_until(lambda _best: False, max_generations=4)
        outcomes.append(([g.genes for g in search.population], fitness.calls, search.evaluations))

    assert outcomes[0] == outcomes[1]
    assert outcomes[0][1] == outcomes[0][2]


def test_top_k_breaks_ties_by_population_order() -> None:
    search = _build(CompressionFitness(bytes(4), identity_length))
    search.init(5, IntGenome.zeros(4, -10, 10))

    top = search.top_k(3)

    assert top == search.population[:3]
    assert [genome.score for genome in top] == [16.0, 16.0, 16.0]
    assert all(a is b for a, b in zip(top, search.population[:3]))


def test_maximize_direction_tracks_largest_fitness() -> None:
    search = _build(lambda genome: float(sum(genome.genes)), minimize=False, seed=2)
    search.init(10, IntGenome.zeros(12, -10, 10))

    best = search.run_until(lambda genome: genome.score >= 40, max_generations=400)

    assert best is not None
    assert best.score >= 40


def test_report_collects_top_evaluations_and_mutation_counts() -> None:
    search = _build(_zlib_fitness())
    search.init(6, IntGenome.zeros(64, -10, 10))
    search.run_until(lambda _best: False, max_generations=3)

    report = search.report(3)

    assert len(report.top) == 3
    assert report.evaluations == search.evaluations
    assert set(report.mutation_counts) == {"shift", "switch", "random"}
    assert report.generations == 3
    assert "Calls to score" in report.format()


def test_metrics_published_each_generation() -> None:
    search = _build(_zlib_fitness())
    search.init(6, IntGenome.zeros(64, -10, 10))

    search.run_generation()
    first = search.last_generation_metrics
    search.run_generation()
    second = search.last_generation_metrics

    assert first is not None and second is not None
    assert first.generation_index == 0
    assert second.generation_index == 1
    assert first.diversity == 0.0
    assert second.best_fitness <= first.best_fitness
    assert first.best_fitness <= first.mean_fitness <= first.worst_fitness


@pytest.mark.parametrize("workers", [1, 4])
def test_failed_evaluation_keeps_count_and_allows_restart(workers: int) -> None:
    fitness = _FailsOnce(fail_on=5)
    search = _build(fitness, workers=workers)
    search.init(10, IntGenome.zeros(16, -10, 10))

    with pytest.raises(RuntimeError, match="compressor failed"):
        search.run_generation()

    assert search.state == SearchState.READY
    assert search.generation == 0
    assert search.evaluations == fitness.successes
    assert sum(genome.score is not None for genome in search.population) == fitness.successes

    search.run_generation()

    assert search.generation == 1
    assert fitness.successes == 10
    assert fitness.calls == 11
    assert search.evaluations == 10
