"""Genetic search lifecycle orchestrator."""

from __future__ import annotations

import enum
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from gapress.core.deterministic_rng import DeterministicRNG
from gapress.core.errors import EmptyPopulationError, SearchStateError
from gapress.data.logger import SearchLogger
from gapress.evolution.base import Breeder, Initializer, Selector, rank
from gapress.evolution.initializer import CopyInitializer
from gapress.evolution.mutation import MultiMutator
from gapress.genome.base import FitnessFn, Genome


LOGGER = logging.getLogger(__name__)

StopPredicate = Callable[[Genome], bool]


class SearchState(str, enum.Enum):
    """Lifecycle states of a genetic search."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    EVALUATING = "evaluating"
    SELECTING = "selecting"
    BREEDING = "breeding"
    MUTATING = "mutating"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class GenerationMetrics:
    """Structured per-generation metrics payload."""

    generation_index: int
    best_fitness: float
    mean_fitness: float
    worst_fitness: float
    diversity: float = 0.0
    evaluations: int = 0

    def to_dict(self) -> dict[str, float]:
        return {
            "generation_index": self.generation_index,
            "best_fitness": self.best_fitness,
            "mean_fitness": self.mean_fitness,
            "worst_fitness": self.worst_fitness,
            "diversity": self.diversity,
            "evaluations": self.evaluations,
        }


@dataclass(frozen=True)
class SearchReport:
    """Snapshot handed to a reporting sink."""

    top: list[Genome]
    evaluations: int
    mutation_counts: dict[str, int] = field(default_factory=dict)
    generations: int = 0

    def format(self) -> str:
        lines = [f"{rank_index}: score={genome.score}" for rank_index, genome in enumerate(self.top)]
        lines.append(f"Generations = {self.generations}")
        lines.append(f"Calls to score = {self.evaluations}")
        lines.append(" ".join(f"{name}={count}" for name, count in self.mutation_counts.items()))
        return "\n".join(lines)


class GeneticSearch:
    """Generational GA: evaluate, rank, select, breed, mutate, replace.

    The search is generic over the genome type and the fitness function. All
    randomness comes from named streams of one ``DeterministicRNG``, so two
    searches built with the same seed and collaborators produce the same
    populations.

    The single best genome of each generation is carried over unchanged, so
    the best fitness never regresses between generations.
    """

    def __init__(
        self,
        fitness_fn: FitnessFn,
        selector: Selector,
        breeder: Breeder,
        mutator: MultiMutator,
        initializer: Initializer | None = None,
        breed_probability: float = 0.7,
        seed: int | None = None,
        rng: DeterministicRNG | None = None,
        minimize: bool = True,
        workers: int = 1,
        track_diversity: bool = True,
        logger: SearchLogger | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        if not 0.0 <= breed_probability <= 1.0:
            raise ValueError("breed_probability must be in [0, 1]")
        if workers < 1:
            raise ValueError("workers must be >= 1")

        self.fitness_fn = fitness_fn
        self.selector = selector
        self.breeder = breeder
        self.mutator = mutator
        self.initializer = initializer or CopyInitializer()
        self.breed_probability = float(breed_probability)
        self.minimize = bool(minimize)
        self.workers = int(workers)
        self.track_diversity = bool(track_diversity)

        if rng is None:
            rng = DeterministicRNG(seed if seed is not None else 0)
        self.rng = rng
        self._init_rng = rng.stream("init")
        self._selection_rng = rng.stream("selection")
        self._breeding_rng = rng.stream("breeding")
        self._mutation_rng = rng.stream("mutation")

        self.logger = logger
        self.config = dict(config or {})
        self.experiment_id: str | None = None

        self.population: list[Genome] = []
        self.population_size = 0
        self.generation = 0
        self.evaluations = 0
        self.best_genome: Genome | None = None
        self.last_generation_metrics: GenerationMetrics | None = None

        self._state = SearchState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self._evaluations_lock = threading.Lock()

    @property
    def state(self) -> SearchState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: SearchState) -> None:
        with self._state_lock:
            self._state = state

    def _require_initialized(self) -> None:
        if self.state == SearchState.UNINITIALIZED:
            raise SearchStateError("Search is not initialized; call init() first.")

    def init(self, population_size: int, seed_genome: Genome) -> None:
        """Create the first population from ``seed_genome``."""
        if population_size < 1:
            raise EmptyPopulationError(f"population_size must be >= 1, got {population_size}")

        population = self.initializer.initialize(seed_genome, population_size, self._init_rng)
        if len(population) != population_size:
            raise EmptyPopulationError(
                f"Initializer produced {len(population)} genomes, expected {population_size}"
            )
        self.population = list(population)
        self.population_size = int(population_size)
        self.generation = 0
        self.best_genome = None
        self.last_generation_metrics = None

        if self.logger is not None:
            safe_seed = int(self.rng.seed)
            self.experiment_id = self.logger.start_experiment(
                config=self.config,
                seed=safe_seed,
                population_size=self.population_size,
                genome_length=len(seed_genome),
            )

        self._set_state(SearchState.READY)
        LOGGER.info(
            "Initialized population of %d genomes (genome length %d, seed %d)",
            self.population_size,
            len(seed_genome),
            self.rng.seed,
        )

    def evaluate_population(self) -> int:
        """Evaluate every genome without a cached fitness.

        Returns the number of fitness calls made.
        """
        pending = [genome for genome in self.population if genome.score is None]
        if not pending:
            return 0

        if self.workers > 1 and len(pending) > 1:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(pending))) as pool:
                list(pool.map(self._evaluate_one, pending))
        else:
            for genome in pending:
                self._evaluate_one(genome)

        return sum(genome.score is not None for genome in pending)

    def _evaluate_one(self, genome: Genome) -> float:
        # Counted per genome so calls made before a failure are not lost.
        cached = genome.score is not None
        value = genome.evaluate(self.fitness_fn)
        if not cached:
            with self._evaluations_lock:
                self.evaluations += 1
        return value

    def run_generation(self) -> Genome:
        """Run one full generation and return the best genome found in it.

        Lifecycle:
          1) evaluate every unevaluated genome,
          2) rank by fitness and keep the best as the elite,
          3) select two parents per remaining slot,
          4) breed them with ``breed_probability`` or copy one of them,
          5) mutate the child in place,
          6) replace the population and publish metrics.
        """
        self._require_initialized()
        try:
            return self._advance()
        except Exception:
            # The population is only replaced on success, so the search can resume.
            self._set_state(SearchState.READY)
            raise

    def _advance(self) -> Genome:
        started = time.perf_counter()

        # 1) Evaluate.
        self._set_state(SearchState.EVALUATING)
        self.evaluate_population()

        # 2) Rank; elitism.
        order = rank(self.population, self.minimize)
        best = self.population[order[0]]
        metrics = self._compute_metrics(order)

        # 3-5) Fill the next population.
        next_population: list[Genome] = [best]
        while len(next_population) < self.population_size:
            self._set_state(SearchState.SELECTING)
            first = self.selector.select(self.population, self._selection_rng, self.minimize)
            second = self.selector.select(self.population, self._selection_rng, self.minimize)

            self._set_state(SearchState.BREEDING)
            if self._breeding_rng.random() < self.breed_probability:
                child = self.breeder.breed(first, second, self._breeding_rng)
            else:
                parent = first if self._breeding_rng.random() < 0.5 else second
                child = parent.copy()

            self._set_state(SearchState.MUTATING)
            self.mutator.mutate(child, self._mutation_rng)
            next_population.append(child)

        if len(next_population) != self.population_size:
            raise SearchStateError("Generation transition must preserve population size.")

        # 6) Replace and publish.
        self.population = next_population
        self.best_genome = best
        self.last_generation_metrics = metrics
        self.generation += 1
        self._set_state(SearchState.READY)

        LOGGER.debug(
            "Generation %d: best=%.1f mean=%.1f worst=%.1f diversity=%.3f evaluations=%d (%.3fs)",
            metrics.generation_index,
            metrics.best_fitness,
            metrics.mean_fitness,
            metrics.worst_fitness,
            metrics.diversity,
            metrics.evaluations,
            time.perf_counter() - started,
        )
        self.on_generation_end(metrics)
        return best

    def run_until(self, stop_predicate: StopPredicate, max_generations: int | None = None) -> Genome | None:
        """Run generations until ``stop_predicate(best)`` returns true.

        ``stop_predicate`` is called once after every generation with the best
        genome of that generation. With ``max_generations=None`` the predicate
        is the only way out, so a predicate that never returns true never
        stops. ``max_generations`` caps the number of generations run by this
        call.

        Returns:
            The best genome of the last completed generation, or ``None`` if no
            generation ran.
        """
        self._require_initialized()
        if max_generations is not None and max_generations < 0:
            raise ValueError("max_generations must be non-negative")

        LOGGER.info("Starting search at generation %d", self.generation)
        completed = 0
        best: Genome | None = None
        try:
            while max_generations is None or completed < max_generations:
                best = self.run_generation()
                completed += 1
                if stop_predicate(best):
                    break
        finally:
            self._set_state(SearchState.TERMINATED)

        LOGGER.info(
            "Search stopped after %d generations (%d total, %d evaluations)",
            completed,
            self.generation,
            self.evaluations,
        )
        return best

    def top_k(self, k: int) -> list[Genome]:
        """Return the ``k`` best genomes; ties keep population order."""
        self._require_initialized()
        if k < 0:
            raise ValueError("k must be non-negative")
        self.evaluate_population()
        order = rank(self.population, self.minimize)
        return [self.population[index] for index in order[:k]]

    def report(self, k: int = 10) -> SearchReport:
        """Build a report of the current population for a reporting sink."""
        top = self.top_k(k)
        return SearchReport(
            top=top,
            evaluations=self.evaluations,
            mutation_counts=self.mutator.counts(),
            generations=self.generation,
        )

    def _compute_metrics(self, order: Sequence[int]) -> GenerationMetrics:
        scores = [float(self.population[index].score) for index in order]
        return GenerationMetrics(
            generation_index=self.generation,
            best_fitness=scores[0],
            mean_fitness=sum(scores) / len(scores),
            worst_fitness=scores[-1],
            diversity=self._compute_genome_diversity() if self.track_diversity else 0.0,
            evaluations=self.evaluations,
        )

    def _compute_genome_diversity(self) -> float:
        """Mean pairwise genome distance for diversity tracking."""
        genomes = self.population
        if len(genomes) < 2 or not all(hasattr(genome, "distance") for genome in genomes):
            return 0.0

        total = 0.0
        pairs = 0
        for i in range(len(genomes)):
            for j in range(i + 1, len(genomes)):
                total += float(genomes[i].distance(genomes[j]))  # type: ignore[attr-defined]
                pairs += 1
        return total / pairs if pairs else 0.0

    def on_generation_end(self, metrics: GenerationMetrics) -> None:
        """Persist metrics for a completed generation if a logger is configured."""
        if self.logger is None or self.experiment_id is None:
            return
        self.logger.log_metrics(self.experiment_id, metrics.generation_index, metrics.to_dict())

    def finish(self, k: int = 10) -> SearchReport:
        """Build the final report and hand it to the logger, if any."""
        report = self.report(k)
        if self.logger is not None and self.experiment_id is not None:
            self.logger.log_result(
                self.experiment_id,
                evaluations=report.evaluations,
                generations=report.generations,
                best_fitness=float(report.top[0].score) if report.top else 0.0,
                mutation_counts=report.mutation_counts,
            )
        return report
