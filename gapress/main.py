"""Build and run a compression search from a configuration."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from gapress.configs.loader import ConfigLoader, SearchConfig
from gapress.core.deterministic_rng import DeterministicRNG
from gapress.data.logger import SearchLogger
from gapress.engine.search import GeneticSearch, SearchReport, StopPredicate
from gapress.evolution.breeding import TwoPointBreeder
from gapress.evolution.initializer import CopyInitializer
from gapress.evolution.mutation import default_mutator
from gapress.evolution.selection import TournamentSelector
from gapress.fitness.compressors import create_compressor
from gapress.fitness.evaluator import CompressionFitness
from gapress.genome.base import Genome
from gapress.genome.int_genome import IntGenome
from gapress.imaging.reference import ReferenceImage, load_reference, save_png


LOGGER = logging.getLogger(__name__)


@dataclass
class SearchComponents:
    """Everything a run needs, wired together."""

    search: GeneticSearch
    fitness: CompressionFitness
    seed_genome: IntGenome
    reference: ReferenceImage


def resolve_seed(config: SearchConfig) -> int:
    """Return the configured seed, or derive one from the clock."""
    if config.seed is not None:
        return int(config.seed)
    seed = time.time_ns() & 0xFFFFFFFF
    LOGGER.info("No seed configured; using %d", seed)
    return seed


def build_components(
    config: SearchConfig,
    reference: ReferenceImage,
    logger: SearchLogger | None = None,
    seed: int | None = None,
) -> SearchComponents:
    """Build a search over per-pixel deltas of ``reference``."""
    seed_genome = IntGenome.zeros(len(reference), config.min_delta, config.max_delta)
    fitness = CompressionFitness(
        reference.pixels,
        create_compressor(config.compressor),
        genome_length=len(seed_genome),
    )
    search = GeneticSearch(
        fitness_fn=fitness,
        selector=TournamentSelector(probability=config.tournament_probability, size=config.tournament_size),
        breeder=TwoPointBreeder(),
        mutator=default_mutator(probability=config.mutate_probability, shift_step=config.shift_step),
        initializer=CopyInitializer(),
        breed_probability=config.breed_probability,
        rng=DeterministicRNG(seed if seed is not None else resolve_seed(config)),
        workers=config.workers,
        logger=logger,
        config=config.to_dict(),
    )
    return SearchComponents(search=search, fitness=fitness, seed_genome=seed_genome, reference=reference)


def make_stop_predicate(
    fitness: CompressionFitness,
    target_ratio: float | None = None,
    echo: Callable[[str], None] = print,
) -> StopPredicate:
    """Report the best genome's compression ratio and stop on a perfect score.

    With ``target_ratio`` the search also stops once the best perturbed image
    compresses to that fraction of the reference or less.
    """

    def predicate(best: Genome) -> bool:
        ratio = fitness.ratio(best)
        echo(f"{ratio}")
        if best.score == 0:
            return True
        return target_ratio is not None and ratio <= target_ratio

    return predicate


def run_search(
    config: SearchConfig,
    logger: SearchLogger | None = None,
    echo: Callable[[str], None] = print,
) -> SearchReport:
    """Load the image, search for compressible deltas and write the results.

    Writes ``<stem>.png`` (the downscaled grayscale reference) and
    ``<stem>_best.png`` (the reference perturbed by the best genome) into
    ``config.output_dir``.
    """
    reference = load_reference(config.image, scale=config.scale)
    stem = Path(config.image).stem
    output_dir = Path(config.output_dir)
    save_png(reference, output_dir / f"{stem}.png")
    LOGGER.info("Loaded %s as %dx%d grayscale", config.image, reference.width, reference.height)

    components = build_components(config, reference, logger=logger)
    search = components.search
    search.init(config.population_size, components.seed_genome)
    search.run_until(
        make_stop_predicate(components.fitness, config.target_ratio, echo=echo),
        max_generations=config.max_generations,
    )

    report = search.finish(config.top_k)
    if report.top:
        best = report.top[0]
        save_png(reference.with_pixels(components.fitness.perturb(best)), output_dir / f"{stem}_best.png")
    echo(report.format())
    return report


def main(config_path: str = "configs/example_search.yaml") -> None:
    """Load config, build components and run the search."""
    logging.basicConfig(level=logging.INFO)
    config = ConfigLoader.load(config_path)
    logger = SearchLogger(Path("search_metrics.db"))
    try:
        run_search(config, logger=logger)
    finally:
        logger.close()


if __name__ == "__main__":
    main()
