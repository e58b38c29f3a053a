"""Tests for the SQLite search logger and its search hook."""

from __future__ import annotations

import sqlite3

from gapress.data.logger import SearchLogger
from gapress.engine.search import GeneticSearch
from gapress.evolution.breeding import TwoPointBreeder
from gapress.evolution.mutation import default_mutator
from gapress.evolution.selection import TournamentSelector
from gapress.fitness.compressors import create_compressor
from gapress.fitness.evaluator import CompressionFitness
from gapress.genome.int_genome import IntGenome


def test_logger_persists_metadata_and_metrics(tmp_path) -> None:
    db_path = tmp_path / "metrics.db"
    logger = SearchLogger(db_path)

    experiment_id = logger.start_experiment(
        config={"image": "a.png", "population_size": 2}, seed=42, population_size=2, genome_length=16
    )
    logger.log_metrics(
        experiment_id=experiment_id,
        generation_index=0,
        metrics={"best_fitness": 4.0, "mean_fitness": 9.0, "worst_fitness": 16.0, "evaluations": 2},
    )
    logger.log_result(experiment_id, evaluations=2, generations=1, best_fitness=4.0, mutation_counts={"shift": 1})
    logger.close()

    conn = sqlite3.connect(db_path)
    metadata_count = conn.execute("SELECT COUNT(*) FROM search_metadata").fetchone()[0]
    row = conn.execute("SELECT best_fitness, diversity, evaluations FROM generation_metrics").fetchone()
    conn.close()

    assert metadata_count == 1
    assert row == (4.0, 0.0, 2)

    logger = SearchLogger(db_path)
    assert logger.latest_experiment_id() == experiment_id
    assert len(experiment_id) == 16
    assert logger.fetch_experiment(experiment_id) == {
        "seed": 42,
        "population_size": 2,
        "genome_length": 16,
        "config": {"image": "a.png", "population_size": 2},
    }
    assert logger.fetch_experiment("missing") is None
    assert logger.fetch_result(experiment_id) == {
        "evaluations": 2,
        "generations": 1,
        "best_fitness": 4.0,
        "mutation_counts": {"shift": 1},
    }
    logger.close()


def test_search_logs_every_generation_and_final_result(tmp_path) -> None:
    logger = SearchLogger(tmp_path / "search.db")
    reference = bytes((i * 13) % 256 for i in range(32))
    search = GeneticSearch(
        fitness_fn=CompressionFitness(reference, create_compressor("zlib")),
        selector=TournamentSelector(probability=0.7, size=3),
        breeder=TwoPointBreeder(),
        mutator=default_mutator(probability=0.5),
        seed=7,
        logger=logger,
        config={"image": "a.png", "seed": 7},
    )
    search.init(5, IntGenome.zeros(32, -10, 10))
    search.run_until(lambda _best: False, max_generations=4)
    report = search.finish(k=2)

    assert search.experiment_id is not None
    rows = logger.fetch_metrics(search.experiment_id)
    result = logger.fetch_result(search.experiment_id)
    experiment = logger.fetch_experiment(search.experiment_id)
    logger.close()

    assert [int(row["generation_index"]) for row in rows] == [0, 1, 2, 3]
    assert experiment is not None
    assert experiment["seed"] == 7
    assert (experiment["population_size"], experiment["genome_length"]) == (5, 32)
    assert result is not None
    assert result["evaluations"] == report.evaluations
    assert result["generations"] == 4
    assert set(result["mutation_counts"]) == {"shift", "switch", "random"}


def test_same_config_and_seed_start_separate_experiments(tmp_path) -> None:
    logger = SearchLogger(tmp_path / "metrics.db")

    first = logger.start_experiment(config={"image": "a.png"}, seed=1)
    second = logger.start_experiment(config={"image": "a.png"}, seed=1)

    assert first != second
    assert logger.latest_experiment_id() == second
    logger.close()
