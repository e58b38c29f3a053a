"""SQLite store for search runs: one metadata row, per-generation metrics and the final result."""

from __future__ import annotations

import hashlib
import json
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Mapping


class SearchLogger:
    """Persist search metadata, per-generation metrics and final results in SQLite."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.connection = sqlite3.connect(self.db_path)
        self.connection.row_factory = sqlite3.Row
        self._ensure_schema()

    def close(self) -> None:
        self.connection.close()

    def _ensure_schema(self) -> None:
        self.connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS search_metadata (
                experiment_id TEXT PRIMARY KEY,
                seed INTEGER NOT NULL,
                population_size INTEGER NOT NULL,
                genome_length INTEGER NOT NULL,
                config_json TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS generation_metrics (
                experiment_id TEXT NOT NULL,
                generation_index INTEGER NOT NULL,
                best_fitness REAL NOT NULL,
                mean_fitness REAL NOT NULL,
                worst_fitness REAL NOT NULL,
                diversity REAL NOT NULL,
                evaluations INTEGER NOT NULL,
                PRIMARY KEY (experiment_id, generation_index),
                FOREIGN KEY (experiment_id)
                    REFERENCES search_metadata (experiment_id)
                    ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS search_results (
                experiment_id TEXT PRIMARY KEY,
                evaluations INTEGER NOT NULL,
                generations INTEGER NOT NULL,
                best_fitness REAL NOT NULL,
                mutation_counts TEXT NOT NULL,
                FOREIGN KEY (experiment_id)
                    REFERENCES search_metadata (experiment_id)
                    ON DELETE CASCADE
            );
            """
        )
        self.connection.commit()

    def start_experiment(
        self,
        config: Mapping[str, Any],
        seed: int,
        population_size: int = 0,
        genome_length: int = 0,
    ) -> str:
        """Record a new search run and return its 16-hex-digit experiment id.

        The id mixes in a random nonce, so rerunning the same config and seed
        produces a new experiment rather than overwriting the old one.
        """
        config_json = json.dumps(dict(config), sort_keys=True, default=str)
        key = f"{config_json}:{seed}:{uuid.uuid4().hex}"
        experiment_id = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]

        self.connection.execute(
            """
            INSERT INTO search_metadata (
                experiment_id, seed, population_size, genome_length, config_json
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (experiment_id, int(seed), int(population_size), int(genome_length), config_json),
        )
        self.connection.commit()
        return experiment_id

    def fetch_experiment(self, experiment_id: str) -> dict[str, Any] | None:
        """Return the seed, sizes and config a run was started with."""
        row = self.connection.execute(
            """
            SELECT seed, population_size, genome_length, config_json
            FROM search_metadata
            WHERE experiment_id = ?
            """,
            (experiment_id,),
        ).fetchone()
        if row is None:
            return None
        experiment = dict(row)
        experiment["config"] = json.loads(experiment.pop("config_json"))
        return experiment

    def log_metrics(self, experiment_id: str, generation_index: int, metrics: Mapping[str, float]) -> None:
        values = (
            float(metrics.get("best_fitness", 0.0)),
            float(metrics.get("mean_fitness", 0.0)),
            float(metrics.get("worst_fitness", 0.0)),
            float(metrics.get("diversity", 0.0)),
            int(metrics.get("evaluations", 0)),
        )
        self.connection.execute(
            """
            INSERT OR REPLACE INTO generation_metrics (
                experiment_id,
                generation_index,
                best_fitness,
                mean_fitness,
                worst_fitness,
                diversity,
                evaluations
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (experiment_id, int(generation_index), *values),
        )
        self.connection.commit()

    def log_result(
        self,
        experiment_id: str,
        evaluations: int,
        generations: int,
        best_fitness: float,
        mutation_counts: Mapping[str, int],
    ) -> None:
        self.connection.execute(
            """
            INSERT OR REPLACE INTO search_results (
                experiment_id, evaluations, generations, best_fitness, mutation_counts
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (
                experiment_id,
                int(evaluations),
                int(generations),
                float(best_fitness),
                json.dumps(dict(mutation_counts), sort_keys=True),
            ),
        )
        self.connection.commit()

    def fetch_metrics(self, experiment_id: str) -> list[dict[str, float]]:
        """Return ordered generation metrics for plotting/analysis."""
        rows = self.connection.execute(
            """
            SELECT generation_index, best_fitness, mean_fitness, worst_fitness, diversity, evaluations
            FROM generation_metrics
            WHERE experiment_id = ?
            ORDER BY generation_index ASC
            """,
            (experiment_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def fetch_result(self, experiment_id: str) -> dict[str, Any] | None:
        row = self.connection.execute(
            """
            SELECT evaluations, generations, best_fitness, mutation_counts
            FROM search_results
            WHERE experiment_id = ?
            """,
            (experiment_id,),
        ).fetchone()
        if row is None:
            return None
        result = dict(row)
        result["mutation_counts"] = json.loads(result["mutation_counts"])
        return result

    def latest_experiment_id(self) -> str | None:
        """Return most recently created experiment id, if any."""
        row = self.connection.execute(
            """
            SELECT experiment_id
            FROM search_metadata
            ORDER BY created_at DESC, rowid DESC
            LIMIT 1
            """
        ).fetchone()
        return str(row[0]) if row is not None else None
