"""Command-line entry points for running, batching, and plotting searches."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from gapress.configs.loader import ConfigLoader, SearchConfig, build_config
from gapress.data.logger import SearchLogger
from gapress.main import run_search
from gapress.visualization.plotting import plot_experiment


def _run_single(config: SearchConfig, db_path: Path) -> str:
    logger = SearchLogger(db_path)
    experiment_id: str | None = None
    try:
        run_search(config, logger=logger)
        experiment_id = logger.latest_experiment_id()
    finally:
        logger.close()
    if experiment_id is None:
        raise RuntimeError("Expected experiment id when logger is configured.")
    return experiment_id


def run_cli(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="gapress")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run")
    run_cmd.add_argument("--config", default="configs/example_search.yaml")
    run_cmd.add_argument("--db", default="search_metrics.db")
    run_cmd.add_argument("--image", help="override the configured image path")
    run_cmd.add_argument("--max-generations", type=int, help="override the configured generation cap")

    batch_cmd = sub.add_parser("batch")
    batch_cmd.add_argument("--config", default="configs/example_batch.yaml")
    batch_cmd.add_argument("--db", default="search_metrics.db")

    plot_cmd = sub.add_parser("plot")
    plot_cmd.add_argument("--experiment")
    plot_cmd.add_argument("--db", default="search_metrics.db")
    plot_cmd.add_argument("--out", default="artifacts/metrics.png")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level))

    if args.command == "run":
        config = ConfigLoader.load(args.config)
        overrides = config.to_dict()
        if args.image:
            overrides["image"] = args.image
        if args.max_generations is not None:
            overrides["max_generations"] = args.max_generations
        if overrides != config.to_dict():
            config = build_config(overrides)
        exp_id = _run_single(config, Path(args.db))
        print(exp_id)
        return 0

    if args.command == "batch":
        configs = ConfigLoader.load_many(args.config)
        for config in configs:
            exp_id = _run_single(config, Path(args.db))
            print(exp_id)
        return 0

    if args.command == "plot":
        experiment_id = args.experiment
        if experiment_id is None:
            logger = SearchLogger(args.db)
            experiment_id = logger.latest_experiment_id()
            logger.close()
            if experiment_id is None:
                parser.error(f"no experiments recorded in {args.db}")
        path = plot_experiment(args.db, experiment_id, args.out)
        print(path)
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(run_cli())
