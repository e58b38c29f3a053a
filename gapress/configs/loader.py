"""Configuration loading and validation utilities for compression searches."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml


_REQUIRED_KEYS: tuple[str, ...] = ("image",)


@dataclass(frozen=True)
class SearchConfig:
    """Validated search configuration container.

    Typed fields hold the parameters the search understands; unrecognized
    keys are kept in ``extras`` and reachable through ``get``. Defaults
    reproduce the classic run: population 10, tournament of 5 with
    probability 0.7, crossover probability 0.7, mutation probability 0.5 and
    deltas in ``[-10, 10]`` on an image downscaled by 8.
    """

    image: str
    scale: int = 8
    population_size: int = 10
    tournament_size: int = 5
    tournament_probability: float = 0.7
    breed_probability: float = 0.7
    mutate_probability: float = 0.5
    min_delta: int = -10
    max_delta: int = 10
    shift_step: int = 1
    compressor: str = "zlib"
    seed: int | None = None
    workers: int = 1
    max_generations: int | None = None
    target_ratio: float | None = None
    top_k: int = 10
    output_dir: str = "."
    extras: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Return a configuration value by key.

        Args:
            key: Configuration key name.
            default: Value to return if key does not exist.

        Returns:
            Value associated with ``key`` or ``default``.
        """
        if key != "extras" and hasattr(self, key):
            return getattr(self, key)
        return self.extras.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Return a full dictionary view of the configuration."""
        payload = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extras"}
        payload.update(self.extras)
        return payload


_KNOWN_KEYS: frozenset[str] = frozenset(f.name for f in fields(SearchConfig) if f.name != "extras")


class ConfigLoader:
    """Load and validate search configuration files (YAML or JSON)."""

    @staticmethod
    def load(path: str | Path) -> SearchConfig:
        """Load a single search config from ``path``.

        Args:
            path: Path to a YAML or JSON config file.

        Returns:
            A validated ``SearchConfig`` instance.
        """
        payload = _read_config_payload(path)
        if not isinstance(payload, Mapping):
            raise ValueError("Single config file must contain a mapping object.")
        return build_config(payload)

    @staticmethod
    def load_many(path: str | Path) -> list[SearchConfig]:
        """Load one or many search configs from ``path``.

        Supports:
            - top-level mapping for a single search
            - top-level list of mappings
            - top-level mapping with an ``experiments`` list
        """
        payload = _read_config_payload(path)

        if isinstance(payload, list):
            return [build_config(item) for item in payload]

        if isinstance(payload, Mapping) and "experiments" in payload:
            experiments = payload["experiments"]
            if not isinstance(experiments, list):
                raise ValueError("'experiments' must be a list of mappings.")
            return [build_config(item) for item in experiments]

        if isinstance(payload, Mapping):
            return [build_config(payload)]

        raise ValueError("Unsupported config file structure.")


def _read_config_payload(path: str | Path) -> Any:
    """Read raw config payload from JSON or YAML file."""
    config_path = Path(path)
    suffix = config_path.suffix.lower()
    content = config_path.read_text(encoding="utf-8")

    if suffix == ".json":
        return json.loads(content)

    if suffix in {".yaml", ".yml"}:
        return yaml.safe_load(content)

    raise ValueError(f"Unsupported config extension: {suffix}")


def _optional(value: Any, cast: Any) -> Any:
    return None if value is None else cast(value)


def build_config(payload: Mapping[str, Any]) -> SearchConfig:
    """Validate raw mapping and build ``SearchConfig``."""
    if not isinstance(payload, Mapping):
        raise ValueError("Config entries must be mappings.")
    missing = [key for key in _REQUIRED_KEYS if key not in payload]
    if missing:
        raise ValueError(f"Missing required config keys: {', '.join(missing)}")

    defaults = SearchConfig(image="")
    values = {key: payload.get(key, getattr(defaults, key)) for key in _KNOWN_KEYS}

    config = SearchConfig(
        image=str(values["image"]),
        scale=int(values["scale"]),
        population_size=int(values["population_size"]),
        tournament_size=int(values["tournament_size"]),
        tournament_probability=float(values["tournament_probability"]),
        breed_probability=float(values["breed_probability"]),
        mutate_probability=float(values["mutate_probability"]),
        min_delta=int(values["min_delta"]),
        max_delta=int(values["max_delta"]),
        shift_step=int(values["shift_step"]),
        compressor=str(values["compressor"]),
        seed=_optional(values["seed"], int),
        workers=int(values["workers"]),
        max_generations=_optional(values["max_generations"], int),
        target_ratio=_optional(values["target_ratio"], float),
        top_k=int(values["top_k"]),
        output_dir=str(values["output_dir"]),
        extras={k: v for k, v in payload.items() if k not in _KNOWN_KEYS},
    )
    _validate(config)
    return config


def _validate(config: SearchConfig) -> None:
    if not config.image:
        raise ValueError("image must be non-empty")
    if config.scale < 1:
        raise ValueError("scale must be >= 1")
    if config.population_size <= 0:
        raise ValueError("population_size must be > 0")
    if config.tournament_size < 1:
        raise ValueError("tournament_size must be >= 1")
    if not 0.0 < config.tournament_probability <= 1.0:
        raise ValueError("tournament_probability must be in (0.0, 1.0]")
    if not 0.0 <= config.breed_probability <= 1.0:
        raise ValueError("breed_probability must be in [0.0, 1.0]")
    if not 0.0 <= config.mutate_probability <= 1.0:
        raise ValueError("mutate_probability must be in [0.0, 1.0]")
    if config.min_delta > config.max_delta:
        raise ValueError("min_delta must be <= max_delta")
    if not config.min_delta <= 0 <= config.max_delta:
        raise ValueError("delta bounds must contain 0 so the zero seed genome is valid")
    if config.shift_step < 1:
        raise ValueError("shift_step must be >= 1")
    if config.workers < 1:
        raise ValueError("workers must be >= 1")
    if config.max_generations is not None and config.max_generations < 0:
        raise ValueError("max_generations must be >= 0")
    if config.target_ratio is not None and config.target_ratio <= 0.0:
        raise ValueError("target_ratio must be > 0")
    if config.top_k < 0:
        raise ValueError("top_k must be >= 0")
