"""Genome capability contract used by every search operator."""

from __future__ import annotations

from typing import Callable, Protocol, TypeVar, runtime_checkable


G = TypeVar("G", bound="Genome")

FitnessFn = Callable[["Genome"], float]


@runtime_checkable
class Genome(Protocol):
    """Capability set a candidate solution must provide.

    Selection, breeding and mutation depend only on these members, not on a
    concrete class hierarchy. Any object that satisfies them can be searched.

    Invariants:
        - ``copy`` returns an object that shares no mutable state with the
          original.
        - ``set_gene`` rejects values outside ``[min_value, max_value]`` and
          invalidates the cached fitness.
        - ``evaluate`` calls the fitness function only when no cached value
          exists.
    """

    min_value: int
    max_value: int

    def copy(self: G) -> G:
        ...

    def set_gene(self, index: int, value: int) -> None:
        ...

    def evaluate(self, fitness_fn: FitnessFn) -> float:
        ...

    @property
    def score(self) -> float | None:
        ...

    def __len__(self) -> int:
        ...

    def __getitem__(self, index: int) -> int:
        ...
