"""Error taxonomy shared by the search engine and its collaborators."""

from __future__ import annotations


class GAPressError(Exception):
    """Base class for all GAPress errors."""


class OutOfRangeError(GAPressError, ValueError):
    """Raised when a gene value falls outside the genome bounds."""

    def __init__(self, value: int, min_value: int, max_value: int) -> None:
        super().__init__(f"Gene value {value} outside bounds [{min_value}, {max_value}]")
        self.value = value
        self.min_value = min_value
        self.max_value = max_value


class LengthMismatchError(GAPressError, ValueError):
    """Raised when two sequences that must align have different lengths."""

    def __init__(self, expected: int, actual: int, what: str = "genome") -> None:
        super().__init__(f"{what} length {actual} does not match expected length {expected}")
        self.expected = expected
        self.actual = actual


class EmptyPopulationError(GAPressError, ValueError):
    """Raised when a population is configured with fewer than one genome."""


class SearchStateError(GAPressError, RuntimeError):
    """Raised when a search lifecycle operation is called in the wrong state."""
