"""Compression-size fitness for per-pixel delta genomes."""

from __future__ import annotations

import threading

import numpy as np

from gapress.core.errors import LengthMismatchError
from gapress.fitness.compressors import Compressor
from gapress.genome.base import Genome


class CompressionFitness:
    """Score a genome by how well the perturbed reference buffer compresses.

    For each pixel ``i`` the perturbed value is
    ``clamp(reference[i] + genome[i], 0, 255)``. The perturbed buffer goes
    through ``compressor`` and the fitness is the squared compressed length,
    so lower is better.

    The reference buffer is copied into a read-only array at construction and
    can be shared across evaluation threads. Only the call counter is mutable
    and it is lock-protected.
    """

    def __init__(
        self,
        reference: bytes | bytearray | memoryview,
        compressor: Compressor,
        genome_length: int | None = None,
    ) -> None:
        self._reference = np.frombuffer(bytes(reference), dtype=np.uint8).astype(np.int32)
        self._reference.setflags(write=False)
        if genome_length is not None and int(genome_length) != self._reference.size:
            raise LengthMismatchError(self._reference.size, int(genome_length))
        self.compressor = compressor
        self._calls = 0
        self._lock = threading.Lock()
        self._baseline: int | None = None

    @property
    def length(self) -> int:
        return int(self._reference.size)

    @property
    def calls(self) -> int:
        """Number of fitness evaluations performed so far."""
        with self._lock:
            return self._calls

    def reference_bytes(self) -> bytes:
        return self._reference.astype(np.uint8).tobytes()

    def perturb(self, genome: Genome) -> bytes:
        """Apply the genome's deltas to the reference buffer."""
        if len(genome) != self._reference.size:
            raise LengthMismatchError(self._reference.size, len(genome))
        deltas = np.fromiter((genome[i] for i in range(len(genome))), dtype=np.int32, count=len(genome))
        return np.clip(self._reference + deltas, 0, 255).astype(np.uint8).tobytes()

    def __call__(self, genome: Genome) -> float:
        pixels = self.perturb(genome)
        with self._lock:
            self._calls += 1
        compressed = int(self.compressor(pixels))
        return float(compressed * compressed)

    def baseline(self) -> int:
        """Compressed size of the unperturbed reference buffer."""
        if self._baseline is None:
            self._baseline = int(self.compressor(self.reference_bytes()))
        return self._baseline

    def ratio(self, genome: Genome) -> float:
        """Compressed size of the perturbed buffer relative to the baseline.

        Not counted as an evaluation.
        """
        baseline = self.baseline()
        if baseline == 0:
            return 0.0
        return int(self.compressor(self.perturb(genome))) / baseline
