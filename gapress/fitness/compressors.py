"""Registry of byte compressors exposed as ``bytes -> compressed length``."""

from __future__ import annotations

import bz2
import lzma
import zlib
from typing import Callable


Compressor = Callable[[bytes], int]


_COMPRESSORS: dict[str, Compressor] = {}


def register_compressor(name: str, compressor: Compressor) -> None:
    _COMPRESSORS[str(name)] = compressor


def available_compressors() -> list[str]:
    return sorted(_COMPRESSORS)


def create_compressor(name: str) -> Compressor:
    compressor = _COMPRESSORS.get(str(name))
    if compressor is None:
        available = ", ".join(available_compressors()) or "<none>"
        raise ValueError(f"Unknown compressor '{name}'. Available: {available}")
    return compressor


def identity_length(data: bytes) -> int:
    """Length of the input; useful as a deterministic stand-in compressor."""
    return len(data)


def zlib_length(data: bytes) -> int:
    return len(zlib.compress(data, 9))


def bz2_length(data: bytes) -> int:
    return len(bz2.compress(data, 9))


def lzma_length(data: bytes) -> int:
    return len(lzma.compress(data, preset=9))


def _register_defaults() -> None:
    if _COMPRESSORS:
        return
    register_compressor("identity", identity_length)
    register_compressor("zlib", zlib_length)
    register_compressor("bz2", bz2_length)
    register_compressor("lzma", lzma_length)


_register_defaults()
