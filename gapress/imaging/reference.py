"""Reference image provider: decode, downscale, grayscale, flatten, re-encode."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image


@dataclass(frozen=True)
class ReferenceImage:
    """Row-major 8-bit grayscale pixels plus their dimensions."""

    width: int
    height: int
    pixels: bytes

    def __post_init__(self) -> None:
        if len(self.pixels) != self.width * self.height:
            raise ValueError(
                f"pixel buffer has {len(self.pixels)} bytes, expected {self.width * self.height}"
            )

    def __len__(self) -> int:
        return len(self.pixels)

    def to_image(self) -> Image.Image:
        return Image.frombytes("L", (self.width, self.height), self.pixels)

    def with_pixels(self, pixels: bytes) -> "ReferenceImage":
        return ReferenceImage(width=self.width, height=self.height, pixels=bytes(pixels))


def to_gray(image: Image.Image) -> Image.Image:
    """Convert to grayscale as the unweighted mean of the RGB channels."""
    rgb = np.asarray(image.convert("RGB"), dtype=np.float64)
    mean = np.floor(rgb.sum(axis=2) / 3.0 + 0.5)
    return Image.fromarray(np.clip(mean, 0, 255).astype(np.uint8))


def downscale(image: Image.Image, scale: int) -> Image.Image:
    """Shrink each dimension by ``scale`` using nearest-neighbour sampling."""
    if scale < 1:
        raise ValueError("scale must be >= 1")
    if scale == 1:
        return image
    width = max(1, image.width // scale)
    height = max(1, image.height // scale)
    return image.resize((width, height), Image.Resampling.NEAREST)


def load_reference(path: str | Path, scale: int = 1) -> ReferenceImage:
    """Decode ``path``, downscale it and flatten it to grayscale bytes."""
    with Image.open(path) as source:
        source.load()
        gray = to_gray(downscale(source, scale))
    return ReferenceImage(width=gray.width, height=gray.height, pixels=gray.tobytes())


def save_png(reference: ReferenceImage, path: str | Path) -> Path:
    """Write ``reference`` as a grayscale PNG and return the path."""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    reference.to_image().save(output, format="PNG")
    return output
