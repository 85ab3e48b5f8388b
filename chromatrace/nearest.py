"""Nearest-colour classification against a small fixed palette."""

from typing import Iterable, Tuple, Union

import numpy as np

from .colors import hex_to_rgb
from .types import RGB, HexColor

# Pixels classified per batch, bounds the [chunk, k, 3] distance array
CHUNK_SIZE = 1 << 16


class NearestColorClassifier:
    """
    Assigns colours to the closest palette entry by Euclidean RGB distance.

    The palette is deduplicated on construction, first occurrence wins, and
    ties are resolved in favour of the earlier palette entry.
    """

    def __init__(self, colors: Iterable[HexColor]):
        unique = []
        seen = set()
        for color in colors:
            rgb = hex_to_rgb(color)
            if rgb in seen:
                continue
            seen.add(rgb)
            unique.append((color, rgb))
        if not unique:
            raise ValueError("NearestColorClassifier needs at least one colour")

        self._colors: Tuple[HexColor, ...] = tuple(c for c, _ in unique)
        self._palette = np.array([rgb for _, rgb in unique], dtype=np.int32)
        self._palette.setflags(write=False)

    @property
    def colors(self) -> Tuple[HexColor, ...]:
        return self._colors

    def __len__(self) -> int:
        return len(self._colors)

    def classify(self, color: Union[HexColor, RGB]) -> HexColor:
        """Return the palette colour nearest to a hex or RGB colour."""
        rgb = hex_to_rgb(color) if isinstance(color, str) else tuple(color)
        index = int(self.classify_pixels(np.array([rgb[:3]]))[0])
        return self._colors[index]

    def classify_pixels(self, rgb: np.ndarray) -> np.ndarray:
        """
        Classify an [N, 3] array of opaque colours.

        Returns:
            int array [N] of palette indices
        """
        rgb = np.asarray(rgb, dtype=np.int32).reshape(-1, 3)
        labels = np.empty(len(rgb), dtype=np.intp)
        for start in range(0, len(rgb), CHUNK_SIZE):
            chunk = rgb[start:start + CHUNK_SIZE]
            diff = chunk[:, None, :] - self._palette[None, :, :]
            distances = np.einsum('nkc,nkc->nk', diff, diff)
            # argmin returns the first minimum
            labels[start:start + CHUNK_SIZE] = np.argmin(distances, axis=1)
        return labels

    def __repr__(self) -> str:
        return f"NearestColorClassifier({', '.join(self._colors)})"
