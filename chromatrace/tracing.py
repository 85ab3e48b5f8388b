"""
Chromatrace Tracing Module.

Potrace-based silhouette tracing in two flavours:

- binary: one opaque black path for everything darker than the threshold
- posterized: one black path per gray level, each with a fill-opacity chosen
  so that the stacked layers reproduce the level's darkness

Posterized layers are emitted lightest (largest) first, darkest last.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np
import potrace
import svgwrite
from skimage.filters import threshold_multiotsu, threshold_otsu

from .config import PipelineConfig
from .types import Markup, NormalizedRaster

logger = logging.getLogger(__name__)

# Used when the image has a single gray level and Otsu is undefined
DEFAULT_THRESHOLD = 128


@dataclass(frozen=True)
class PosterizeLayer:
    """One posterized layer: pixels with gray <= bound, painted at opacity."""

    bound: float
    opacity: float


def to_gray(image: np.ndarray) -> np.ndarray:
    """Luminance of an RGB image as uint8 [H, W]."""
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def binary_threshold(gray: np.ndarray, threshold: Optional[int] = None) -> float:
    if threshold is not None:
        return threshold
    if len(np.unique(gray)) < 2:
        return DEFAULT_THRESHOLD
    return float(threshold_otsu(gray))


def posterize_layers(
    gray: np.ndarray,
    steps: int = 4,
    threshold: Optional[int] = None,
) -> List[PosterizeLayer]:
    """
    Split a grayscale image into stacked layers.

    Args:
        gray: uint8 grayscale image
        steps: Maximum number of gray levels
        threshold: Ignore pixels lighter than this (None uses all pixels)

    Returns:
        Layers ordered lightest first
    """
    values = gray.ravel()
    if threshold is not None:
        values = values[values <= threshold]
    levels = np.unique(values)
    if len(levels) == 0:
        return []

    if len(levels) <= steps:
        bounds = levels.astype(float)
    else:
        bounds = np.unique(np.append(threshold_multiotsu(values, classes=steps), levels[-1]))

    # Darkness of each class (previous bound, bound]
    classes = []
    previous = -1.0
    for bound in bounds:
        in_class = values[(values > previous) & (values <= bound)]
        previous = bound
        if in_class.size == 0:
            continue
        classes.append((float(bound), 1.0 - float(in_class.mean()) / 255.0))

    layers = []
    actual = 0.0
    for bound, intensity in reversed(classes):
        if intensity <= 0 or actual >= 1:
            continue
        if actual == 0 or intensity >= 1:
            opacity = intensity
        else:
            opacity = (intensity - actual) / (1 - actual)
        opacity = min(max(round(opacity, 3), 0.0), 1.0)
        if opacity <= 0:
            continue
        actual = actual + (1 - actual) * opacity
        layers.append(PosterizeLayer(bound=bound, opacity=opacity))
    return layers


def _fmt(value: float) -> str:
    text = f'{value:.3f}'.rstrip('0').rstrip('.')
    return '0' if text == '-0' else text


def path_to_svg_data(path) -> str:
    """Convert a potrace path to an SVG 'd' attribute."""
    d = []
    for curve in path.curves:
        start = curve.start_point
        d.append(f"M{_fmt(start.x)},{_fmt(start.y)}")
        for segment in curve:
            end = segment.end_point
            if segment.is_corner:
                c = segment.c
                d.append(f"L{_fmt(c.x)},{_fmt(c.y)} L{_fmt(end.x)},{_fmt(end.y)}")
            else:
                c1 = segment.c1
                c2 = segment.c2
                d.append(
                    f"C{_fmt(c1.x)},{_fmt(c1.y)} {_fmt(c2.x)},{_fmt(c2.y)} "
                    f"{_fmt(end.x)},{_fmt(end.y)}"
                )
        d.append("Z")
    return " ".join(d)


class PotraceTracer:
    """Traces normalized rasters to binary or posterized SVG markup."""

    def __init__(
        self,
        turdsize: int = 2,
        alphamax: float = 1.0,
        opticurve: bool = True,
        opttolerance: float = 0.2,
        threshold: Optional[int] = None,
        steps: int = 4,
    ):
        self.turdsize = turdsize
        self.alphamax = alphamax
        self.opticurve = opticurve
        self.opttolerance = opttolerance
        self.threshold = threshold
        self.steps = steps

    @classmethod
    def from_config(cls, config: PipelineConfig) -> 'PotraceTracer':
        return cls(
            turdsize=config.turdsize,
            alphamax=config.alphamax,
            opticurve=config.opticurve,
            opttolerance=config.opttolerance,
            threshold=config.threshold,
            steps=config.posterize_steps,
        )

    def trace_mask(self, mask: np.ndarray) -> str:
        """Trace the True region of a boolean mask, returning path data."""
        # potracer treats False as foreground
        bitmap = potrace.Bitmap(~mask.astype(bool))
        path = bitmap.trace(
            turdsize=self.turdsize,
            alphamax=self.alphamax,
            opticurve=self.opticurve,
            opttolerance=self.opttolerance,
        )
        return path_to_svg_data(path)

    def trace(self, raster: NormalizedRaster) -> Markup:
        """Binary trace: a single opaque black path."""
        gray = to_gray(raster.to_array())
        threshold = binary_threshold(gray, self.threshold)
        d = self.trace_mask(gray <= threshold)

        dwg = self._drawing(raster.width, raster.height)
        dwg.add(dwg.path(d=d, fill='black', stroke='none', fill_rule='evenodd'))
        logger.debug("Binary trace at threshold %.1f", threshold)
        return dwg.tostring()

    def posterize(self, raster: NormalizedRaster) -> Markup:
        """Posterized trace: stacked black paths carrying fill-opacity."""
        gray = to_gray(raster.to_array())
        layers = posterize_layers(gray, self.steps, self.threshold)

        dwg = self._drawing(raster.width, raster.height)
        for layer in layers:
            d = self.trace_mask(gray <= layer.bound)
            if not d:
                continue
            dwg.add(dwg.path(
                d=d,
                fill='black',
                stroke='none',
                fill_rule='evenodd',
                fill_opacity=f'{layer.opacity:.3f}',
            ))
        logger.debug(
            "Posterized %d layers: %s",
            len(layers),
            ', '.join(f'<={lv.bound:.0f}@{lv.opacity:.3f}' for lv in layers),
        )
        return dwg.tostring()

    def _drawing(self, width: int, height: int) -> svgwrite.Drawing:
        dwg = svgwrite.Drawing(size=(width, height), profile='full', debug=False)
        dwg.viewbox(0, 0, width, height)
        return dwg
