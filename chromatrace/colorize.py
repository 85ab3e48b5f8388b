"""
Chromatrace Palette Recovery.

Recovers a colour for every solid gray shape of a resolved posterized trace:

1. Render the markup at the original raster's size
2. Classify every rendered pixel to its nearest fill colour (bucket)
3. Median-cut quantize the original photo's pixels inside each bucket
4. Replace each bucket's fill with its most dominant quantized colour

Usage:
    from chromatrace.colorize import colorize_svg

    colored = colorize_svg(solid_svg, raster.data)
"""

import logging
from types import MappingProxyType
from typing import Mapping, Tuple

import numpy as np
from PIL import Image

from .colors import rgb_to_hex, to_opaque_rgb
from .markup import ShapeDocument
from .nearest import NearestColorClassifier
from .pixels import get_pixels, sample_markup
from .types import ColorBucket, HexColor, Markup, Palette, PixelGrid, PixelGridMismatch

logger = logging.getLogger(__name__)

DEFAULT_PALETTE_SIZE = 5


def extract_palette(rgb: np.ndarray, color_count: int = DEFAULT_PALETTE_SIZE) -> Palette:
    """
    Quantize a set of pixels using PIL's median cut algorithm.

    Args:
        rgb: Opaque pixels, shape [N, 3]
        color_count: Target number of colours

    Returns:
        Palette ordered by pixel count, most dominant first
    """
    pixels = np.asarray(rgb, dtype=np.uint8).reshape(1, -1, 3)
    if pixels.shape[1] == 0:
        raise ValueError("Cannot quantize an empty pixel set")

    quantized = Image.fromarray(pixels).quantize(
        colors=color_count, method=Image.Quantize.MEDIANCUT
    )
    raw_palette = quantized.getpalette()
    counts = sorted(quantized.getcolors(), key=lambda entry: (-entry[0], entry[1]))

    colors = tuple(
        tuple(raw_palette[index * 3:index * 3 + 3]) for _, index in counts
    )
    return Palette(colors=colors, counts=tuple(count for count, _ in counts))


def build_color_buckets(
    markup_grid: PixelGrid,
    classifier: NearestColorClassifier,
) -> Tuple[ColorBucket, ...]:
    """
    Group rendered pixel indices by nearest placeholder colour.

    Returns:
        One ColorBucket per classifier colour, in palette order
    """
    comparison = to_opaque_rgb(markup_grid.pixels, markup_grid.channels)
    labels = classifier.classify_pixels(comparison)

    buckets = []
    for index, color in enumerate(classifier.colors):
        indices = np.flatnonzero(labels == index)
        indices.setflags(write=False)
        buckets.append(ColorBucket(placeholder=color, pixel_indices=indices))
    return tuple(buckets)


def recover_bucket_colors(
    buckets: Tuple[ColorBucket, ...],
    original_grid: PixelGrid,
    palette_size: int = DEFAULT_PALETTE_SIZE,
) -> Mapping[HexColor, HexColor]:
    """
    Pick the dominant original colour for each bucket.

    Buckets without pixels keep their placeholder colour.

    Returns:
        Read-only mapping placeholder hex -> recovered hex
    """
    original = to_opaque_rgb(original_grid.pixels, original_grid.channels)

    recovered = {}
    for bucket in buckets:
        if len(bucket) == 0:
            logger.debug("Bucket %s received no pixels, keeping it", bucket.placeholder)
            recovered[bucket.placeholder] = bucket.placeholder
            continue
        palette = extract_palette(original[bucket.pixel_indices], palette_size)
        recovered[bucket.placeholder] = rgb_to_hex(palette.dominant)
    return MappingProxyType(recovered)


def colorize_svg(
    markup: Markup,
    original: bytes,
    palette_size: int = DEFAULT_PALETTE_SIZE,
) -> Markup:
    """
    Replace placeholder fills with colours recovered from the original image.

    Args:
        markup: Solid-gray SVG markup
        original: Encoded original raster (same pixel size the markup renders at)
        palette_size: Median cut palette size per bucket

    Returns:
        Colorized SVG markup; shapes and geometry are unchanged
    """
    document = ShapeDocument.parse(markup)
    colors = document.fill_colors()
    if not colors:
        return markup

    classifier = NearestColorClassifier(colors)
    original_grid = get_pixels(original)
    markup_grid = sample_markup(markup, original_grid.width, original_grid.height)
    if markup_grid.size != original_grid.size:
        raise PixelGridMismatch(
            f"Rendered markup is {markup_grid.size}, original is {original_grid.size}"
        )

    buckets = build_color_buckets(markup_grid, classifier)
    mapping = recover_bucket_colors(buckets, original_grid, palette_size)
    document.replace_fills(mapping)

    logger.debug(
        "Recovered %d colours: %s",
        len(mapping),
        ', '.join(f'{old}->{new}' for old, new in mapping.items()),
    )
    return document.to_string()
