"""
Chromatrace Pixel Sampler.

Decodes raster buffers and rendered SVG markup into flat pixel grids. The
sampler only decodes; channel constraints are enforced by the consumer.
"""

import io

import cairosvg
import numpy as np
from PIL import Image

from .types import Markup, PixelGrid, RasterDecodeError

# Modes whose channels are kept as decoded
_NATIVE_MODES = {'RGB': 3, 'RGBA': 4, 'L': 1, 'LA': 2}


def _normalize_mode(image: Image.Image) -> Image.Image:
    if image.mode in _NATIVE_MODES:
        return image
    has_alpha = 'transparency' in image.info or image.mode in ('PA', 'RGBa', 'La')
    if image.mode in ('1', 'I', 'I;16', 'F') and not has_alpha:
        return image.convert('L')
    return image.convert('RGBA' if has_alpha else 'RGB')


def get_pixels(data: bytes) -> PixelGrid:
    """
    Decode an encoded image buffer into a PixelGrid.

    Args:
        data: PNG/JPEG/... bytes

    Returns:
        PixelGrid with pixels shaped [width * height, channels]
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError) as e:
        raise RasterDecodeError(f"Could not decode image: {e}") from e

    image = _normalize_mode(image)
    channels = _NATIVE_MODES[image.mode]
    array = np.asarray(image, dtype=np.uint8)
    return PixelGrid(
        pixels=array.reshape(-1, channels),
        width=image.width,
        height=image.height,
        channels=channels,
    )


def render_markup(markup: Markup, width: int, height: int) -> bytes:
    """
    Render SVG content to PNG bytes at exact pixel dimensions.

    Args:
        markup: SVG content as string
        width: Target width
        height: Target height

    Returns:
        PNG bytes (RGBA, transparent where nothing is painted)
    """
    return cairosvg.svg2png(
        bytestring=markup.encode('utf-8'),
        output_width=width,
        output_height=height,
    )


def sample_markup(markup: Markup, width: int, height: int) -> PixelGrid:
    """Render markup and decode it into a PixelGrid."""
    return get_pixels(render_markup(markup, width, height))
