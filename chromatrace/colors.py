"""
Chromatrace Color Math.

Hex/RGB conversion and alpha compositing. Alpha is only ever resolved to a
physical colour by blending over a white background, both for scalar colour
expressions and for whole pixel grids.
"""

import re
from typing import Sequence, Union

import numpy as np

from .types import RGB, HexColor, UnsupportedChannelLayout

WHITE = 255

_SHORT_HEX = re.compile(r'^#?([a-f\d])([a-f\d])([a-f\d])$', re.IGNORECASE)
_LONG_HEX = re.compile(r'^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$', re.IGNORECASE)
_COLOR_EXPR = re.compile(r'^rgba?\(([^)]*)\)$', re.IGNORECASE)

ColorLike = Union[str, Sequence[float]]


def hex_to_rgb(hex_color: HexColor) -> RGB:
    """
    Convert a hex colour to an (r, g, b) tuple.

    Args:
        hex_color: '#rrggbb', 'rrggbb' or 3-digit shorthand

    Returns:
        Tuple of channel values 0-255
    """
    value = hex_color.strip()
    short = _SHORT_HEX.match(value)
    if short:
        value = ''.join(c * 2 for c in short.groups())
    match = _LONG_HEX.match(value)
    if not match:
        raise ValueError(f"Not a hex colour: {hex_color!r}")
    r, g, b = (int(part, 16) for part in match.groups())
    return r, g, b


def rgb_to_hex(rgb: Sequence[int]) -> HexColor:
    r, g, b = (int(c) for c in rgb[:3])
    return f'#{r:02x}{g:02x}{b:02x}'


def blend_channel(channel: float, alpha: float) -> int:
    """Blend one channel over white, rounding half up."""
    return int(np.floor(alpha * channel + (1 - alpha) * WHITE + 0.5))


def _parse_color(color: ColorLike):
    if isinstance(color, str):
        match = _COLOR_EXPR.match(color.strip())
        if not match:
            raise ValueError(f"Not an rgb()/rgba() expression: {color!r}")
        values = [float(v) for v in match.group(1).replace(' ', '').split(',')]
    else:
        values = [float(v) for v in color]
    if len(values) not in (3, 4):
        raise ValueError(f"Expected 3 or 4 colour components, got {len(values)}")
    alpha = values[3] if len(values) == 4 else 1.0
    return values[:3], alpha


def hexify(color: ColorLike) -> HexColor:
    """
    Convert a colour to an opaque hex value.

    Accepts 'rgb(r, g, b)', 'rgba(r, g, b, a)' or an (r, g, b[, a]) tuple with
    alpha in 0..1. Translucent colours are blended over white.

    Example:
        >>> hexify('rgba(0, 0, 0, 0.5)')
        '#808080'
    """
    channels, alpha = _parse_color(color)
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"Alpha must be within 0..1, got {alpha}")
    return rgb_to_hex([blend_channel(c, alpha) for c in channels])


def combine_opacity(a: float, b: float) -> float:
    """Opacity of two translucent layers stacked on each other."""
    return 1 - (1 - a) * (1 - b)


def to_opaque_rgb(pixels: np.ndarray, channels: int) -> np.ndarray:
    """
    Resolve a pixel array to opaque RGB.

    Args:
        pixels: Array of shape [N, channels], uint8
        channels: Channel count of the source grid

    Returns:
        uint8 array of shape [N, 3]

    Raises:
        UnsupportedChannelLayout: if channels is neither 3 nor 4
    """
    if channels == 3:
        return np.asarray(pixels, dtype=np.uint8).reshape(-1, 3)
    if channels == 4:
        data = np.asarray(pixels, dtype=np.float64).reshape(-1, 4)
        alpha = data[:, 3:4] / 255.0
        blended = np.floor(alpha * data[:, :3] + (1 - alpha) * WHITE + 0.5)
        return np.clip(blended, 0, 255).astype(np.uint8)
    raise UnsupportedChannelLayout(f"Unsupported number of channels: {channels}")
