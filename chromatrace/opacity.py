"""
Chromatrace Opacity-Stack Resolver.

Posterized potrace output stacks black shapes with different fill-opacity
values. This module folds each opacity level together with every lighter
level into one cumulative opacity and replaces it with the equivalent solid
gray, so every shape ends up with an opaque fill.
"""

import logging
from functools import reduce
from typing import Iterable, List

from .colors import combine_opacity, hexify
from .markup import ShapeDocument
from .types import Markup, OpacityLevel

logger = logging.getLogger(__name__)

PLACEHOLDER_FILL = 'black'


def resolve_opacity_levels(opacities: Iterable[float]) -> List[OpacityLevel]:
    """
    Compute the cumulative opacity and gray of each distinct opacity.

    Levels are sorted from most to least opaque. Each level's cohort is itself
    plus every level after it in that order.

    Args:
        opacities: fill-opacity values, duplicates allowed

    Returns:
        List of OpacityLevel, most opaque first
    """
    ordered = sorted(set(opacities), reverse=True)
    levels = []
    for index, opacity in enumerate(ordered):
        true_opacity = reduce(combine_opacity, ordered[index:], 0.0)
        levels.append(OpacityLevel(
            fill_opacity=opacity,
            true_opacity=true_opacity,
            hex=hexify((0, 0, 0, true_opacity)),
        ))
    return levels


def get_solid_svg(markup: Markup) -> Markup:
    """
    Replace every fill-opacity in posterized markup with a solid gray fill.

    Markup without fill-opacity attributes is returned unchanged.
    """
    document = ShapeDocument.parse(markup)
    groups = document.fill_opacities()
    if not groups:
        return markup

    document.remove_fill(PLACEHOLDER_FILL)
    levels = resolve_opacity_levels(groups)
    for level in levels:
        document.set_fill_for_opacity(level.fill_opacity, level.hex)

    logger.debug(
        "Resolved %d opacity levels: %s",
        len(levels),
        ', '.join(f'{lv.fill_opacity:g}->{lv.hex}' for lv in levels),
    )
    return document.to_string()
