#!/usr/bin/env python3
"""
Test suite for palette recovery.
"""

from unittest import mock

import numpy as np
import pytest

from chromatrace.colorize import (
    build_color_buckets,
    colorize_svg,
    extract_palette,
    recover_bucket_colors,
)
from chromatrace.colors import hex_to_rgb
from chromatrace.markup import ShapeDocument
from chromatrace.nearest import NearestColorClassifier
from chromatrace.opacity import get_solid_svg
from chromatrace.pixels import get_pixels, sample_markup
from chromatrace.types import PixelGrid, PixelGridMismatch

SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10" viewBox="0 0 10 10">'
    '{}</svg>'
)

# Lightest layer covers everything, darkest only the right half
POSTERIZED = SVG.format(
    '<path d="M0,0 H10 V10 H0 Z" fill="black" fill-opacity="0.500"/>'
    '<path d="M5,0 H10 V10 H5 Z" fill="black" fill-opacity="1.000"/>'
)


def is_reddish(hex_color):
    r, g, b = hex_to_rgb(hex_color)
    return r > 200 and g < 50 and b < 50


def is_bluish(hex_color):
    r, g, b = hex_to_rgb(hex_color)
    return b > 200 and r < 50 and g < 50


class TestExtractPalette:
    """Test median cut quantization."""

    def test_dominant_first(self):
        pixels = np.array([[255, 0, 0]] * 70 + [[0, 0, 255]] * 30, dtype=np.uint8)
        palette = extract_palette(pixels, 5)
        assert palette.counts == (70, 30)
        assert is_reddish('#%02x%02x%02x' % palette.dominant)

    def test_single_color(self):
        pixels = np.array([[10, 200, 30]] * 4, dtype=np.uint8)
        palette = extract_palette(pixels, 5)
        assert len(palette.colors) == 1
        assert palette.counts == (4,)

    def test_empty(self):
        with pytest.raises(ValueError):
            extract_palette(np.zeros((0, 3), dtype=np.uint8))


class TestBuckets:
    """Test bucket construction and colour recovery."""

    def test_buckets_partition_pixels(self):
        solid = get_solid_svg(POSTERIZED)
        grid = sample_markup(solid, 10, 10)
        classifier = NearestColorClassifier(ShapeDocument.parse(solid).fill_colors())
        buckets = build_color_buckets(grid, classifier)

        assert [b.placeholder for b in buckets] == ['#808080', '#000000']
        assert sum(len(b) for b in buckets) == 100
        assert len(buckets[0]) == 50

    def test_bucket_indices_are_read_only(self):
        solid = get_solid_svg(POSTERIZED)
        grid = sample_markup(solid, 10, 10)
        buckets = build_color_buckets(grid, NearestColorClassifier(['#808080', '#000000']))
        with pytest.raises(ValueError):
            buckets[0].pixel_indices[0] = 1

    def test_recovered_mapping_is_read_only(self, red_blue_png):
        solid = get_solid_svg(POSTERIZED)
        grid = sample_markup(solid, 10, 10)
        buckets = build_color_buckets(grid, NearestColorClassifier(['#808080', '#000000']))
        mapping = recover_bucket_colors(buckets, get_pixels(red_blue_png))
        with pytest.raises(TypeError):
            mapping['#808080'] = '#ffffff'


class TestColorizeSVG:
    """Test end-to-end colour recovery on markup."""

    def test_red_blue_recovery(self, red_blue_png):
        """Mid-gray and black layers recolour to red and blue."""
        solid = get_solid_svg(POSTERIZED)
        assert [s.get('fill') for s in ShapeDocument.parse(solid).shapes()] == ['#808080', '#000000']

        colored = colorize_svg(solid, red_blue_png)
        fills = [s.get('fill') for s in ShapeDocument.parse(colored).shapes()]

        assert is_reddish(fills[0])
        assert is_bluish(fills[1])

    def test_geometry_preserved(self, red_blue_png):
        solid = get_solid_svg(POSTERIZED)
        colored = colorize_svg(solid, red_blue_png)

        before = ShapeDocument.parse(solid).shapes()
        after = ShapeDocument.parse(colored).shapes()
        assert len(before) == len(after)
        assert [s.get('d') for s in before] == [s.get('d') for s in after]

    def test_recovered_colors_are_opaque_hex(self, red_blue_png):
        colored = colorize_svg(get_solid_svg(POSTERIZED), red_blue_png)
        for shape in ShapeDocument.parse(colored).shapes():
            assert len(shape.get('fill')) == 7
            assert shape.get('fill-opacity') is None

    def test_hidden_layer_keeps_placeholder(self, red_blue_png):
        markup = SVG.format(
            '<path d="M0,0 H10 V10 H0 Z" fill="#808080"/>'
            '<path d="M0,0 H10 V10 H0 Z" fill="#000000"/>'
        )
        fills = [s.get('fill') for s in ShapeDocument.parse(colorize_svg(markup, red_blue_png)).shapes()]
        assert fills[0] == '#808080'
        assert fills[1] != '#000000'

    def test_shorthand_placeholder_is_recoloured(self, red_blue_png):
        """#000 and #000000 shapes are the same bucket and both get its colour."""
        markup = SVG.format(
            '<path d="M0,0 H5 V10 H0 Z" fill="#808080"/>'
            '<path d="M5,0 H10 V5 H5 Z" fill="#000"/>'
            '<path d="M5,5 H10 V10 H5 Z" fill="#000000"/>'
        )
        fills = [s.get('fill') for s in ShapeDocument.parse(colorize_svg(markup, red_blue_png)).shapes()]
        assert is_reddish(fills[0])
        assert is_bluish(fills[1])
        assert is_bluish(fills[2])

    def test_no_fills_is_unchanged(self, red_blue_png):
        markup = SVG.format('<path d="M0,0 H10 V10 Z"/>')
        assert colorize_svg(markup, red_blue_png) == markup

    def test_size_mismatch(self, red_blue_png):
        small = PixelGrid(pixels=np.zeros((4, 4), dtype=np.uint8), width=2, height=2, channels=4)
        with mock.patch('chromatrace.colorize.sample_markup', return_value=small):
            with pytest.raises(PixelGridMismatch):
                colorize_svg(get_solid_svg(POSTERIZED), red_blue_png)
