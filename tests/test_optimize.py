#!/usr/bin/env python3
"""
Test suite for SVG optimization.
"""

import xml.etree.ElementTree as ET

import pytest

from chromatrace.optimize import SVGOptimizer, optimize_svg_string
from chromatrace.types import OptimizeFailure

SVG_NS = '{http://www.w3.org/2000/svg}'

MARKUP = (
    '<?xml version="1.0" encoding="utf-8" ?>\n'
    '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10" viewBox="0 0 10 10">\n'
    '  <!-- traced -->\n'
    '  <path d="M0.123456,1.00000 L2.5,3 L0,9.99999 Z" fill="#FF0000" stroke="none" fill-opacity="1.000"/>\n'
    '  <path d="M5,5 L6,6 L5,6 Z" fill="rgb(0, 0, 255)" fill-opacity="0.5"/>\n'
    '</svg>\n'
)


@pytest.fixture
def plain_optimizer():
    return SVGOptimizer(use_scour=False)


class TestAttributeCleanup:
    """Test the attribute pass without scour."""

    def test_rounds_coordinates(self, plain_optimizer):
        output = plain_optimizer.optimize_string(MARKUP)
        assert 'd="M0.123,1 L2.5,3 L0,10 Z"' in output

    def test_precision(self):
        output = SVGOptimizer(use_scour=False, path_precision=1).optimize_string(MARKUP)
        assert 'M0.1,1' in output

    def test_shortens_colors(self, plain_optimizer):
        paths = list(ET.fromstring(plain_optimizer.optimize_string(MARKUP)).iter(f'{SVG_NS}path'))
        assert [p.get('fill') for p in paths] == ['#f00', '#00f']

    def test_drops_default_attributes(self, plain_optimizer):
        paths = list(ET.fromstring(plain_optimizer.optimize_string(MARKUP)).iter(f'{SVG_NS}path'))
        assert paths[0].get('stroke') is None
        assert paths[0].get('fill-opacity') is None
        assert paths[1].get('fill-opacity') == '0.5'

    def test_strips_comments_and_whitespace(self, plain_optimizer):
        output = plain_optimizer.optimize_string(MARKUP)
        assert '<!--' not in output
        assert '>\n' not in output


class TestScour:
    """Test the full optimizer."""

    def test_keeps_shapes(self):
        output = SVGOptimizer().optimize_string(MARKUP)
        root = ET.fromstring(output)
        assert len(list(root.iter(f'{SVG_NS}path'))) == 2

    def test_strips_prolog(self):
        assert not optimize_svg_string(MARKUP).startswith('<?xml')

    def test_invalid_markup(self):
        with pytest.raises(OptimizeFailure):
            SVGOptimizer().optimize_string('<svg><path></svg>')


class TestStats:
    """Test optimization statistics."""

    def test_get_stats(self):
        optimizer = SVGOptimizer()
        optimized = optimizer.optimize_string(MARKUP)
        stats = optimizer.get_stats(MARKUP, optimized)

        assert stats['original_paths'] == 2
        assert stats['optimized_paths'] == 2
        assert stats['optimized_size'] < stats['original_size']
        assert stats['reduction_bytes'] == stats['original_size'] - stats['optimized_size']

    def test_empty_original(self):
        assert SVGOptimizer().get_stats('', '')['reduction_percent'] == 0
