"""
Chromatrace SVG Optimization Module.

Minifies final markup without changing what it draws:
- Path coordinate rounding
- Attribute cleanup (default opacities, stroke="none")
- Colour shortening
- scour post-processing

Usage:
    from chromatrace.optimize import SVGOptimizer

    optimizer = SVGOptimizer()
    optimized_svg = optimizer.optimize_string(svg_content)
"""

import re
import xml.etree.ElementTree as ET
from types import SimpleNamespace
from typing import Any, Dict

from scour import scour

from .markup import local_name
from .types import Markup, OptimizeFailure

_NUMBER = re.compile(r'-?(\d+\.?\d*|\.\d+)(e-?\d+)?')
_RGB = re.compile(r'rgb\s*\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)')
_LONG_HEX = re.compile(r'#([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$')


class SVGOptimizer:
    """
    SVG minifier for traced output.

    Features:
    - Coordinate rounding to a fixed precision
    - Attribute cleanup and colour optimization
    - scour integration
    """

    def __init__(self, use_scour: bool = True, path_precision: int = 3):
        """
        Initialize the optimizer.

        Args:
            use_scour: Run scour after the attribute pass
            path_precision: Decimal precision for path coordinates
        """
        self.use_scour = use_scour
        self.path_precision = path_precision

    def optimize_string(self, svg_content: Markup) -> Markup:
        """
        Optimize SVG content string.

        Args:
            svg_content: SVG content as string

        Returns:
            Optimized SVG content

        Raises:
            OptimizeFailure: if the markup cannot be parsed or scour fails
        """
        try:
            root = ET.fromstring(svg_content)
        except ET.ParseError as e:
            raise OptimizeFailure(f"Cannot optimize invalid SVG: {e}") from e

        for element in root.iter():
            if local_name(element.tag) == 'path':
                self._optimize_path(element)
            self._optimize_attributes(element)

        optimized = ET.tostring(root, encoding='unicode')

        if self.use_scour:
            optimized = self._apply_scour(optimized)
        else:
            optimized = self._final_cleanup(optimized)

        return optimized

    def _optimize_path(self, path_element: ET.Element) -> None:
        d = path_element.get('d', '')
        if d:
            path_element.set('d', self._round_path_coords(d))

    def _round_path_coords(self, d: str) -> str:
        """Round coordinates in path data to specified precision."""
        def round_match(m):
            num = float(m.group(0))
            if num == int(num):
                return str(int(num))
            return f'{num:.{self.path_precision}f}'.rstrip('0').rstrip('.')

        return _NUMBER.sub(round_match, d)

    def _optimize_attributes(self, element: ET.Element) -> None:
        """Optimize element attributes."""
        if 'fill' in element.attrib:
            element.set('fill', self._optimize_color(element.get('fill')))
        if 'stroke' in element.attrib:
            element.set('stroke', self._optimize_color(element.get('stroke')))

        if element.get('stroke') == 'none':
            del element.attrib['stroke']

        # Remove fill-opacity and stroke-opacity if 1
        for attr in ['fill-opacity', 'stroke-opacity', 'opacity']:
            value = element.get(attr)
            if value is not None and _is_one(value):
                del element.attrib[attr]

    def _optimize_color(self, color: str) -> str:
        """Optimize color representation."""
        if not color:
            return color

        color = color.strip().lower()

        rgb_match = _RGB.match(color)
        if rgb_match:
            r, g, b = map(int, rgb_match.groups())
            color = f'#{r:02x}{g:02x}{b:02x}'

        # Shorten 6-char hex to 3-char if possible
        hex_match = _LONG_HEX.match(color)
        if hex_match:
            r, g, b = hex_match.groups()
            if r[0] == r[1] and g[0] == g[1] and b[0] == b[1]:
                color = f'#{r[0]}{g[0]}{b[0]}'

        return color

    def _apply_scour(self, svg_content: str) -> str:
        """Apply scour optimization."""
        options = scour.sanitizeOptions(SimpleNamespace(
            digits=self.path_precision,
            strip_ids=True,
            shorten_ids=True,
            strip_comments=True,
            remove_metadata=True,
            remove_titles=True,
            remove_descriptions=True,
            remove_descriptive_elements=True,
            strip_xml_prolog=True,
            indent_type='none',
            newlines=False,
        ))
        try:
            result = scour.scourString(svg_content, options)
        except Exception as e:
            raise OptimizeFailure(f"Scour optimization failed: {e}") from e
        return result.strip()

    def _final_cleanup(self, svg_content: str) -> str:
        """Whitespace and comment cleanup when scour is disabled."""
        svg_content = re.sub(r'<\?xml[^?]*\?>\s*', '', svg_content)
        svg_content = re.sub(r'<!--.*?-->', '', svg_content, flags=re.DOTALL)
        svg_content = re.sub(r'>\s+<', '><', svg_content)
        svg_content = re.sub(r'\s+/>', '/>', svg_content)
        return svg_content.strip()

    def get_stats(self, original: str, optimized: str) -> Dict[str, Any]:
        """
        Get optimization statistics.

        Args:
            original: Original SVG content
            optimized: Optimized SVG content

        Returns:
            Statistics dictionary
        """
        original_size = len(original.encode('utf-8'))
        optimized_size = len(optimized.encode('utf-8'))

        return {
            'original_size': original_size,
            'optimized_size': optimized_size,
            'reduction_bytes': original_size - optimized_size,
            'reduction_percent': ((original_size - optimized_size) / original_size * 100) if original_size > 0 else 0,
            'original_paths': original.count('<path'),
            'optimized_paths': optimized.count('<path'),
        }


def _is_one(value: str) -> bool:
    try:
        return float(value) == 1.0
    except ValueError:
        return False


def optimize_svg_string(svg_content: Markup, path_precision: int = 3) -> Markup:
    """Optimize SVG content with default settings."""
    return SVGOptimizer(path_precision=path_precision).optimize_string(svg_content)
