"""
Chromatrace Markup Module.

Minimal structural view of an SVG document: the shape elements in document
order and their fill attributes. Colour and opacity substitution happen on
these attributes only, never on the raw text.
"""

import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Mapping, Optional

from .colors import hex_to_rgb, rgb_to_hex
from .types import HexColor, Markup, MarkupError

SVG_NS = 'http://www.w3.org/2000/svg'

ET.register_namespace('', SVG_NS)
ET.register_namespace('xlink', 'http://www.w3.org/1999/xlink')
ET.register_namespace('ev', 'http://www.w3.org/2001/xml-events')

SHAPE_TAGS = frozenset(['path', 'rect', 'circle', 'ellipse', 'line', 'polyline', 'polygon'])

_HEX_FILL = re.compile(r'^#([a-f0-9]{3}){1,2}$', re.IGNORECASE)
_OPACITY_VALUE = re.compile(r'^\s*(\d+(\.\d*)?|\.\d+)\s*$')


def local_name(tag: str) -> str:
    """Strip the namespace from an element tag."""
    return tag.split('}')[-1]


def normalize_fill(fill: Optional[str]) -> Optional[HexColor]:
    """Lowercase 6-digit form of a hex fill, or None when fill is not a hex colour."""
    if fill and _HEX_FILL.match(fill):
        return rgb_to_hex(hex_to_rgb(fill))
    return None


class ShapeDocument:
    """Parsed SVG document exposing its shapes in document order."""

    def __init__(self, root: ET.Element):
        self.root = root

    @classmethod
    def parse(cls, markup: Markup) -> 'ShapeDocument':
        try:
            return cls(ET.fromstring(markup))
        except ET.ParseError as e:
            raise MarkupError(f"Invalid SVG markup: {e}") from e

    def shapes(self) -> List[ET.Element]:
        return [el for el in self.root.iter() if local_name(el.tag) in SHAPE_TAGS]

    def fill_opacities(self) -> Dict[float, List[ET.Element]]:
        """Group shapes by numeric fill-opacity, first occurrence order."""
        groups: Dict[float, List[ET.Element]] = {}
        for shape in self.shapes():
            raw = shape.get('fill-opacity')
            if raw is None or not _OPACITY_VALUE.match(raw):
                continue
            groups.setdefault(float(raw), []).append(shape)
        return groups

    def fill_colors(self) -> List[HexColor]:
        """Distinct hex fill colours of the shapes as #rrggbb, first occurrence order."""
        colors: List[HexColor] = []
        for shape in self.shapes():
            fill = normalize_fill(shape.get('fill'))
            if fill is not None and fill not in colors:
                colors.append(fill)
        return colors

    def remove_fill(self, value: str) -> int:
        """Drop fill attributes equal to value. Returns the count removed."""
        removed = 0
        for shape in self.shapes():
            if shape.get('fill') == value:
                del shape.attrib['fill']
                removed += 1
        return removed

    def set_fill_for_opacity(self, opacity: float, fill: HexColor) -> None:
        """Replace fill-opacity == opacity with a solid fill."""
        for shape in self.fill_opacities().get(opacity, []):
            del shape.attrib['fill-opacity']
            shape.set('fill', fill)

    def replace_fills(self, mapping: Mapping[HexColor, HexColor]) -> int:
        """
        Substitute shape fill colours.

        Args:
            mapping: placeholder hex -> replacement hex; #rgb and #rrggbb spellings of a
                placeholder match the same shapes

        Returns:
            Number of shapes rewritten
        """
        lookup = {normalize_fill(old) or old: new for old, new in mapping.items()}
        rewritten = 0
        for shape in self.shapes():
            fill = shape.get('fill')
            replacement: Optional[HexColor] = lookup.get(normalize_fill(fill) or fill)
            if replacement is not None:
                shape.set('fill', replacement)
                rewritten += 1
        return rewritten

    def to_string(self) -> Markup:
        return ET.tostring(self.root, encoding='unicode')
