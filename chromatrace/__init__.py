"""
Chromatrace - Potrace vectorization with colour recovery

Chromatrace traces raster images with potrace and, in colour mode, recovers a
solid colour for every posterized layer from the original image's pixels.
"""

from .colorize import colorize_svg, extract_palette
from .colors import combine_opacity, hex_to_rgb, hexify, rgb_to_hex
from .config import PipelineConfig, TRACE_PRESETS, get_trace_preset
from .nearest import NearestColorClassifier
from .opacity import get_solid_svg, resolve_opacity_levels
from .optimize import SVGOptimizer, optimize_svg_string
from .pipeline import Vectorizer, vectorize_files
from .pixels import get_pixels
from .tracing import PotraceTracer
from .types import (
    BatchResult,
    ColorMode,
    FileOutcome,
    OptimizeFailure,
    PipelineTimeout,
    PixelGridMismatch,
    ProcessedResult,
    RasterDecodeError,
    TraceFailure,
    UnsupportedChannelLayout,
    UnsupportedMediaType,
    UploadedFile,
    VectorizationError,
)

__version__ = "0.1.0"
__author__ = "Chromatrace Contributors"

__all__ = [
    # Pipeline
    'Vectorizer',
    'vectorize_files',
    'PipelineConfig',
    'TRACE_PRESETS',
    'get_trace_preset',
    # Stages
    'PotraceTracer',
    'get_solid_svg',
    'resolve_opacity_levels',
    'colorize_svg',
    'extract_palette',
    'SVGOptimizer',
    'optimize_svg_string',
    # Colour utilities
    'hex_to_rgb',
    'rgb_to_hex',
    'hexify',
    'combine_opacity',
    'get_pixels',
    'NearestColorClassifier',
    # Types
    'UploadedFile',
    'ProcessedResult',
    'FileOutcome',
    'BatchResult',
    'ColorMode',
    # Errors
    'VectorizationError',
    'UnsupportedMediaType',
    'RasterDecodeError',
    'UnsupportedChannelLayout',
    'PixelGridMismatch',
    'TraceFailure',
    'OptimizeFailure',
    'PipelineTimeout',
]
