"""
Chromatrace Raster Ingest.

Validates upload mime types and normalizes every supported input to a white-
flattened PNG whose longer side is capped at a maximum dimension.
"""

import io
import logging

import cairosvg
from PIL import Image, ImageSequence
from pillow_heif import register_heif_opener

from .types import NormalizedRaster, RasterDecodeError, UnsupportedMediaType, UploadedFile

logger = logging.getLogger(__name__)

register_heif_opener()

SUPPORTED_MIME_TYPES = (
    'image/jpg',
    'image/jpeg',
    'image/png',
    'image/webp',
    'image/gif',
    'image/svg+xml',
    'image/heic',
)

DEFAULT_MAX_DIMENSION = 1000


def validate_file_type(upload: UploadedFile) -> UploadedFile:
    """Ensure the upload is an image type the pipeline can trace."""
    if upload.mime_type not in SUPPORTED_MIME_TYPES:
        raise UnsupportedMediaType(
            f"Unsupported media type {upload.mime_type!r} for {upload.original_name!r}"
        )
    return upload


def _decode(data: bytes, mime_type: str) -> Image.Image:
    try:
        if mime_type == 'image/svg+xml':
            data = cairosvg.svg2png(bytestring=data)
        image = Image.open(io.BytesIO(data))
        if getattr(image, 'is_animated', False):
            image = next(ImageSequence.Iterator(image))
        image.load()
    except Exception as e:
        raise RasterDecodeError(f"Could not decode {mime_type} image: {e}") from e
    return image


def _target_size(width: int, height: int, max_dimension: int):
    largest = max(width, height)
    if largest <= max_dimension:
        return width, height
    ratio = max_dimension / largest
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def normalize_raster(
    data: bytes,
    mime_type: str,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
) -> NormalizedRaster:
    """
    Decode, flatten onto white and downscale an image.

    Args:
        data: Encoded image bytes
        mime_type: Declared mime type of the bytes
        max_dimension: Cap for the longer side; smaller images are not enlarged

    Returns:
        NormalizedRaster holding a 3-channel PNG
    """
    image = _decode(data, mime_type).convert('RGBA')

    background = Image.new('RGBA', image.size, (255, 255, 255, 255))
    flattened = Image.alpha_composite(background, image).convert('RGB')

    size = _target_size(flattened.width, flattened.height, max_dimension)
    if size != flattened.size:
        logger.debug("Resizing %s -> %s", flattened.size, size)
        flattened = flattened.resize(size, Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    flattened.save(buffer, format='PNG')
    return NormalizedRaster(
        width=flattened.width,
        height=flattened.height,
        channels=3,
        data=buffer.getvalue(),
    )
