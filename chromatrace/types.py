"""Common types and exceptions for chromatrace."""

from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from typing import Any, Dict, Optional, Tuple

import numpy as np
from PIL import Image

# Type aliases
RGB = Tuple[int, int, int]
HexColor = str
Markup = str


class ColorMode(str, Enum):
    """Output colour mode of a vectorization run."""

    COLOR = "color"
    BLACK_AND_WHITE = "black-and-white"


class FileState(str, Enum):
    """Pipeline states a single uploaded file moves through."""

    RECEIVED = "received"
    TYPE_VALIDATED = "type-validated"
    NORMALIZED = "normalized"
    TRACED = "traced"
    RESOLVED = "resolved"
    COLORIZED = "colorized"
    OPTIMIZED = "optimized"
    DONE = "done"


@dataclass(frozen=True)
class UploadedFile:
    """A raw upload as received from the caller."""

    field_name: str
    original_name: str
    mime_type: str
    data: bytes


@dataclass(frozen=True)
class NormalizedRaster:
    """Decoded, resized and white-flattened raster, stored as PNG bytes."""

    width: int
    height: int
    channels: int
    data: bytes

    def to_array(self) -> np.ndarray:
        """Decode the PNG buffer to an RGB array [H, W, 3]."""
        return np.array(Image.open(BytesIO(self.data)).convert("RGB"))


@dataclass(frozen=True)
class PixelGrid:
    """Pixels in raster order, shape [width * height, channels]."""

    pixels: np.ndarray
    width: int
    height: int
    channels: int

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class OpacityLevel:
    """A distinct fill-opacity and the solid gray it resolves to."""

    fill_opacity: float
    true_opacity: float
    hex: HexColor


@dataclass(frozen=True)
class ColorBucket:
    """Placeholder fill colour and the pixel indices classified to it."""

    placeholder: HexColor
    pixel_indices: np.ndarray

    def __len__(self) -> int:
        return int(self.pixel_indices.size)


@dataclass(frozen=True)
class Palette:
    """Quantized colours ordered from most to least dominant."""

    colors: Tuple[RGB, ...]
    counts: Tuple[int, ...]

    @property
    def dominant(self) -> RGB:
        return self.colors[0]


@dataclass(frozen=True)
class ProcessedResult:
    """Final markup for one uploaded file."""

    svg: Markup
    field_name: str
    original_name: str
    mime_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "svg": self.svg,
            "fieldName": self.field_name,
            "originalName": self.original_name,
            "mimeType": self.mime_type,
        }


@dataclass(frozen=True)
class FileOutcome:
    """Success or failure of one file's pipeline."""

    field_name: str
    original_name: str
    mime_type: str
    result: Optional[ProcessedResult] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    state: FileState = FileState.DONE

    @property
    def ok(self) -> bool:
        return self.result is not None

    @classmethod
    def success(cls, result: ProcessedResult) -> "FileOutcome":
        return cls(
            field_name=result.field_name,
            original_name=result.original_name,
            mime_type=result.mime_type,
            result=result,
        )

    @classmethod
    def failure(
        cls, upload: UploadedFile, exc: BaseException, state: FileState
    ) -> "FileOutcome":
        return cls(
            field_name=upload.field_name,
            original_name=upload.original_name,
            mime_type=upload.mime_type,
            error=str(exc) or type(exc).__name__,
            error_type=type(exc).__name__,
            state=state,
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.result is not None:
            return self.result.to_dict()
        return {
            "fieldName": self.field_name,
            "originalName": self.original_name,
            "mimeType": self.mime_type,
            "error": self.error,
            "errorType": self.error_type,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class BatchResult:
    """Outcomes of a batch, in upload order."""

    color_mode: ColorMode
    outcomes: Tuple[FileOutcome, ...]
    algorithm: str = "potrace"

    @property
    def succeeded(self) -> Tuple[FileOutcome, ...]:
        return tuple(o for o in self.outcomes if o.ok)

    @property
    def failed(self) -> Tuple[FileOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.ok)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "colorMode": self.color_mode.value,
            "files": [o.to_dict() for o in self.outcomes],
        }


class VectorizationError(Exception):
    """Base exception for vectorization errors."""

    pass


class UnsupportedMediaType(VectorizationError):
    """Exception raised for an upload whose mime type cannot be vectorized."""

    pass


class RasterDecodeError(VectorizationError):
    """Exception raised when image bytes cannot be decoded."""

    pass


class UnsupportedChannelLayout(VectorizationError):
    """Exception raised for pixel data with neither 3 nor 4 channels."""

    pass


class PixelGridMismatch(VectorizationError):
    """Exception raised when rendered markup and raster differ in size."""

    pass


class MarkupError(VectorizationError):
    """Exception raised when SVG markup cannot be parsed."""

    pass


class TraceFailure(VectorizationError):
    """Exception raised when the tracer fails."""

    pass


class OptimizeFailure(VectorizationError):
    """Exception raised when the markup optimizer fails."""

    pass


class PipelineTimeout(VectorizationError):
    """Exception raised when a file exceeds its processing deadline."""

    pass
