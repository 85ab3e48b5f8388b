"""Shared fixtures: synthetic images encoded in memory."""

import io

import numpy as np
import pytest
from PIL import Image

from chromatrace.types import UploadedFile

RED = (255, 0, 0)
BLUE = (0, 0, 255)


def encode_png(array: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(np.asarray(array, dtype=np.uint8)).save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def solid_red_png():
    """A 3x3 solid red square."""
    img = np.zeros((3, 3, 3), dtype=np.uint8)
    img[:, :] = RED
    return encode_png(img)


@pytest.fixture
def red_blue_image():
    """A 10x10 image, left half red, right half blue."""
    img = np.zeros((10, 10, 3), dtype=np.uint8)
    img[:, :5] = RED
    img[:, 5:] = BLUE
    return img


@pytest.fixture
def red_blue_png(red_blue_image):
    return encode_png(red_blue_image)


@pytest.fixture
def make_upload():
    def _make(data: bytes, name: str = 'image.png', mime_type: str = 'image/png') -> UploadedFile:
        return UploadedFile(
            field_name='images',
            original_name=name,
            mime_type=mime_type,
            data=data,
        )
    return _make
