"""
Image Preprocessing
Decoding of submitted images and crop/resize into model input tensors
"""

import io
import logging
from typing import Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from core.errors import ImageDecodeError, ImageSizeError
from core.task import decode_image_data

logger = logging.getLogger(__name__)

TILE_SIZE = 200
CLASSIFIER_COLUMNS = 3
CLASSIFIER_HYPOTHESES = 6
INPUT_SHAPE: Tuple[int, int] = (52, 52)


def load_image(data: bytes) -> Image.Image:
    """Open raw image bytes as an RGB PIL image"""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Invalid image data: {e}") from e
    return image.convert("RGB")


def decode_image(image: str) -> Image.Image:
    """base64 (optionally data-URL) string -> RGB PIL image"""
    return load_image(decode_image_data(image))


def preprocess(image: Image.Image, shape: Tuple[int, int] = INPUT_SHAPE) -> np.ndarray:
    """
    Resize to `shape` (width, height) and scale to a 1xCxHxW float32 tensor.
    """
    resized = image.convert("RGB").resize(shape, Image.Resampling.BILINEAR)
    array = np.asarray(resized, dtype=np.float32) / 255.0
    return np.ascontiguousarray(array.transpose(2, 0, 1)[np.newaxis, ...])


def crop_tile(image: Image.Image, column: int, row: int, tile: int = TILE_SIZE) -> Image.Image:
    left, top = column * tile, row * tile
    return image.crop((left, top, left + tile, top + tile))


def check_classifier_image(image: Image.Image) -> None:
    width, height = image.size
    if width < CLASSIFIER_COLUMNS * TILE_SIZE or height < 2 * TILE_SIZE:
        raise ImageSizeError(
            f"Image is {width}x{height}, expected at least "
            f"{CLASSIFIER_COLUMNS * TILE_SIZE}x{2 * TILE_SIZE}"
        )


def check_pair_image(image: Image.Image) -> None:
    width, height = image.size
    if width < TILE_SIZE or height < 2 * TILE_SIZE:
        raise ImageSizeError(
            f"Image is {width}x{height}, expected at least {TILE_SIZE}x{2 * TILE_SIZE}"
        )


def classifier_hypothesis(
    image: Image.Image,
    index: int,
    shape: Tuple[int, int] = INPUT_SHAPE,
) -> np.ndarray:
    """Tile `index` of the 3x2 hypothesis grid"""
    column, row = index % CLASSIFIER_COLUMNS, index // CLASSIFIER_COLUMNS
    return preprocess(crop_tile(image, column, row), shape)


def _maybe_grayscale(image: Image.Image, grayscale: bool) -> Image.Image:
    if grayscale:
        return image.convert("L").convert("RGB")
    return image


def pair_reference(
    image: Image.Image,
    shape: Tuple[int, int] = INPUT_SHAPE,
    grayscale: bool = False,
) -> np.ndarray:
    """The fixed reference crop below the candidate strip"""
    return preprocess(_maybe_grayscale(crop_tile(image, 0, 1), grayscale), shape)


def pair_candidate(
    image: Image.Image,
    index: int,
    shape: Tuple[int, int] = INPUT_SHAPE,
    grayscale: bool = False,
) -> np.ndarray:
    """Candidate `index` of the top strip"""
    return preprocess(_maybe_grayscale(crop_tile(image, index, 0), grayscale), shape)
