from __future__ import annotations

import math

import numpy as np
import pytest
from PIL import Image

from challenges.predictor import (
    ImageClassifier,
    ImagePairClassifier,
    InactivePredictor,
    ModelPredictor,
    select_best,
)
from challenges.preprocess import (
    classifier_hypothesis,
    decode_image,
    load_image,
    pair_reference,
    preprocess,
)
from core.errors import (
    ImageDecodeError,
    ImageSizeError,
    ModelUnavailableError,
    PredictionError,
)
from core.variant import Variant

from .fakes import png_b64

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)


def _grid(size, tiles) -> Image.Image:
    """Black image with the given (column, row) -> color tiles painted in."""
    image = Image.new("RGB", size, (0, 0, 0))
    for (column, row), color in tiles.items():
        image.paste(color, (column * 200, row * 200, column * 200 + 200, row * 200 + 200))
    return image


def _brightness(inputs) -> float:
    return float(inputs["input"].mean())


def _pair_similarity(inputs) -> float:
    return -float(np.abs(inputs["input_left"] - inputs["input_right"]).sum())


# =============================================================================
# select_best
# =============================================================================

def test_select_best_picks_maximum() -> None:
    assert select_best([0.1, 0.9, 0.3]) == 1


def test_select_best_first_maximum_wins_ties() -> None:
    assert select_best([0.5, 0.9, 0.9]) == 1


def test_select_best_ignores_nan() -> None:
    assert select_best([math.nan, 0.2, math.nan]) == 1


def test_select_best_without_usable_scores() -> None:
    with pytest.raises(PredictionError):
        select_best([])
    with pytest.raises(PredictionError):
        select_best([-math.inf, math.nan])


# =============================================================================
# preprocessing
# =============================================================================

def test_preprocess_tensor_layout() -> None:
    tensor = preprocess(Image.new("RGB", (200, 200), (255, 255, 255)))
    assert tensor.shape == (1, 3, 52, 52)
    assert tensor.dtype == np.float32
    assert tensor.max() == pytest.approx(1.0)


def test_classifier_hypothesis_walks_rows_then_columns() -> None:
    image = _grid((600, 400), {(1, 1): (255, 255, 255)})
    assert classifier_hypothesis(image, 4).mean() == pytest.approx(1.0)
    assert classifier_hypothesis(image, 1).mean() == pytest.approx(0.0)


def test_pair_reference_grayscale_equalizes_channels() -> None:
    image = _grid((400, 400), {(0, 1): RED})
    tensor = pair_reference(image, grayscale=True)
    assert np.allclose(tensor[0, 0], tensor[0, 1])
    assert np.allclose(tensor[0, 1], tensor[0, 2])


def test_decode_image_accepts_data_url() -> None:
    image = decode_image(png_b64(40, 30, data_url=True))
    assert image.size == (40, 30)
    assert image.mode == "RGB"


def test_load_image_rejects_garbage() -> None:
    with pytest.raises(ImageDecodeError):
        load_image(b"definitely not an image")


# =============================================================================
# shapes
# =============================================================================

def test_image_classifier_picks_brightest_tile() -> None:
    image = _grid((600, 400), {(1, 1): (255, 255, 255), (2, 0): (90, 90, 90)})
    assert ImageClassifier(_brightness).predict(image) == 4


def test_image_classifier_rejects_small_image() -> None:
    with pytest.raises(ImageSizeError):
        ImageClassifier(_brightness).predict(Image.new("RGB", (400, 400)))


def test_pair_classifier_matches_reference() -> None:
    image = _grid((600, 400), {(0, 0): BLUE, (1, 0): GREEN, (2, 0): RED, (0, 1): RED})
    assert ImagePairClassifier(_pair_similarity).predict(image) == 2


def test_pair_classifier_candidate_count_follows_width() -> None:
    seen = []

    def runner(inputs) -> float:
        seen.append(inputs["input_right"].shape)
        return 0.0

    ImagePairClassifier(runner).predict(Image.new("RGB", (800, 400)))
    assert len(seen) == 4


def test_pair_classifier_rejects_short_image() -> None:
    with pytest.raises(ImageSizeError):
        ImagePairClassifier(_pair_similarity).predict(Image.new("RGB", (600, 200)))


# =============================================================================
# predictor wrappers
# =============================================================================

def test_model_predictor_wraps_runtime_failures() -> None:
    def broken(inputs) -> float:
        raise RuntimeError("bad tensor")

    predictor = ModelPredictor(Variant.CARD, ImageClassifier(broken))
    assert predictor.active() is True
    with pytest.raises(PredictionError, match="card inference failed"):
        predictor.predict(Image.new("RGB", (600, 400)))


def test_model_predictor_passes_client_errors_through() -> None:
    predictor = ModelPredictor(Variant.CARD, ImageClassifier(_brightness))
    with pytest.raises(ImageSizeError):
        predictor.predict(Image.new("RGB", (10, 10)))


def test_inactive_predictor() -> None:
    predictor = InactivePredictor(Variant.CARD, "download failed")
    assert predictor.active() is False
    with pytest.raises(ModelUnavailableError, match="model for card is unavailable: download failed"):
        predictor.predict(Image.new("RGB", (600, 400)))
