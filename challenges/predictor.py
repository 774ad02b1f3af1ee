"""
Predictors
==========

A predictor turns one decoded challenge image into one integer answer.

Two model shapes, both scored the same way:

    ImageClassifier      - N hypothesis tiles, one model run each,
                           answer = index of the best scoring tile
    ImagePairClassifier  - a reference crop run against every candidate
                           tile of the top strip, answer = best candidate

A shape is only a "core". ModelPredictor wraps any core into the uniform
Predictor interface; InactivePredictor stands in when the model could not
be built.
"""

import logging
import math
from typing import Callable, Dict, Iterable, Protocol, Tuple

import numpy as np
from PIL import Image

from core.errors import ModelUnavailableError, PredictionError, SolverError
from core.variant import Variant
from .preprocess import (
    CLASSIFIER_HYPOTHESES,
    INPUT_SHAPE,
    TILE_SIZE,
    check_classifier_image,
    check_pair_image,
    classifier_hypothesis,
    pair_candidate,
    pair_reference,
)

logger = logging.getLogger(__name__)

# Runs the model on named input tensors and returns its first output score
ScoreRunner = Callable[[Dict[str, np.ndarray]], float]


class Predictor(Protocol):
    def predict(self, image: Image.Image) -> int:
        ...

    def active(self) -> bool:
        ...


def select_best(scores: Iterable[float]) -> int:
    """
    Index of the highest score.

    Strictly greater wins, so the first maximum is kept. NaN never wins.

    Raises:
        PredictionError: if no score beats negative infinity
    """
    best_score = -math.inf
    best_index = -1
    for index, score in enumerate(scores):
        if score > best_score:
            best_score = score
            best_index = index
    if best_index < 0:
        raise PredictionError("Model produced no usable score")
    return best_index


class ImageClassifier:
    """Scores each hypothesis tile independently"""

    def __init__(
        self,
        runner: ScoreRunner,
        hypotheses: int = CLASSIFIER_HYPOTHESES,
        input_shape: Tuple[int, int] = INPUT_SHAPE,
    ):
        self.runner = runner
        self.hypotheses = hypotheses
        self.input_shape = input_shape

    def predict(self, image: Image.Image) -> int:
        check_classifier_image(image)
        return select_best(
            self.runner({"input": classifier_hypothesis(image, i, self.input_shape)})
            for i in range(self.hypotheses)
        )


class ImagePairClassifier:
    """Scores (reference, candidate) pairs across the candidate strip"""

    def __init__(
        self,
        runner: ScoreRunner,
        grayscale: bool = False,
        input_shape: Tuple[int, int] = INPUT_SHAPE,
    ):
        self.runner = runner
        self.grayscale = grayscale
        self.input_shape = input_shape

    def predict(self, image: Image.Image) -> int:
        check_pair_image(image)
        reference = pair_reference(image, self.input_shape, self.grayscale)
        candidates = image.width // TILE_SIZE
        return select_best(
            self.runner({
                "input_left": reference,
                "input_right": pair_candidate(image, i, self.input_shape, self.grayscale),
            })
            for i in range(candidates)
        )


class ModelPredictor:
    """Uniform adapter over a classifier core"""

    def __init__(self, variant: Variant, core):
        self.variant = variant
        self.core = core

    def predict(self, image: Image.Image) -> int:
        try:
            return self.core.predict(image)
        except SolverError:
            raise
        except Exception as e:
            raise PredictionError(f"{self.variant.value} inference failed: {e}") from e

    def active(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"ModelPredictor({self.variant.value}, {type(self.core).__name__})"


class InactivePredictor:
    """Placeholder for a variant whose model failed to load"""

    def __init__(self, variant: Variant, reason: str):
        self.variant = variant
        self.reason = reason

    def predict(self, image: Image.Image) -> int:
        raise ModelUnavailableError(self.unavailable_message())

    def active(self) -> bool:
        return False

    def unavailable_message(self) -> str:
        return f"model for {self.variant.value} is unavailable: {self.reason}"

    def __repr__(self) -> str:
        return f"InactivePredictor({self.variant.value})"
