"""
Challenge Predictors Module
===========================

Image preprocessing, the two model shapes and the factory that builds a
predictor from a downloaded ONNX file.

PREDICTOR LIFETIME:
-------------------
Predictors are built lazily, once per variant, by PredictorRegistry and
shared across all requests.

Usage:
    # At startup (main.py):
    factory = PredictorFactory(store, config.onnx, config.model_dir)
    registry = PredictorRegistry(factory.build)

    # In request handlers:
    predictor = await registry.get_or_build(variant)
    answer = predictor.predict(decode_image(image))
"""

from .factory import PredictorFactory, create_session, session_options
from .predictor import (
    ImageClassifier,
    ImagePairClassifier,
    InactivePredictor,
    ModelPredictor,
    Predictor,
    select_best,
)
from .preprocess import decode_image, load_image, preprocess

__all__ = [
    'PredictorFactory',
    'create_session',
    'session_options',
    'ImageClassifier',
    'ImagePairClassifier',
    'InactivePredictor',
    'ModelPredictor',
    'Predictor',
    'select_best',
    'decode_image',
    'load_image',
    'preprocess',
]
