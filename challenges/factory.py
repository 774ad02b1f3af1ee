"""
Predictor Factory
=================

Builds a ready predictor for a variant:

    ArtifactStore.fetch(<variant>.onnx)  ->  onnxruntime.InferenceSession
        ->  ImageClassifier / ImagePairClassifier  ->  ModelPredictor

Session construction is blocking (it parses and optimizes the graph), so it
runs in a worker thread to keep the event loop free.

A build NEVER raises. Any failure (download, manifest, broken weights,
unsupported operator) is logged and returns an InactivePredictor, so one
broken model cannot take down lookups for the other variants.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict

import numpy as np
import onnxruntime as ort

from core.config import OnnxConfig
from core.variant import CLASSIFIER, PAIR, Variant, VariantSpec
from store.artifacts import ArtifactStore
from .predictor import (
    ImageClassifier,
    ImagePairClassifier,
    InactivePredictor,
    ModelPredictor,
    Predictor,
)

logger = logging.getLogger(__name__)

SessionBuilder = Callable[[Path, OnnxConfig], Any]


def session_options(config: OnnxConfig) -> ort.SessionOptions:
    """Runtime tuning shared by every model session"""
    options = ort.SessionOptions()
    options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    options.execution_mode = ort.ExecutionMode.ORT_PARALLEL
    options.enable_mem_pattern = True
    options.intra_op_num_threads = config.num_threads
    options.enable_cpu_mem_arena = config.allocator == "arena"
    return options


def create_session(model_path: Path, config: OnnxConfig) -> ort.InferenceSession:
    return ort.InferenceSession(
        str(model_path),
        sess_options=session_options(config),
        providers=["CPUExecutionProvider"],
    )


class SessionRunner:
    """Adapts an inference session to the ScoreRunner callable"""

    def __init__(self, session: Any):
        self.session = session

    def __call__(self, inputs: Dict[str, np.ndarray]) -> float:
        outputs = self.session.run(None, inputs)
        return float(np.asarray(outputs[0]).reshape(-1)[0])


def make_core(spec: VariantSpec, runner: SessionRunner):
    if spec.shape == CLASSIFIER:
        return ImageClassifier(runner)
    if spec.shape == PAIR:
        return ImagePairClassifier(runner, grayscale=spec.grayscale)
    raise ValueError(f"Unknown predictor shape: {spec.shape}")


class PredictorFactory:
    """
    Builds predictors from artifacts fetched through an ArtifactStore.

    Args:
        store: Where model files come from
        config: Thread count, allocator policy
        model_dir: Local directory the artifacts live in
        session_builder: (path, config) -> session; defaults to onnxruntime
    """

    def __init__(
        self,
        store: ArtifactStore,
        config: OnnxConfig,
        model_dir: Path,
        session_builder: SessionBuilder = create_session,
    ):
        self.store = store
        self.config = config
        self.model_dir = Path(model_dir)
        self.session_builder = session_builder

    async def build(self, variant: Variant) -> Predictor:
        spec = variant.slot.spec
        logger.info(f"Building predictor for {variant.value} from {spec.artifact}")

        try:
            model_path = await self.store.fetch(spec.artifact, self.model_dir)
            loop = asyncio.get_running_loop()
            session = await loop.run_in_executor(
                None, self.session_builder, model_path, self.config
            )
            core = make_core(spec, SessionRunner(session))
        except Exception as e:
            logger.error(f"Failed to build predictor for {variant.value}: {e}")
            return InactivePredictor(variant, str(e))

        logger.info(f"Predictor ready: {variant.value} ({spec.shape})")
        return ModelPredictor(variant, core)
