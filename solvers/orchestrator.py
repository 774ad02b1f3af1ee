"""
Solver Orchestrator
===================

Turns one Task into one TaskResult.

FLOW:
-----
1. Validate the image list (non-empty, within the submit limit). Nothing
   else is touched until this passes.
2. Resolve the variant name.
3. Get (or build) its predictor from the registry.
4. Predict every image in a worker pool, then reassemble in input order.

Steps 2 and 3 fall through to the fallback provider when it is configured
and the variant is unknown or its model could not be built. A model that
is up but fails while predicting is reported as an error, not retried
remotely.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from core.errors import (
    InvalidImagesError,
    InvalidSubmitLimitError,
    ModelUnavailableError,
    SolverError,
    UnknownVariantError,
)
from core.registry import PredictorRegistry
from core.task import Task, TaskResult
from core.variant import Variant
from challenges.predictor import Predictor
from challenges.preprocess import decode_image
from .fallback import FallbackClient

logger = logging.getLogger(__name__)


def _predict_one(predictor: Predictor, index: int, image: str) -> Tuple[int, int]:
    """Decode and predict one image; runs in a worker thread"""
    return index, predictor.predict(decode_image(image))


class SolverOrchestrator:
    """
    Routes tasks to local predictors or the fallback provider.

    Args:
        registry: Shared predictor cache
        limit: Max images per task
        fallback: Remote provider, or None for local-only
        executor: Pool for decode + inference; one is created if omitted
        max_workers: Size of the created pool
    """

    def __init__(
        self,
        registry: PredictorRegistry,
        limit: int,
        fallback: Optional[FallbackClient] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        max_workers: Optional[int] = None,
    ):
        self.registry = registry
        self.limit = limit
        self.fallback = fallback
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="predict"
        )

    async def process(self, task: Task) -> TaskResult:
        """Solve a task. Never raises; failures come back as solved=False."""
        try:
            objects = await self._solve(task)
        except SolverError as e:
            logger.warning(f"Task for {task.variant_name} failed: {e.message}")
            return TaskResult.from_error(e)
        except Exception as e:
            logger.error(f"Unexpected error solving {task.variant_name}: {e}", exc_info=True)
            return TaskResult.failure(f"Internal error: {e}", 500)

        return TaskResult.success(objects)

    def validate(self, task: Task) -> None:
        count = len(task.images)
        if count == 0:
            raise InvalidImagesError()
        if count > self.limit:
            raise InvalidSubmitLimitError(count, self.limit)

    async def _solve(self, task: Task) -> List[int]:
        self.validate(task)

        try:
            variant = Variant.parse(task.variant_name)
        except UnknownVariantError:
            if self.fallback is None:
                raise
            logger.info(f"Unknown variant {task.variant_name}, using fallback")
            return await self._solve_remote(task)

        predictor = await self.registry.get_or_build(variant)
        if not predictor.active():
            if self.fallback is None:
                reason = getattr(predictor, "reason", "build failed")
                raise ModelUnavailableError(
                    f"model for {variant.value} is unavailable: {reason}"
                )
            logger.info(f"Model for {variant.value} is inactive, using fallback")
            return await self._solve_remote(task)

        return await self._solve_local(predictor, task.images)

    async def _solve_local(self, predictor: Predictor, images: List[str]) -> List[int]:
        loop = asyncio.get_running_loop()
        futures = [
            loop.run_in_executor(self._executor, _predict_one, predictor, index, image)
            for index, image in enumerate(images)
        ]

        answers: List[Tuple[int, int]] = []
        try:
            for future in asyncio.as_completed(futures):
                answers.append(await future)
        except BaseException:
            for future in futures:
                future.cancel()
            raise

        answers.sort(key=lambda item: item[0])
        return [answer for _, answer in answers]

    async def _solve_remote(self, task: Task) -> List[int]:
        return await self.fallback.solve(task.images, task.game_variant_instructions)

    async def close(self) -> None:
        if self.fallback is not None:
            await self.fallback.aclose()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
