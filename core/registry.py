"""
Predictor Registry
==================

One predictor per challenge variant, built lazily on first use and shared
by every request afterwards.

SLOT LIFECYCLE:
---------------
    EMPTY  --first caller-->  BUILDING  --build done-->  READY

Slots sit in a list indexed by Variant.ordinal (aliases resolve to the slot
of the variant they share a model with). A slot never goes back: a failed
build still lands in READY as an inactive predictor and is not retried for
the lifetime of the process.

COALESCING:
-----------
The first caller for an EMPTY slot starts the build as an asyncio.Task and
parks it on the slot. Everyone else arriving while it runs awaits the same
task. Callers await it through asyncio.shield, so a caller that times out
or disconnects does not cancel a build other requests are waiting on.

Once READY, get_or_build is a list index and an attribute read.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from .variant import ALL_VARIANTS, Variant

logger = logging.getLogger(__name__)


class SlotState(Enum):
    EMPTY = "empty"
    BUILDING = "building"
    READY = "ready"


class _Slot:
    __slots__ = ("predictor", "building")

    def __init__(self):
        self.predictor = None
        self.building: Optional[asyncio.Task] = None

    @property
    def state(self) -> SlotState:
        if self.predictor is not None:
            return SlotState.READY
        if self.building is not None:
            return SlotState.BUILDING
        return SlotState.EMPTY


class PredictorRegistry:
    """
    Caches one predictor per variant slot.

    Args:
        builder: async callable variant -> predictor, normally
                 PredictorFactory.build. It is expected not to raise.
    """

    def __init__(self, builder: Callable[[Variant], Awaitable]):
        self._builder = builder
        self._slots: List[_Slot] = [_Slot() for _ in ALL_VARIANTS]
        self._builds = 0

    async def get_or_build(self, variant: Variant):
        """Return the predictor for `variant`, building it at most once"""
        slot = self._slots[variant.slot.ordinal]

        predictor = slot.predictor
        if predictor is not None:
            return predictor

        if slot.building is None:
            slot.building = asyncio.ensure_future(self._build(slot, variant.slot))

        return await asyncio.shield(slot.building)

    def get(self, variant: Variant):
        """Cached predictor or None, without triggering a build"""
        return self._slots[variant.slot.ordinal].predictor

    async def _build(self, slot: _Slot, variant: Variant):
        self._builds += 1
        logger.info(f"Registry: building slot {variant.value}")
        predictor = await self._builder(variant)
        slot.predictor = predictor
        slot.building = None
        logger.info(
            f"Registry: slot {variant.value} ready "
            f"(active={predictor.active()})"
        )
        return predictor

    @property
    def build_count(self) -> int:
        """Number of builds started since creation"""
        return self._builds

    def snapshot(self) -> Dict[str, str]:
        """State of each slot, keyed by wire name"""
        result = {}
        for variant in ALL_VARIANTS:
            if variant.slot is not variant:
                continue
            slot = self._slots[variant.ordinal]
            state = slot.state
            if state is SlotState.READY and not slot.predictor.active():
                result[variant.value] = "inactive"
            else:
                result[variant.value] = state.value
        return result
