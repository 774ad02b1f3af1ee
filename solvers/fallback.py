"""
Fallback Solving Providers
==========================

Paid remote classification APIs used when a challenge cannot be solved
locally (unknown variant, or its model failed to load).

Both providers take a createTask-style JSON body and answer synchronously
with solution.objects, but they differ in how many images one call takes:

    yescaptcha  - one image per call, question = human instruction
    capsolver   - up to `image_limit` images per call, question = variant name

Images are submitted in input order and the answers concatenated in the
same order.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiohttp

from core.config import FallbackConfig
from core.errors import ConfigError, FallbackError

logger = logging.getLogger(__name__)


class FallbackProvider(Enum):
    YESCAPTCHA = "yescaptcha"
    CAPSOLVER = "capsolver"

    @classmethod
    def parse(cls, name: str) -> "FallbackProvider":
        try:
            return cls(name)
        except ValueError:
            raise ConfigError("Only support `yescaptcha` / `capsolver`") from None


DEFAULT_ENDPOINTS = {
    FallbackProvider.YESCAPTCHA: "https://api.yescaptcha.com/createTask",
    FallbackProvider.CAPSOLVER: "https://api.capsolver.com/createTask",
}

TASK_TYPE = "FunCaptchaClassification"


def chunked(items: Sequence[str], size: int) -> List[Sequence[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def parse_solution(payload: Any, expected: int) -> List[int]:
    """
    Extract solution.objects from a provider response.

    Raises:
        FallbackError: on an error payload or a malformed/short answer
    """
    if not isinstance(payload, dict):
        raise FallbackError("Fallback provider returned a non-object response")

    description = payload.get("errorDescription")
    if description:
        raise FallbackError(str(description))

    error_id = payload.get("errorId") or 0
    if error_id:
        raise FallbackError(str(payload.get("errorCode") or f"errorId {error_id}"))

    solution = payload.get("solution") or {}
    objects = solution.get("objects") if isinstance(solution, dict) else None
    if not isinstance(objects, list) or not all(
        isinstance(o, int) and not isinstance(o, bool) for o in objects
    ):
        raise FallbackError("Fallback provider returned no objects")

    if len(objects) != expected:
        raise FallbackError(
            f"Fallback provider returned {len(objects)} answers for {expected} images"
        )
    return objects


class FallbackClient:
    """
    Client for one configured fallback provider.

    Args:
        provider: Which API to talk to
        client_key: Provider account key
        endpoint: Override for the createTask URL
        image_limit: Max images per call (capsolver only)
        soft_id / app_id: Optional referral ids added to the body
        session: Shared aiohttp session; created lazily if omitted
    """

    def __init__(
        self,
        provider: FallbackProvider,
        client_key: str,
        endpoint: Optional[str] = None,
        image_limit: int = 1,
        soft_id: Optional[str] = None,
        app_id: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 120.0,
    ):
        if image_limit < 1:
            raise ConfigError("fallback image_limit must be at least 1")
        self.provider = provider
        self.client_key = client_key
        self.endpoint = endpoint or DEFAULT_ENDPOINTS[provider]
        self.image_limit = image_limit
        self.soft_id = soft_id
        self.app_id = app_id
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @classmethod
    def from_config(cls, config: FallbackConfig) -> Optional["FallbackClient"]:
        """Build a client, or None when no fallback is configured"""
        if not config.enabled:
            return None
        return cls(
            provider=FallbackProvider.parse(config.solver),
            client_key=config.client_key,
            endpoint=config.endpoint,
            image_limit=config.image_limit,
            soft_id=config.soft_id,
            app_id=config.app_id,
        )

    @property
    def batch_size(self) -> int:
        if self.provider is FallbackProvider.YESCAPTCHA:
            return 1
        return self.image_limit

    async def solve(
        self,
        images: Sequence[str],
        game_variant_instructions: Tuple[str, str],
    ) -> List[int]:
        """Submit every image, chunked per provider; answers in input order"""
        answers: List[int] = []
        chunks = chunked(images, self.batch_size)
        logger.info(
            f"Fallback {self.provider.value}: {len(images)} images in {len(chunks)} calls"
        )
        for chunk in chunks:
            body = self._build_body(chunk, game_variant_instructions)
            answers.extend(await self._submit(body, len(chunk)))
        return answers

    def _build_body(
        self,
        chunk: Sequence[str],
        game_variant_instructions: Tuple[str, str],
    ) -> Dict[str, Any]:
        variant_name, instruction = game_variant_instructions

        if self.provider is FallbackProvider.YESCAPTCHA:
            body: Dict[str, Any] = {
                "clientKey": self.client_key,
                "task": {
                    "type": TASK_TYPE,
                    "image": chunk[0],
                    "question": instruction,
                },
            }
            if self.soft_id:
                body["softID"] = self.soft_id
            return body

        body = {
            "clientKey": self.client_key,
            "task": {
                "type": TASK_TYPE,
                "images": list(chunk),
                "question": variant_name,
            },
        }
        if self.app_id:
            body["appId"] = self.app_id
        return body

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _submit(self, body: Dict[str, Any], expected: int) -> List[int]:
        session = self._get_session()
        try:
            async with session.post(self.endpoint, json=body) as response:
                text = await response.text()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FallbackError(f"Fallback {self.provider.value} request failed: {e}") from e

        if not 200 <= status < 300:
            raise FallbackError(text or f"Fallback {self.provider.value} returned HTTP {status}")

        try:
            payload = json.loads(text)
        except ValueError as e:
            raise FallbackError(f"Fallback {self.provider.value} returned invalid JSON") from e

        return parse_solution(payload, expected)

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
