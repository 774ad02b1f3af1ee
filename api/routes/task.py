"""
Task Route - FastAPI
====================

POST /task - classify every image of one challenge.

Request:
    {"api_key": "...", "images": ["<base64>", ...],
     "game_variant_instructions": ["<variant>", "<instruction>"]}

Response:
    {"solved": true, "objects": [<index>, ...]}
    {"solved": false, "error": "<message>"}

The HTTP status follows the outcome: 200 on success, 4xx for a bad
request, 5xx for a server-side or fallback failure.
"""

import logging
from typing import List, Optional, Tuple

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.errors import InvalidApiKeyError
from core.task import Task
from ..middleware.auth import validate_api_key

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# PYDANTIC MODELS - Request validation
# =============================================================================

class TaskRequest(BaseModel):
    """Request body for /task"""
    api_key: Optional[str] = None
    images: List[str]
    game_variant_instructions: Tuple[str, str]

    def to_task(self) -> Task:
        return Task(
            images=list(self.images),
            game_variant_instructions=self.game_variant_instructions,
            api_key=self.api_key,
        )


# =============================================================================
# ROUTES
# =============================================================================

@router.post("/task")
async def submit_task(body: TaskRequest, request: Request):
    """
    Solve one classification task.

    Returns:
        JSON TaskResult with the matching HTTP status
    """
    config = request.app.state.config
    is_valid, _ = validate_api_key(body.api_key, config.server.api_key)
    if not is_valid:
        raise InvalidApiKeyError()

    task = body.to_task()
    logger.debug(
        f"Task: variant={task.variant_name} images={len(task.images)}"
    )

    orchestrator = request.app.state.orchestrator
    result = await orchestrator.process(task)

    return JSONResponse(status_code=result.status_code, content=result.to_dict())
