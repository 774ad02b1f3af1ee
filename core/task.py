"""
Task Model
Inbound classification task and the result sent back for it
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import ImageDecodeError, SolverError

logger = logging.getLogger(__name__)


@dataclass
class Task:
    """One classification request"""
    images: List[str]
    game_variant_instructions: Tuple[str, str]
    api_key: Optional[str] = None

    @property
    def variant_name(self) -> str:
        return self.game_variant_instructions[0]

    @property
    def instruction(self) -> str:
        return self.game_variant_instructions[1]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        name, instruction = data["game_variant_instructions"]
        return cls(
            images=list(data.get("images") or []),
            game_variant_instructions=(name, instruction),
            api_key=data.get("api_key"),
        )


@dataclass
class TaskResult:
    """
    Result of a task.

    Exactly one of the two shapes:
        solved=True,  objects=[...]   (one answer per input image)
        solved=False, error="..."
    Use success() / failure() rather than the constructor.
    """
    solved: bool
    objects: Optional[List[int]] = None
    error: Optional[str] = None
    status_code: int = field(default=200, compare=False)

    @classmethod
    def success(cls, objects: List[int]) -> "TaskResult":
        return cls(solved=True, objects=list(objects))

    @classmethod
    def failure(cls, error: str, status_code: int = 500) -> "TaskResult":
        return cls(solved=False, error=error, status_code=status_code)

    @classmethod
    def from_error(cls, exc: SolverError) -> "TaskResult":
        return cls.failure(exc.message, exc.status_code)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API format, omitting absent fields"""
        result: Dict[str, Any] = {"solved": self.solved}
        if self.error is not None:
            result["error"] = self.error
        if self.objects is not None:
            result["objects"] = self.objects
        return result


def decode_image_data(image: str) -> bytes:
    """
    Decode a base64 image, stripping an optional data-URL prefix.

    Args:
        image: "iVBORw0..." or "data:image/png;base64,iVBORw0..."

    Returns:
        Raw image bytes
    """
    data = image.split(",", 1)[1] if "," in image else image
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 image: {e}") from e
