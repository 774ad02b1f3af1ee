"""
Authentication Middleware
=========================

API key check for task submission.

The server has at most one key (server.api_key). With no key configured
every request is accepted; with one configured the task must carry the
same value.
"""

import hmac
import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


def validate_api_key(
    provided: Optional[str],
    expected: Optional[str],
) -> Tuple[bool, Optional[str]]:
    """
    Validate the key a task was submitted with.

    Args:
        provided: Key from the request body, if any
        expected: Configured server key, None to disable the check

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not expected:
        return True, None

    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.debug("Rejected task with invalid API key")
        return False, "Invalid API key"

    return True, None
