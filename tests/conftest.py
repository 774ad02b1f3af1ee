"""Shared fixtures for the solver test suite."""

from __future__ import annotations

import logging

import pytest


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "SOLVER_CONFIG",
        "SOLVER_HOST",
        "SOLVER_PORT",
        "SOLVER_DEBUG",
        "SOLVER_API_KEY",
        "SOLVER_LIMIT",
        "MODEL_DIR",
        "MODEL_UPDATE_CHECK",
        "ONNX_NUM_THREADS",
        "ONNX_ALLOCATOR",
        "FALLBACK_SOLVER",
        "FALLBACK_KEY",
        "FALLBACK_ENDPOINT",
        "FALLBACK_IMAGE_LIMIT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
