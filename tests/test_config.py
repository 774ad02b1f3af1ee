from __future__ import annotations

from pathlib import Path

import pytest

from core.config import (
    Config,
    DEFAULT_MODEL_BASE_URL,
    load_config,
    validate_config,
)
from core.errors import ConfigError


def test_defaults(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing.yaml")
    assert config.solver.limit == 3
    assert config.onnx.num_threads == 1
    assert config.onnx.allocator == "device"
    assert config.onnx.update_check is False
    assert config.store.kind == "static"
    assert config.store.base_url == DEFAULT_MODEL_BASE_URL
    assert config.fallback.enabled is False
    assert config.fallback.image_limit == 1
    validate_config(config)


def test_yaml_sections(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "server:\n"
        "  port: 9000\n"
        "  api_key: secret\n"
        "solver:\n"
        "  limit: 5\n"
        "onnx:\n"
        "  allocator: arena\n"
        "  num_threads: 4\n"
        "store:\n"
        "  kind: object_store\n"
        "  bucket: models\n"
        "  endpoint: https://r2.example.com\n"
        "  client_id: id\n"
        "  secret: s\n"
        "fallback:\n"
        "  solver: capsolver\n"
        "  client_key: ck\n"
        "  image_limit: 3\n",
        encoding="utf-8",
    )
    config = validate_config(load_config(path))
    assert config.server.port == 9000
    assert config.server.api_key == "secret"
    assert config.solver.limit == 5
    assert config.onnx.allocator == "arena"
    assert config.onnx.num_threads == 4
    assert config.store.bucket == "models"
    assert config.fallback.enabled is True
    assert config.fallback.image_limit == 3


def test_env_overrides_yaml(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("solver:\n  limit: 5\n", encoding="utf-8")
    clean_env.setenv("SOLVER_LIMIT", "2")
    clean_env.setenv("MODEL_DIR", str(tmp_path / "m"))
    clean_env.setenv("MODEL_UPDATE_CHECK", "true")
    clean_env.setenv("FALLBACK_SOLVER", "yescaptcha")
    clean_env.setenv("FALLBACK_KEY", "abc")

    config = load_config(path)
    assert config.solver.limit == 2
    assert config.model_dir == tmp_path / "m"
    assert config.onnx.update_check is True
    assert config.fallback.solver == "yescaptcha"
    assert config.fallback.enabled is True


def test_config_path_from_env(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "other.yaml"
    path.write_text("server:\n  debug: true\n", encoding="utf-8")
    clean_env.setenv("SOLVER_CONFIG", str(path))
    assert load_config().server.debug is True


def test_model_dir_defaults_to_models_dir() -> None:
    config = Config()
    assert config.model_dir == config.models_dir


def test_invalid_allocator_rejected() -> None:
    config = Config()
    config.onnx.allocator = "gpu"
    with pytest.raises(ConfigError, match="Invalid allocator"):
        validate_config(config)


def test_invalid_limit_rejected() -> None:
    config = Config()
    config.solver.limit = 0
    with pytest.raises(ConfigError, match="Invalid submit limit"):
        validate_config(config)


def test_unknown_fallback_rejected() -> None:
    config = Config()
    config.fallback.solver = "2captcha"
    config.fallback.client_key = "k"
    with pytest.raises(ConfigError, match="yescaptcha"):
        validate_config(config)


def test_incomplete_object_store_rejected() -> None:
    config = Config()
    config.store.kind = "object_store"
    config.store.bucket = "models"
    with pytest.raises(ConfigError, match="endpoint"):
        validate_config(config)
