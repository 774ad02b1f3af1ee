"""
Centralized Configuration Module
Loads settings from config.yaml and environment variables
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import Optional, Union
from pathlib import Path

from .errors import ConfigError


ALLOCATORS = ("arena", "device")
STORE_KINDS = ("static", "object_store")
FALLBACK_SOLVERS = ("yescaptcha", "capsolver")

DEFAULT_MODEL_BASE_URL = "https://github.com/0x676e67/fs/releases/download/model"


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    api_key: Optional[str] = None


@dataclass
class SolverConfig:
    limit: int = 3  # max images per task


@dataclass
class OnnxConfig:
    model_dir: Optional[str] = None  # defaults to Config.models_dir
    update_check: bool = False
    num_threads: int = 1
    allocator: str = "device"  # arena | device


@dataclass
class StoreConfig:
    kind: str = "static"  # static | object_store
    base_url: str = DEFAULT_MODEL_BASE_URL
    bucket: Optional[str] = None
    prefix: Optional[str] = None
    endpoint: Optional[str] = None
    client_id: Optional[str] = None
    secret: Optional[str] = None


@dataclass
class FallbackConfig:
    solver: Optional[str] = None  # yescaptcha | capsolver
    client_key: Optional[str] = None
    endpoint: Optional[str] = None
    image_limit: int = 1
    soft_id: Optional[str] = None
    app_id: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.solver and self.client_key)


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "standard"
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class"""
    server: ServerConfig = field(default_factory=ServerConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)
    onnx: OnnxConfig = field(default_factory=OnnxConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Paths
    base_dir: Path = field(default_factory=lambda: Path(__file__).parent.parent)
    models_dir: Path = field(default_factory=lambda: Path(__file__).parent.parent / "models")

    @property
    def model_dir(self) -> Path:
        """Local model directory, honouring the onnx.model_dir override"""
        if self.onnx.model_dir:
            return Path(self.onnx.model_dir).expanduser()
        return self.models_dir


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(config_path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load configuration from YAML file and environment variables.
    Environment variables override YAML settings.
    """
    config = Config()

    # Determine config file path
    if config_path is None:
        env_path = os.environ.get("SOLVER_CONFIG")
        config_path = env_path if env_path else Path(__file__).parent.parent / "config.yaml"

    config_path_str = str(config_path)

    # Load from YAML if exists
    if os.path.exists(config_path_str):
        with open(config_path_str, 'r') as f:
            yaml_config = yaml.safe_load(f)

        if yaml_config:
            if 'server' in yaml_config:
                config.server = ServerConfig(**yaml_config['server'])
            if 'solver' in yaml_config:
                config.solver = SolverConfig(**yaml_config['solver'])
            if 'onnx' in yaml_config:
                config.onnx = OnnxConfig(**yaml_config['onnx'])
            if 'store' in yaml_config:
                config.store = StoreConfig(**yaml_config['store'])
            if 'fallback' in yaml_config:
                config.fallback = FallbackConfig(**yaml_config['fallback'])
            if 'logging' in yaml_config:
                config.logging = LoggingConfig(**yaml_config['logging'])

    # Override with environment variables
    if os.environ.get('SOLVER_HOST'):
        config.server.host = os.environ['SOLVER_HOST']
    if os.environ.get('SOLVER_PORT'):
        config.server.port = int(os.environ['SOLVER_PORT'])
    if os.environ.get('SOLVER_DEBUG'):
        config.server.debug = _env_bool(os.environ['SOLVER_DEBUG'])
    if os.environ.get('SOLVER_API_KEY'):
        config.server.api_key = os.environ['SOLVER_API_KEY']
    if os.environ.get('SOLVER_LIMIT'):
        config.solver.limit = int(os.environ['SOLVER_LIMIT'])
    if os.environ.get('MODEL_DIR'):
        config.onnx.model_dir = os.environ['MODEL_DIR']
    if os.environ.get('MODEL_UPDATE_CHECK'):
        config.onnx.update_check = _env_bool(os.environ['MODEL_UPDATE_CHECK'])
    if os.environ.get('ONNX_NUM_THREADS'):
        config.onnx.num_threads = int(os.environ['ONNX_NUM_THREADS'])
    if os.environ.get('ONNX_ALLOCATOR'):
        config.onnx.allocator = os.environ['ONNX_ALLOCATOR']
    if os.environ.get('FALLBACK_SOLVER'):
        config.fallback.solver = os.environ['FALLBACK_SOLVER']
    if os.environ.get('FALLBACK_KEY'):
        config.fallback.client_key = os.environ['FALLBACK_KEY']
    if os.environ.get('FALLBACK_ENDPOINT'):
        config.fallback.endpoint = os.environ['FALLBACK_ENDPOINT']
    if os.environ.get('FALLBACK_IMAGE_LIMIT'):
        config.fallback.image_limit = int(os.environ['FALLBACK_IMAGE_LIMIT'])

    return config


def validate_config(config: Config) -> Config:
    """
    Reject configurations the server cannot run with.

    Raises:
        ConfigError: describing the first problem found
    """
    if config.solver.limit < 1:
        raise ConfigError("Invalid submit limit: must be at least 1")

    if config.onnx.allocator not in ALLOCATORS:
        raise ConfigError(f"Invalid allocator: {config.onnx.allocator}")
    if config.onnx.num_threads < 0:
        raise ConfigError("onnx.num_threads must not be negative")

    store = config.store
    if store.kind not in STORE_KINDS:
        raise ConfigError(f"Unknown store kind: {store.kind}")
    if store.kind == "static" and not store.base_url:
        raise ConfigError("store.base_url is required for the static store")
    if store.kind == "object_store":
        missing = [
            name for name in ("bucket", "endpoint", "client_id", "secret")
            if not getattr(store, name)
        ]
        if missing:
            raise ConfigError(f"object_store is missing: {', '.join(missing)}")

    fallback = config.fallback
    if fallback.solver is not None:
        if fallback.solver not in FALLBACK_SOLVERS:
            raise ConfigError("Only support `yescaptcha` / `capsolver`")
        if not fallback.client_key:
            raise ConfigError("fallback.client_key is required with a fallback solver")
        if fallback.image_limit < 1:
            raise ConfigError("fallback.image_limit must be at least 1")

    return config


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> Config:
    """Reload configuration from file"""
    global _config
    _config = load_config(config_path)
    return _config
