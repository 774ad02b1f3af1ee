"""
Core module initialization
"""

from .config import Config, get_config, load_config, reload_config, validate_config
from .errors import ConfigError, SolverError
from .registry import PredictorRegistry, SlotState
from .task import Task, TaskResult
from .variant import Variant

__all__ = [
    'Config',
    'get_config',
    'load_config',
    'reload_config',
    'validate_config',
    'ConfigError',
    'SolverError',
    'PredictorRegistry',
    'SlotState',
    'Task',
    'TaskResult',
    'Variant',
]
