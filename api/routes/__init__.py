"""
API Routes Module
"""

from .task import router as task_router
from .health import router as health_router

__all__ = ['task_router', 'health_router']
