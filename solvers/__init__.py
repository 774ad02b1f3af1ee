"""
Solvers Module
Routes classification tasks to local predictors or a remote fallback provider
"""

from .fallback import FallbackClient, FallbackProvider, parse_solution
from .orchestrator import SolverOrchestrator

__all__ = [
    'FallbackClient',
    'FallbackProvider',
    'parse_solution',
    'SolverOrchestrator',
]
