"""
API Middleware Module
"""

from .auth import validate_api_key

__all__ = ['validate_api_key']
