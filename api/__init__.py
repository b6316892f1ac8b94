"""
API Package Initialization

FastAPI surface for inbox automation: routes, request and response models,
authentication and error handling.
"""

from api.config import get_settings

__all__ = ['get_settings']
