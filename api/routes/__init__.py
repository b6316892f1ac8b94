"""
API Routes Package
"""

from api.routes import automation
from api.routes import feedback

__all__ = ["automation", "feedback"]
