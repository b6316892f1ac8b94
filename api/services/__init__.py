# api/services/__init__.py
"""
API Services Package

Dependency providers connecting route handlers to the automation core.
"""

from api.services.automation_service import get_automation_service

__all__ = ["get_automation_service"]
