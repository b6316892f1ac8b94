"""
Automation service provider for dependency injection.

The application owns a single AutomationService, created in
`create_application` and stored on `app.state`.
"""

from fastapi import Request

from src.automation.service import AutomationService


def get_automation_service(request: Request) -> AutomationService:
    """Provide the application's automation service instance."""
    return request.app.state.automation
