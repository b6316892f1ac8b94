import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from api.auth.service import get_auth_service
from api.config import APISettings
from api.main import create_application


@pytest.fixture
def automation_service():
    service = MagicMock()
    for name in ("start_automation", "stop_automation", "get_status", "get_history", "get_email",
                 "send_held_response", "submit_feedback", "get_feedback_history", "get_feedback_stats"):
        setattr(service, name, AsyncMock())
    service.ingestor.start = AsyncMock()
    service.ingestor.close = AsyncMock()
    service.monitor.rehydrate = AsyncMock(return_value=0)
    service.monitor.shutdown = AsyncMock()
    service.monitor.active_owners = MagicMock(return_value=[])
    return service


@pytest.fixture
def client(db, automation_service):
    app = create_application(service=automation_service, settings=APISettings())
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def auth_headers(user):
    token = get_auth_service().create_access_token({"sub": user["id"]})
    return {"Authorization": f"Bearer {token}"}
