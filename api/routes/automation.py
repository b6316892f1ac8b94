"""
Automation API Routes

Start and stop a user's inbox automation, inspect its status and history,
and send replies that were held for review.

Errors raised by the service are mapped to responses by the global
exception handlers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from api.auth.service import get_current_owner
from api.models.automation import (
    StartAutomationRequest,
    AutomationActionResponse,
    AutomationStatusResponse,
    AutomationHistoryResponse,
    AutomatedEmailResponse,
    SendResponseRequest,
    SendResponseResponse,
)
from api.services.automation_service import get_automation_service
from src.automation.service import AutomationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/automation", tags=["Automation"])


@router.post("/start", response_model=AutomationActionResponse, summary="Start inbox automation")
async def start_automation(
    request: Optional[StartAutomationRequest] = Body(default=None),
    owner: str = Depends(get_current_owner),
    service: AutomationService = Depends(get_automation_service)
):
    """
    Enable automation and start polling the user's inbox.

    Requires a verified mailbox and at least three knowledge-base entries.
    """
    interval = request.interval_minutes if request else None
    result = await service.start_automation(owner, interval)
    logger.info(f"Automation started for user {owner}")
    return result


@router.post("/stop", response_model=AutomationActionResponse, summary="Stop inbox automation")
async def stop_automation(
    owner: str = Depends(get_current_owner),
    service: AutomationService = Depends(get_automation_service)
):
    return await service.stop_automation(owner)


@router.get("/status", response_model=AutomationStatusResponse, summary="Get automation status and statistics")
async def get_status(
    owner: str = Depends(get_current_owner),
    service: AutomationService = Depends(get_automation_service)
):
    return await service.get_status(owner)


@router.get("/history", response_model=AutomationHistoryResponse, summary="List processed emails")
async def get_history(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Records per page"),
    category: Optional[str] = Query(
        None, description="Category filter, 'needs_review' for held replies, or 'all'"
    ),
    owner: str = Depends(get_current_owner),
    service: AutomationService = Depends(get_automation_service)
):
    return await service.get_history(owner, page, limit, category)


@router.get("/emails/{email_id}", response_model=AutomatedEmailResponse, summary="Get a processed email")
async def get_email(
    email_id: str = Path(..., description="Automated email record id"),
    owner: str = Depends(get_current_owner),
    service: AutomationService = Depends(get_automation_service)
):
    return {"email": await service.get_email(owner, email_id)}


@router.post("/emails/{email_id}/send", response_model=SendResponseResponse, summary="Send a held reply")
async def send_response(
    request: SendResponseRequest,
    email_id: str = Path(..., description="Automated email record id"),
    owner: str = Depends(get_current_owner),
    service: AutomationService = Depends(get_automation_service)
):
    """
    Send a reply for an email, typically one held for human review.

    Rejected with 400 if a reply was already sent.
    """
    email = await service.send_held_response(owner, email_id, request.response_text)
    return {"email": email}
