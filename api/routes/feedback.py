"""
Feedback API Routes

Human review of automated replies. Each submission is stored and queued
for conversion into a training example.
"""

import logging

from fastapi import APIRouter, Depends, status

from api.auth.service import get_current_owner
from api.models.automation import (
    FeedbackRequest,
    FeedbackResponse,
    FeedbackHistoryResponse,
    FeedbackStatsResponse,
)
from api.services.automation_service import get_automation_service
from src.automation.service import AutomationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedback", tags=["Feedback"])


@router.post(
    "",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit feedback on an automated reply"
)
async def submit_feedback(
    request: FeedbackRequest,
    owner: str = Depends(get_current_owner),
    service: AutomationService = Depends(get_automation_service)
):
    feedback = await service.submit_feedback(
        owner,
        request.automated_email_id,
        request.feedback_type,
        rating=request.rating,
        improved_response=request.improved_response,
        feedback_notes=request.feedback_notes,
        improvements=request.improvements,
    )
    return {"feedback": feedback}


@router.get("", response_model=FeedbackHistoryResponse, summary="List submitted feedback")
async def get_feedback_history(
    owner: str = Depends(get_current_owner),
    service: AutomationService = Depends(get_automation_service)
):
    return {"feedback": await service.get_feedback_history(owner)}


@router.get("/stats", response_model=FeedbackStatsResponse, summary="Feedback statistics and training status")
async def get_feedback_stats(
    owner: str = Depends(get_current_owner),
    service: AutomationService = Depends(get_automation_service)
):
    return await service.get_feedback_stats(owner)
