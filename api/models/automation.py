"""
Automation and Feedback API Models

Request and response schemas for the automation and feedback routes.
Feedback business rules (rating required for approve/reject, improved
response required for edit) are enforced by the service and reported as
400 errors, so the request model only checks shapes.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StartAutomationRequest(BaseModel):
    interval_minutes: Optional[int] = Field(
        default=None,
        ge=1,
        le=1440,
        description="Minutes between inbox checks (default 5)"
    )


class AutomationActionResponse(BaseModel):
    success: bool = True
    status: str
    message: str
    interval_minutes: Optional[int] = None


class AutomationStats(BaseModel):
    total_processed: int = 0
    total_responded: int = 0
    needs_review: int = 0
    avg_response_time_minutes: int = 0
    categories: Dict[str, int] = Field(default_factory=dict)


class AutomationStatusResponse(BaseModel):
    success: bool = True
    status: str = Field(..., description="running or stopped")
    settings: Dict[str, Any]
    job: Dict[str, Any]
    stats: AutomationStats


class AutomatedEmailModel(BaseModel):
    """One processed inbound message and its reply outcome."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    message_id: str
    subject: Optional[str] = None
    sender: Optional[str] = Field(default=None, alias="from")
    recipient: Optional[str] = Field(default=None, alias="to")
    received_date: Optional[datetime] = None
    body: Optional[str] = None
    category: str
    response_generated: bool
    response_sent: bool
    response_text: Optional[str] = None
    response_date: Optional[datetime] = None
    needs_human_review: bool
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AutomationHistoryResponse(BaseModel):
    success: bool = True
    data: List[AutomatedEmailModel]
    pagination: Pagination


class AutomatedEmailResponse(BaseModel):
    success: bool = True
    email: AutomatedEmailModel


class SendResponseRequest(BaseModel):
    response_text: str = Field(..., description="Reply body to send")


class SendResponseResponse(AutomatedEmailResponse):
    message: str = "Response sent successfully"


class FeedbackRequest(BaseModel):
    automated_email_id: str
    feedback_type: str = Field(..., description="edit, approve or reject")
    rating: Optional[int] = Field(default=None, description="1-5, required for approve/reject")
    improved_response: Optional[str] = Field(default=None, description="Required for edit")
    feedback_notes: Optional[str] = None
    improvements: List[str] = Field(default_factory=list)


class FeedbackModel(BaseModel):
    id: str
    automated_email_id: str
    original_response: Optional[str] = None
    improved_response: Optional[str] = None
    feedback_type: str
    rating: Optional[int] = None
    feedback_notes: Optional[str] = None
    improvements: List[str] = Field(default_factory=list)
    automated_email: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class FeedbackResponse(BaseModel):
    success: bool = True
    feedback: FeedbackModel


class FeedbackHistoryResponse(BaseModel):
    success: bool = True
    feedback: List[FeedbackModel]


class TrainingMetrics(BaseModel):
    training_status: str
    last_training_time: Optional[datetime] = None
    total_examples_used: int = 0
    current_model: Optional[str] = None
    queue_size: int = 0


class FeedbackStatsResponse(BaseModel):
    success: bool = True
    stats: Dict[str, Any]
    training: TrainingMetrics
