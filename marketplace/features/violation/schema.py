from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime
from marketplace.models.enums import AccountKind, ViolationStatus, AppealStatus, DetectedBy


class ViolationTypeSummary(BaseModel):
    code: str
    name: str
    category: AccountKind
    point_cost: int

    class Config:
        from_attributes = True


class ViolationCreate(BaseModel):
    """Admin-recorded violation. Exactly one of customer_id / provider_id."""

    customer_id: Optional[int] = None
    provider_id: Optional[int] = None
    violation_code: str
    violation_details: Optional[str] = None
    evidence_urls: Optional[List[str]] = None
    appointment_id: Optional[int] = None
    report_id: Optional[int] = None
    rating_id: Optional[int] = None

    @model_validator(mode="after")
    def _validate_owner(self):
        if (self.customer_id is None) == (self.provider_id is None):
            raise ValueError("Exactly one of customer_id or provider_id must be provided")
        return self


class ViolationResponse(BaseModel):
    id: int
    customer_id: Optional[int] = None
    provider_id: Optional[int] = None
    violation_type_id: int
    violation_type: Optional[ViolationTypeSummary] = None
    points_deducted: int
    status: ViolationStatus
    appeal_status: AppealStatus
    appointment_id: Optional[int] = None
    report_id: Optional[int] = None
    rating_id: Optional[int] = None
    violation_details: Optional[str] = None
    evidence_urls: Optional[List[str]] = None
    detected_by: DetectedBy
    detected_by_admin_id: Optional[int] = None
    created_at: datetime
    appeal_reason: Optional[str] = None
    appeal_submitted_at: Optional[datetime] = None
    appeal_reviewed_by: Optional[int] = None
    appeal_reviewed_at: Optional[datetime] = None
    appeal_review_notes: Optional[str] = None
    reversed_at: Optional[datetime] = None
    reversed_by_admin_id: Optional[int] = None
    reversal_reason: Optional[str] = None

    class Config:
        from_attributes = True


class ViolationPage(BaseModel):
    items: List[ViolationResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class AppealRequest(BaseModel):
    reason: str


class AppealReviewRequest(BaseModel):
    approved: bool
    notes: str = Field(..., description="At least 10 characters")


class ViolationReverseRequest(BaseModel):
    reason: str
