from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal, Dict
from datetime import datetime
from marketplace.features.account.store import AccountRef
from marketplace.models.enums import AccessTier, PenaltyStanding


class AccountTarget(BaseModel):
    """Exactly one of customer_id / provider_id."""

    customer_id: Optional[int] = None
    provider_id: Optional[int] = None

    @model_validator(mode="after")
    def _validate_owner(self):
        if (self.customer_id is None) == (self.provider_id is None):
            raise ValueError("Exactly one of customer_id or provider_id must be provided")
        return self

    @property
    def ref(self) -> AccountRef:
        return AccountRef.from_ids(self.customer_id, self.provider_id)


class PenaltyStatsResponse(BaseModel):
    current_points: int
    total_violations: int
    active_violations: int
    recent_violations: int
    status: PenaltyStanding
    is_suspended: bool
    suspended_at: Optional[datetime] = None
    suspended_until: Optional[datetime] = None


class PenaltyInfoResponse(PenaltyStatsResponse):
    tier: AccessTier
    penalty_warning: Optional[Dict] = None
    next_reset_date: datetime


class BookingEligibilityResponse(BaseModel):
    allowed: bool
    tier: AccessTier
    penalty_points: int
    reason: Optional[str] = None
    message: Optional[str] = None
    max_allowed: Optional[int] = None
    current_count: Optional[int] = None


class PointsChangeResponse(BaseModel):
    previous_points: int
    new_points: int
    deactivated: Optional[bool] = None
    reactivated: Optional[bool] = None


class AdjustPointsRequest(AccountTarget):
    points: int = Field(..., gt=0)
    action: Literal["add", "deduct"]
    reason: str


class SuspensionRequest(AccountTarget):
    action: Literal["suspend", "lift"]
    reason: str
    suspension_days: Optional[int] = Field(None, gt=0)


class SuspensionResponse(BaseModel):
    action: str
    is_suspended: bool
    admin_suspended: bool
    suspended_at: Optional[datetime] = None
    suspended_until: Optional[datetime] = None
    penalty_points: int


class ResetPointsRequest(AccountTarget):
    reset_value: int = Field(100, ge=0, le=100)
    reason: str


class ResetPointsResponse(BaseModel):
    previous_points: int
    new_points: int
    is_suspended: bool


class AccountSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    penalty_points: int
    is_suspended: bool

    class Config:
        from_attributes = True


class AccountPage(BaseModel):
    items: List[AccountSummary]
    total: int
    limit: int
    offset: int
    has_more: bool


class TopViolationType(BaseModel):
    code: str
    name: str
    count: int


class DashboardResponse(BaseModel):
    total_violations: int
    weekly_violations: int
    pending_appeals: int
    suspended_accounts: Dict[str, int]
    restricted_accounts: Dict[str, int]
    top_violation_types: List[TopViolationType]


class ResetRunResponse(BaseModel):
    customer: int
    provider: int
    total: int
