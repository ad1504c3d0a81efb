from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from marketplace.models.enums import AdjustmentType


class AdjustmentResponse(BaseModel):
    id: int
    customer_id: Optional[int] = None
    provider_id: Optional[int] = None
    adjustment_type: AdjustmentType
    points_adjusted: int
    previous_points: int
    new_points: int
    reason: Optional[str] = None
    related_violation_id: Optional[int] = None
    adjusted_by_admin_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AdjustmentPage(BaseModel):
    items: List[AdjustmentResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class RewardStatsResponse(BaseModel):
    total_rewards: int
    total_points_earned: int
    rewards_this_month: int
    points_earned_this_month: int
    recent_rewards: List[AdjustmentResponse]
