from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from marketplace.core.database import get_db
from marketplace.core.dependencies import get_current_account
from marketplace.features.access_policy.service import AccessPolicyService
from marketplace.features.account.store import AccountRef, AccountStore
from marketplace.features.appeal.service import AppealService
from marketplace.features.penalty.schema import BookingEligibilityResponse, PenaltyInfoResponse
from marketplace.features.penalty.service import PenaltyService
from marketplace.features.penalty_adjustment.schema import AdjustmentPage, RewardStatsResponse
from marketplace.features.penalty_adjustment.service import (
    PenaltyAdjustmentService,
    POSITIVE_ADJUSTMENT_TYPES,
)
from marketplace.features.penalty_reset.service import PenaltyResetService
from marketplace.features.violation.schema import AppealRequest, ViolationPage, ViolationResponse
from marketplace.features.violation.service import ViolationService
from marketplace.features.violation_type.schema import ViolationTypeResponse
from marketplace.features.violation_type.service import ViolationTypeService
from marketplace.models.enums import AccountKind, AdjustmentType, ViolationStatus

router = APIRouter()


@router.get("/my-info", response_model=PenaltyInfoResponse)
def get_my_penalty_info(
    ref: AccountRef = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Balance, violation counts, access tier and the next quarterly reset"""
    stats = PenaltyService.get_penalty_stats(db, ref)
    account = AccountStore.get(db, ref)
    return {
        **stats,
        "tier": AccessPolicyService.tier_for(account.penalty_points).name,
        "penalty_warning": AccessPolicyService.penalty_warning(account),
        "next_reset_date": PenaltyResetService.next_reset_date(),
    }


@router.get("/my-violations", response_model=ViolationPage)
def get_my_violations(
    status: Optional[ViolationStatus] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ref: AccountRef = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return ViolationService.get_penalty_history(db, ref, status=status, limit=limit, offset=offset)


@router.post("/violations/{violation_id}/appeal", response_model=ViolationResponse)
def appeal_violation(
    violation_id: int,
    data: AppealRequest,
    ref: AccountRef = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return AppealService.appeal(db, violation_id, data.reason, ref)


@router.get("/violation-types", response_model=List[ViolationTypeResponse])
def get_violation_types(
    category: Optional[AccountKind] = None,
    ref: AccountRef = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return ViolationTypeService.get_all_violation_types(db, category=category)


@router.get("/my-rewards", response_model=RewardStatsResponse)
def get_my_reward_stats(
    ref: AccountRef = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return PenaltyAdjustmentService.reward_stats(db, ref)


@router.get("/my-adjustments", response_model=AdjustmentPage)
def get_my_adjustments(
    types: Optional[List[AdjustmentType]] = Query(None),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    ref: AccountRef = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Restorations, bonuses and resets unless other types are requested"""
    return PenaltyAdjustmentService.list_adjustments(
        db, ref, types=types or POSITIVE_ADJUSTMENT_TYPES, limit=limit, offset=offset
    )


@router.get("/booking-eligibility", response_model=BookingEligibilityResponse)
def get_booking_eligibility(
    target_date: Optional[date] = None,
    ref: AccountRef = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return AccessPolicyService.check_booking_eligibility(db, ref, target_date).to_dict()
