from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from marketplace.core.database import get_db
from marketplace.core.dependencies import get_current_admin
from marketplace.features.account.store import AccountRef
from marketplace.features.admin.model import Admin
from marketplace.features.admin.service import AdminService
from marketplace.features.appeal.service import AppealService
from marketplace.features.penalty.schema import (
    AccountPage,
    AdjustPointsRequest,
    DashboardResponse,
    PenaltyStatsResponse,
    PointsChangeResponse,
    ResetPointsRequest,
    ResetPointsResponse,
    ResetRunResponse,
    SuspensionRequest,
    SuspensionResponse,
)
from marketplace.features.penalty.service import PenaltyService
from marketplace.features.penalty_adjustment.schema import AdjustmentPage
from marketplace.features.penalty_adjustment.service import PenaltyAdjustmentService
from marketplace.features.penalty_reset.service import PenaltyResetService
from marketplace.features.violation.schema import (
    AppealReviewRequest,
    ViolationCreate,
    ViolationPage,
    ViolationResponse,
    ViolationReverseRequest,
)
from marketplace.features.violation.service import ViolationService
from marketplace.features.violation_type.schema import (
    InitializeViolationTypesResponse,
    ViolationTypeCreate,
    ViolationTypeResponse,
    ViolationTypeUpdate,
)
from marketplace.features.violation_type.service import ViolationTypeService
from marketplace.models.enums import AccountKind, AdjustmentType, DetectedBy, ViolationStatus

router = APIRouter()


def _optional_ref(customer_id: Optional[int], provider_id: Optional[int]) -> Optional[AccountRef]:
    if customer_id is None and provider_id is None:
        return None
    return AccountRef.from_ids(customer_id, provider_id)


# ========== Violations ==========

@router.post("/violations", response_model=ViolationResponse, status_code=status.HTTP_201_CREATED)
def record_violation(
    data: ViolationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return PenaltyService.record_violation(
        db,
        AccountRef.from_ids(data.customer_id, data.provider_id),
        data.violation_code,
        violation_details=data.violation_details,
        evidence_urls=data.evidence_urls,
        detected_by=DetectedBy.ADMIN,
        detected_by_admin_id=admin.id,
        appointment_id=data.appointment_id,
        report_id=data.report_id,
        rating_id=data.rating_id,
        background_tasks=background_tasks,
    )


@router.get("/violations", response_model=ViolationPage)
def list_violations(
    customer_id: Optional[int] = None,
    provider_id: Optional[int] = None,
    status: Optional[ViolationStatus] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    ref = _optional_ref(customer_id, provider_id)
    return ViolationService.get_penalty_history(db, ref, status=status, limit=limit, offset=offset)


@router.get("/appeals/pending", response_model=List[ViolationResponse])
def list_pending_appeals(
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return ViolationService.list_pending_appeals(db)


@router.post("/violations/{violation_id}/review", response_model=ViolationResponse)
def review_appeal(
    violation_id: int,
    data: AppealReviewRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return AppealService.review_appeal(
        db, violation_id, data.approved, admin.id, data.notes, background_tasks=background_tasks
    )


@router.post("/violations/{violation_id}/reverse", response_model=ViolationResponse)
def reverse_violation(
    violation_id: int,
    data: ViolationReverseRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return AppealService.admin_reverse_violation(db, violation_id, admin.id, data.reason)


# ========== Points and suspension ==========

@router.post("/adjust-points", response_model=PointsChangeResponse)
def adjust_points(
    data: AdjustPointsRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return AdminService.admin_adjust_points(
        db, data.ref, data.points, data.action, data.reason, admin.id, background_tasks=background_tasks
    )


@router.get("/stats", response_model=PenaltyStatsResponse)
def get_account_stats(
    customer_id: Optional[int] = None,
    provider_id: Optional[int] = None,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return PenaltyService.get_penalty_stats(db, AccountRef.from_ids(customer_id, provider_id))


@router.post("/suspension", response_model=SuspensionResponse)
def manage_suspension(
    data: SuspensionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return AdminService.manage_suspension(
        db,
        data.ref,
        data.action,
        data.reason,
        admin.id,
        suspension_days=data.suspension_days,
        background_tasks=background_tasks,
    )


@router.post("/reset-points", response_model=ResetPointsResponse)
def reset_points(
    data: ResetPointsRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return AdminService.reset_points(db, data.ref, data.reason, admin.id, reset_value=data.reset_value)


@router.get("/adjustments", response_model=AdjustmentPage)
def list_adjustments(
    customer_id: Optional[int] = None,
    provider_id: Optional[int] = None,
    types: Optional[List[AdjustmentType]] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    ref = _optional_ref(customer_id, provider_id)
    return PenaltyAdjustmentService.list_adjustments(db, ref, types=types, limit=limit, offset=offset)


# ========== Overview ==========

@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return AdminService.dashboard_stats(db)


@router.get("/restricted-accounts", response_model=AccountPage)
def get_restricted_accounts(
    kind: AccountKind = AccountKind.CUSTOMER,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return AdminService.restricted_accounts(db, kind, limit=limit, offset=offset)


# ========== Violation catalog ==========

@router.get("/violation-types", response_model=List[ViolationTypeResponse])
def get_violation_types(
    category: Optional[AccountKind] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return ViolationTypeService.get_all_violation_types(db, category=category, include_inactive=include_inactive)


@router.post("/violation-types", response_model=ViolationTypeResponse, status_code=status.HTTP_201_CREATED)
def create_violation_type(
    data: ViolationTypeCreate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return ViolationTypeService.create_violation_type(db, data)


@router.put("/violation-types/{code}", response_model=ViolationTypeResponse)
def update_violation_type(
    code: str,
    data: ViolationTypeUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return ViolationTypeService.update_violation_type(db, code, data)


@router.post("/violation-types/initialize", response_model=InitializeViolationTypesResponse)
def initialize_violation_types(
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return ViolationTypeService.initialize_violation_types(db)


# ========== Quarterly reset ==========

@router.post("/reset/run", response_model=ResetRunResponse)
def run_quarterly_reset(
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    """Run the quarterly reset now. Accounts already at 100 are skipped."""
    return PenaltyResetService.run_reset(db)
