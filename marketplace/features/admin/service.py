import logging
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import datetime, timedelta
from typing import Dict, Optional
from marketplace.core.database import atomic
from marketplace.core.exceptions import ValidationError
from marketplace.core.security import verify_password
from marketplace.features.account.store import AccountRef, AccountStore
from marketplace.features.admin.model import Admin
from marketplace.features.penalty.service import (
    PenaltyService,
    DEACTIVATION_THRESHOLD,
    MAX_POINTS,
    MIN_POINTS,
)
from marketplace.features.penalty_adjustment.service import PenaltyAdjustmentService
from marketplace.features.violation.model import Violation
from marketplace.features.violation_type.model import ViolationType
from marketplace.models.enums import AccountKind, AdjustmentType, AppealStatus
from marketplace.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 10
RESTRICTED_BELOW = 60


def _require_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if len(reason) < MIN_REASON_LENGTH:
        raise ValidationError(f"Reason must be at least {MIN_REASON_LENGTH} characters")
    return reason


class AdminService:
    @staticmethod
    def authenticate_admin(db: Session, username: str, password: str) -> Optional[Admin]:
        admin = db.query(Admin).filter(Admin.username == username).first()
        if not admin or not verify_password(password, admin.password_hash):
            return None
        return admin

    @staticmethod
    def dashboard_stats(db: Session, now: Optional[datetime] = None) -> Dict:
        now = now or datetime.now()
        week_ago = now - timedelta(days=7)

        total_violations = db.query(func.count(Violation.id)).scalar()
        weekly_violations = db.query(func.count(Violation.id)).filter(Violation.created_at >= week_ago).scalar()
        pending_appeals = db.query(func.count(Violation.id)).filter(
            Violation.appeal_status == AppealStatus.PENDING
        ).scalar()

        suspended = {}
        restricted = {}
        for kind, model in AccountStore.MODELS.items():
            suspended[kind.value] = db.query(func.count(model.id)).filter(model.is_suspended == True).scalar()
            restricted[kind.value] = db.query(func.count(model.id)).filter(
                model.penalty_points < RESTRICTED_BELOW, model.is_suspended == False
            ).scalar()

        top_types = (
            db.query(ViolationType.code, ViolationType.name, func.count(Violation.id).label("count"))
            .join(Violation, Violation.violation_type_id == ViolationType.id)
            .group_by(ViolationType.id, ViolationType.code, ViolationType.name)
            .order_by(func.count(Violation.id).desc())
            .limit(5)
            .all()
        )

        return {
            "total_violations": total_violations,
            "weekly_violations": weekly_violations,
            "pending_appeals": pending_appeals,
            "suspended_accounts": suspended,
            "restricted_accounts": restricted,
            "top_violation_types": [
                {"code": code, "name": name, "count": count} for code, name, count in top_types
            ],
        }

    @staticmethod
    def admin_adjust_points(
        db: Session,
        ref: AccountRef,
        points: int,
        action: str,
        reason: str,
        admin_id: int,
        now: Optional[datetime] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Dict:
        """Manual correction. ``add`` logs a restore row, ``deduct`` a penalty row."""
        reason = _require_reason(reason)
        if action == "add":
            return PenaltyService.restore_points(
                db, ref, points, reason=f"Admin adjustment: {reason}", admin_id=admin_id, now=now
            )
        if action == "deduct":
            return PenaltyService.deduct_points(
                db,
                ref,
                points,
                reason=f"Admin adjustment: {reason}",
                admin_id=admin_id,
                now=now,
                background_tasks=background_tasks,
            )
        raise ValidationError("Action must be 'add' or 'deduct'")

    @staticmethod
    def manage_suspension(
        db: Session,
        ref: AccountRef,
        action: str,
        reason: str,
        admin_id: Optional[int],
        suspension_days: Optional[int] = None,
        now: Optional[datetime] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Dict:
        """
        Administrative suspend/lift, logged as a zero-point ledger row.

        Lifting only clears the administrative flag; an account at or below the
        deactivation threshold stays suspended until its balance recovers.
        """
        reason = _require_reason(reason)
        if action not in ("suspend", "lift"):
            raise ValidationError("Action must be 'suspend' or 'lift'")
        if suspension_days is not None and suspension_days <= 0:
            raise ValidationError("suspension_days must be positive")
        now = now or datetime.now()

        with atomic(db):
            account = AccountStore.get(db, ref, for_update=True)
            points = account.penalty_points
            if action == "suspend":
                if not account.is_suspended:
                    account.suspended_at = now
                account.admin_suspended = True
                account.is_suspended = True
                account.suspended_until = now + timedelta(days=suspension_days) if suspension_days else None
                adjustment_type = AdjustmentType.SUSPENSION
                ledger_reason = f"Account suspended by admin: {reason}"
            else:
                account.admin_suspended = False
                account.is_suspended = points <= DEACTIVATION_THRESHOLD
                if not account.is_suspended:
                    account.suspended_at = None
                account.suspended_until = None
                adjustment_type = AdjustmentType.LIFT_SUSPENSION
                ledger_reason = f"Suspension lifted: {reason}"

            PenaltyAdjustmentService.append(
                db,
                ref,
                adjustment_type,
                points_adjusted=0,
                previous_points=points,
                new_points=points,
                reason=ledger_reason,
                admin_id=admin_id,
                now=now,
            )
            result = {
                "action": action,
                "is_suspended": account.is_suspended,
                "admin_suspended": account.admin_suspended,
                "suspended_at": account.suspended_at,
                "suspended_until": account.suspended_until,
                "penalty_points": points,
            }

        logger.info(f"{ref} {action} by admin {admin_id}: {reason}")
        if action == "suspend":
            NotificationService.notify_account(
                db, ref, "Account suspended", f"Your account has been suspended: {reason}", {"type": "suspension"},
                background_tasks=background_tasks,
            )
        elif not result["is_suspended"]:
            NotificationService.notify_account(
                db, ref, "Account reactivated", "Your account suspension has been lifted.", {"type": "reactivation"},
                background_tasks=background_tasks,
            )
        return result

    @staticmethod
    def reset_points(
        db: Session,
        ref: AccountRef,
        reason: str,
        admin_id: int,
        reset_value: int = MAX_POINTS,
        now: Optional[datetime] = None,
    ) -> Dict:
        reason = _require_reason(reason)
        if not MIN_POINTS <= reset_value <= MAX_POINTS:
            raise ValidationError(f"reset_value must be between {MIN_POINTS} and {MAX_POINTS}")
        now = now or datetime.now()

        with atomic(db):
            account = AccountStore.get(db, ref, for_update=True)
            previous = account.penalty_points
            was_suspended = account.is_suspended
            account.penalty_points = reset_value
            account.is_suspended = reset_value <= DEACTIVATION_THRESHOLD or account.admin_suspended
            if account.is_suspended and not was_suspended:
                account.suspended_at = now
            elif not account.is_suspended:
                account.suspended_at = None
                account.suspended_until = None

            PenaltyAdjustmentService.append(
                db,
                ref,
                AdjustmentType.RESET,
                points_adjusted=reset_value - previous,
                previous_points=previous,
                new_points=reset_value,
                reason=f"Points reset by admin: {reason}",
                admin_id=admin_id,
                now=now,
            )

        logger.info(f"{ref} points reset by admin {admin_id}: {previous} -> {reset_value}")
        return {"previous_points": previous, "new_points": reset_value, "is_suspended": account.is_suspended}

    @staticmethod
    def restricted_accounts(db: Session, kind: AccountKind, limit: int = 50, offset: int = 0) -> Dict:
        """Accounts under restriction tiers that are not (yet) suspended, lowest balance first."""
        model = AccountStore.model_for(kind)
        query = db.query(model).filter(model.penalty_points < RESTRICTED_BELOW, model.is_suspended == False)
        total = query.count()
        items = query.order_by(model.penalty_points.asc(), model.id.asc()).offset(offset).limit(limit).all()
        return {
            "items": items,
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(items) < total,
        }

    @staticmethod
    def lift_expired_suspensions(db: Session, now: Optional[datetime] = None) -> int:
        """Lift fixed-term administrative suspensions whose end date has passed."""
        now = now or datetime.now()
        lifted = 0
        for kind, model in AccountStore.MODELS.items():
            expired = [
                account_id
                for (account_id,) in db.query(model.id).filter(
                    model.admin_suspended == True,
                    model.suspended_until.isnot(None),
                    model.suspended_until <= now,
                )
            ]
            for account_id in expired:
                AdminService.manage_suspension(
                    db,
                    AccountRef(kind, account_id),
                    "lift",
                    reason="Fixed-term suspension expired",
                    admin_id=None,
                    now=now,
                )
                lifted += 1
        if lifted:
            logger.info(f"Lifted {lifted} expired suspensions")
        return lifted
