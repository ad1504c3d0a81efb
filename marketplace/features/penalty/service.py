"""
Penalty point engine.

Every account starts at 100 points. Violations deduct their catalog cost,
appeals and admin actions restore points, and good behaviour earns bonuses.
Each balance change is one transaction: the account row is locked, the new
balance and suspension flags are written, and exactly one ledger row is added.
"""
import logging
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import datetime, timedelta
from typing import Optional, List, Dict
from marketplace.core.database import atomic
from marketplace.core.exceptions import NotFoundError, ValidationError, ViolationCategoryMismatch
from marketplace.features.account.store import AccountRef, AccountStore
from marketplace.features.appointment.model import Appointment
from marketplace.features.penalty_adjustment.service import PenaltyAdjustmentService
from marketplace.features.rating.model import Rating
from marketplace.features.violation.model import Violation
from marketplace.features.violation.service import ViolationService
from marketplace.features.violation_type.service import ViolationTypeService
from marketplace.models.enums import (
    AdjustmentType,
    AppointmentStatus,
    DetectedBy,
    PenaltyStanding,
    RatedBy,
    ViolationStatus,
)
from marketplace.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

MAX_POINTS = 100
MIN_POINTS = 0
DEACTIVATION_THRESHOLD = 50

CUSTOMER_BOOKING_REWARD = 5
PROVIDER_BOOKING_REWARD = 10
RATING_REWARDS = {5: 5, 4: 3, 3: 2}

REPEATED_VIOLATION_THRESHOLD = 3
REPEATED_VIOLATION_WINDOW_DAYS = 7
RECENT_VIOLATION_DAYS = 30


def _require_positive(points: int):
    if not isinstance(points, int) or isinstance(points, bool) or points <= 0:
        raise ValidationError("Points must be a positive integer")


class PenaltyService:
    # ---------- balance primitives (no commit, caller owns the transaction) ----------

    @staticmethod
    def _apply_deduction(
        db: Session,
        ref: AccountRef,
        points: int,
        reason: Optional[str],
        admin_id: Optional[int],
        violation_id: Optional[int],
        now: datetime,
    ) -> Dict:
        account = AccountStore.get(db, ref, for_update=True)
        previous = account.penalty_points
        new = max(MIN_POINTS, previous - points)
        should_deactivate = new <= DEACTIVATION_THRESHOLD
        was_suspended = account.is_suspended

        account.penalty_points = new
        account.is_suspended = was_suspended or should_deactivate
        if account.is_suspended and not was_suspended:
            account.suspended_at = now

        PenaltyAdjustmentService.append(
            db,
            ref,
            AdjustmentType.PENALTY,
            points_adjusted=-points,
            previous_points=previous,
            new_points=new,
            reason=reason,
            related_violation_id=violation_id,
            admin_id=admin_id,
            now=now,
        )
        return {
            "previous_points": previous,
            "new_points": new,
            "deactivated": should_deactivate,
            "newly_suspended": account.is_suspended and not was_suspended,
        }

    @staticmethod
    def _apply_credit(
        db: Session,
        ref: AccountRef,
        points: int,
        adjustment_type: AdjustmentType,
        reason: Optional[str],
        admin_id: Optional[int],
        violation_id: Optional[int],
        now: datetime,
    ) -> Dict:
        account = AccountStore.get(db, ref, for_update=True)
        previous = account.penalty_points
        new = min(MAX_POINTS, previous + points)
        was_suspended = account.is_suspended

        account.penalty_points = new
        # a credit lifts the point-floor suspension but never an administrative one
        account.is_suspended = new <= DEACTIVATION_THRESHOLD or account.admin_suspended
        if not account.is_suspended:
            account.suspended_at = None
            account.suspended_until = None

        # ledger keeps the nominal amount even when the balance was capped
        PenaltyAdjustmentService.append(
            db,
            ref,
            adjustment_type,
            points_adjusted=points,
            previous_points=previous,
            new_points=new,
            reason=reason,
            related_violation_id=violation_id,
            admin_id=admin_id,
            now=now,
        )
        return {
            "previous_points": previous,
            "new_points": new,
            "reactivated": was_suspended and not account.is_suspended,
        }

    # ---------- violations ----------

    @staticmethod
    def record_violation(
        db: Session,
        ref: AccountRef,
        violation_code: str,
        violation_details: Optional[str] = None,
        evidence_urls: Optional[List[str]] = None,
        detected_by: DetectedBy = DetectedBy.SYSTEM,
        detected_by_admin_id: Optional[int] = None,
        appointment_id: Optional[int] = None,
        report_id: Optional[int] = None,
        rating_id: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Violation:
        """
        Record a violation and deduct its point cost.

        The violation row, the balance change and the ledger row are committed
        together. When ``idempotency_key`` matches an earlier violation that
        violation is returned and nothing is written. Pushes go through
        ``background_tasks`` when a route passes them.
        """
        if idempotency_key:
            existing = ViolationService.get_by_idempotency_key(db, idempotency_key)
            if existing:
                logger.info(f"Violation for key {idempotency_key} already recorded (#{existing.id})")
                return existing

        violation_type = ViolationTypeService.get_active_by_code(db, violation_code)
        if violation_type.category != ref.kind:
            raise ViolationCategoryMismatch(
                f"{violation_code} is a {violation_type.category.value} violation and cannot be "
                f"recorded against a {ref.kind.value}"
            )

        now = now or datetime.now()
        with atomic(db):
            AccountStore.get(db, ref, for_update=True)
            violation = Violation(
                violation_type_id=violation_type.id,
                points_deducted=violation_type.point_cost,
                status=ViolationStatus.ACTIVE,
                violation_details=violation_details,
                evidence_urls=list(evidence_urls) if evidence_urls else None,
                detected_by=detected_by,
                detected_by_admin_id=detected_by_admin_id,
                appointment_id=appointment_id,
                report_id=report_id,
                rating_id=rating_id,
                idempotency_key=idempotency_key,
                created_at=now,
                **ref.owner_columns,
            )
            db.add(violation)
            db.flush()
            result = PenaltyService._apply_deduction(
                db,
                ref,
                violation_type.point_cost,
                reason=f"Violation: {violation_type.name} ({violation_type.code})",
                admin_id=detected_by_admin_id,
                violation_id=violation.id,
                now=now,
            )
        db.refresh(violation)

        logger.info(
            f"Recorded {violation_code} against {ref}: "
            f"{result['previous_points']} -> {result['new_points']}"
        )
        NotificationService.notify_account(
            db,
            ref,
            "Penalty applied",
            f"{violation_type.name}: {violation_type.point_cost} points deducted. "
            f"Current balance: {result['new_points']}",
            {"type": "violation", "violation_id": violation.id},
            background_tasks=background_tasks,
        )
        if result["newly_suspended"]:
            PenaltyService._notify_suspended(db, ref, result["new_points"], background_tasks)
        return violation

    @staticmethod
    def deduct_points(
        db: Session,
        ref: AccountRef,
        points: int,
        reason: Optional[str] = None,
        admin_id: Optional[int] = None,
        violation_id: Optional[int] = None,
        now: Optional[datetime] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Dict:
        _require_positive(points)
        with atomic(db):
            result = PenaltyService._apply_deduction(
                db, ref, points, reason, admin_id, violation_id, now or datetime.now()
            )
        logger.info(f"Deducted {points} points from {ref}: {result['previous_points']} -> {result['new_points']}")
        if result["newly_suspended"]:
            PenaltyService._notify_suspended(db, ref, result["new_points"], background_tasks)
        return result

    @staticmethod
    def restore_points(
        db: Session,
        ref: AccountRef,
        points: int,
        reason: str,
        admin_id: Optional[int] = None,
        violation_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Dict:
        _require_positive(points)
        with atomic(db):
            result = PenaltyService._apply_credit(
                db, ref, points, AdjustmentType.RESTORE, reason, admin_id, violation_id, now or datetime.now()
            )
        logger.info(f"Restored {points} points to {ref}: {result['previous_points']} -> {result['new_points']}")
        return result

    @staticmethod
    def check_repeated_violations(
        db: Session,
        ref: AccountRef,
        violation_code: str,
        window_days: int = REPEATED_VIOLATION_WINDOW_DAYS,
        now: Optional[datetime] = None,
    ) -> Dict:
        since = (now or datetime.now()) - timedelta(days=window_days)
        count = ViolationService.count_of_code(db, ref, violation_code, since, status=ViolationStatus.ACTIVE)
        return {
            "count": count,
            "should_apply_additional_penalty": count >= REPEATED_VIOLATION_THRESHOLD,
        }

    # ---------- rewards ----------

    @staticmethod
    def reward_successful_booking(db: Session, appointment_id: int, now: Optional[datetime] = None) -> Optional[Dict]:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError(f"Appointment not found: {appointment_id}")
        if appointment.status != AppointmentStatus.COMPLETED:
            return None

        now = now or datetime.now()
        rewards = {}
        parties = (
            ("customer", AccountRef.customer(appointment.customer_id), CUSTOMER_BOOKING_REWARD),
            ("provider", AccountRef.provider(appointment.provider_id), PROVIDER_BOOKING_REWARD),
        )
        with atomic(db):
            for party, ref, points in parties:
                account = AccountStore.get(db, ref, for_update=True)
                if account.penalty_points >= MAX_POINTS:
                    continue
                result = PenaltyService._apply_credit(
                    db,
                    ref,
                    points,
                    AdjustmentType.BONUS,
                    reason=f"Reward for completed appointment #{appointment_id}",
                    admin_id=None,
                    violation_id=None,
                    now=now,
                )
                rewards[party] = {"points_awarded": points, **result}

        for party, result in rewards.items():
            logger.info(
                f"Booking reward for {party} on appointment #{appointment_id}: "
                f"{result['previous_points']} -> {result['new_points']}"
            )
        return rewards

    @staticmethod
    def reward_good_rating(db: Session, rating_id: int, now: Optional[datetime] = None) -> Optional[Dict]:
        rating = db.query(Rating).filter(Rating.id == rating_id).first()
        if not rating:
            raise NotFoundError(f"Rating not found: {rating_id}")
        # only customer-written ratings reward the rated provider
        if rating.rated_by != RatedBy.CUSTOMER:
            return None
        points = RATING_REWARDS.get(rating.rating_value)
        if not points:
            return None

        ref = AccountRef.provider(rating.provider_id)
        with atomic(db):
            provider = AccountStore.get(db, ref, for_update=True)
            if provider.penalty_points >= MAX_POINTS:
                return None
            result = PenaltyService._apply_credit(
                db,
                ref,
                points,
                AdjustmentType.BONUS,
                reason=f"Reward for receiving {rating.rating_value}-star rating - Rating #{rating_id}",
                admin_id=None,
                violation_id=None,
                now=now or datetime.now(),
            )

        logger.info(f"Rating reward for {ref}: +{points} ({rating.rating_value} stars)")
        return {"provider_id": rating.provider_id, "points_awarded": points, **result}

    # ---------- read side ----------

    @staticmethod
    def standing_for(points: int) -> PenaltyStanding:
        if points > DEACTIVATION_THRESHOLD:
            return PenaltyStanding.GOOD
        if points > 20:
            return PenaltyStanding.WARNING
        return PenaltyStanding.CRITICAL

    @staticmethod
    def get_penalty_stats(db: Session, ref: AccountRef, now: Optional[datetime] = None) -> Dict:
        account = AccountStore.get(db, ref)
        since = (now or datetime.now()) - timedelta(days=RECENT_VIOLATION_DAYS)

        base = db.query(func.count(Violation.id)).filter(ref.owner_filter(Violation))
        total = base.scalar()
        active = base.filter(Violation.status == ViolationStatus.ACTIVE).scalar()
        recent = base.filter(Violation.created_at >= since).scalar()

        return {
            "current_points": account.penalty_points,
            "total_violations": total,
            "active_violations": active,
            "recent_violations": recent,
            "status": PenaltyService.standing_for(account.penalty_points),
            "is_suspended": account.is_suspended,
            "suspended_at": account.suspended_at,
            "suspended_until": account.suspended_until,
        }

    @staticmethod
    def _notify_suspended(
        db: Session, ref: AccountRef, points: int, background_tasks: Optional[BackgroundTasks] = None
    ):
        logger.warning(f"{ref} deactivated at {points} points")
        NotificationService.notify_account(
            db,
            ref,
            "Account deactivated",
            f"Your balance dropped to {points} points. Please contact support for review and reactivation.",
            {"type": "suspension", "penalty_points": points},
            background_tasks=background_tasks,
        )
