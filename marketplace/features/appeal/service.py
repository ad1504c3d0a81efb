import logging
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
from marketplace.core.database import atomic
from marketplace.core.exceptions import (
    AlreadyReversedError,
    InvalidStateError,
    UnauthorizedError,
    ValidationError,
)
from marketplace.features.account.store import AccountRef
from marketplace.features.penalty.service import PenaltyService
from marketplace.features.violation.model import Violation
from marketplace.features.violation.service import ViolationService
from marketplace.models.enums import AdjustmentType, AppealStatus, ViolationStatus
from marketplace.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 10


def _require_text(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if len(value) < MIN_REASON_LENGTH:
        raise ValidationError(f"{field} must be at least {MIN_REASON_LENGTH} characters")
    return value


class AppealService:
    @staticmethod
    def appeal(db: Session, violation_id: int, reason: str, ref: AccountRef, now: Optional[datetime] = None) -> Violation:
        """Contest an active violation. Only the owner may appeal, once per review cycle."""
        violation = ViolationService.get_violation(db, violation_id)
        if AccountRef.of(violation) != ref:
            raise UnauthorizedError("You can only appeal your own violations")
        reason = _require_text(reason, "Appeal reason")

        with atomic(db):
            violation = ViolationService.get_violation(db, violation_id, for_update=True)
            if violation.status == ViolationStatus.REVERSED:
                raise InvalidStateError("This violation has already been reversed")
            if violation.appeal_status == AppealStatus.PENDING:
                raise InvalidStateError("An appeal for this violation is already pending")
            if violation.status != ViolationStatus.ACTIVE:
                raise InvalidStateError(f"Cannot appeal a violation in status {violation.status.value}")

            violation.status = ViolationStatus.APPEALED
            violation.appeal_status = AppealStatus.PENDING
            violation.appeal_reason = reason
            violation.appeal_submitted_at = now or datetime.now()
        db.refresh(violation)

        logger.info(f"Appeal submitted for violation #{violation_id} by {ref}")
        return violation

    @staticmethod
    def review_appeal(
        db: Session,
        violation_id: int,
        approved: bool,
        admin_id: int,
        notes: str,
        now: Optional[datetime] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Violation:
        notes = _require_text(notes, "Review notes")
        now = now or datetime.now()

        with atomic(db):
            violation = ViolationService.get_violation(db, violation_id, for_update=True)
            if violation.appeal_status != AppealStatus.PENDING:
                raise InvalidStateError("Only pending appeals can be reviewed")

            ref = AccountRef.of(violation)
            if approved:
                PenaltyService._apply_credit(
                    db,
                    ref,
                    violation.points_deducted,
                    AdjustmentType.RESTORE,
                    reason=f"Appeal approved: {notes}",
                    admin_id=admin_id,
                    violation_id=violation.id,
                    now=now,
                )
                violation.status = ViolationStatus.REVERSED
                violation.appeal_status = AppealStatus.APPROVED
                violation.reversed_at = now
                violation.reversed_by_admin_id = admin_id
                violation.reversal_reason = notes
            else:
                violation.status = ViolationStatus.ACTIVE
                violation.appeal_status = AppealStatus.REJECTED

            violation.appeal_reviewed_by = admin_id
            violation.appeal_reviewed_at = now
            violation.appeal_review_notes = notes
        db.refresh(violation)

        outcome = "approved" if approved else "rejected"
        logger.info(f"Appeal for violation #{violation_id} {outcome} by admin {admin_id}")
        NotificationService.notify_account(
            db,
            ref,
            f"Appeal {outcome}",
            f"Your appeal was {outcome}."
            + (f" {violation.points_deducted} points have been restored." if approved else ""),
            {"type": "appeal", "violation_id": violation.id, "approved": approved},
            background_tasks=background_tasks,
        )
        return violation

    @staticmethod
    def admin_reverse_violation(
        db: Session, violation_id: int, admin_id: int, reason: str, now: Optional[datetime] = None
    ) -> Violation:
        """Dismiss an active or appealed violation and give its points back."""
        reason = _require_text(reason, "Reversal reason")
        now = now or datetime.now()

        with atomic(db):
            violation = ViolationService.get_violation(db, violation_id, for_update=True)
            if violation.status == ViolationStatus.REVERSED:
                raise AlreadyReversedError(f"Violation #{violation_id} has already been reversed")

            ref = AccountRef.of(violation)
            PenaltyService._apply_credit(
                db,
                ref,
                violation.points_deducted,
                AdjustmentType.RESTORE,
                reason=f"Violation reversed by admin: {reason}",
                admin_id=admin_id,
                violation_id=violation.id,
                now=now,
            )
            if violation.appeal_status == AppealStatus.PENDING:
                violation.appeal_status = AppealStatus.APPROVED
                violation.appeal_reviewed_by = admin_id
                violation.appeal_reviewed_at = now
                violation.appeal_review_notes = reason
            violation.status = ViolationStatus.REVERSED
            violation.reversed_at = now
            violation.reversed_by_admin_id = admin_id
            violation.reversal_reason = reason
        db.refresh(violation)

        logger.info(f"Violation #{violation_id} reversed by admin {admin_id}")
        return violation
