"""
Automatic violation detection.

Each detector looks at one appointment or rating, or at an account's recent
history, and records a violation when its condition holds. Detectors that scan
a time window skip accounts that already have the same violation in it.
"""
import logging
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional
from marketplace.features.account.store import AccountRef
from marketplace.features.appointment.model import Appointment
from marketplace.features.penalty.service import (
    PenaltyService,
    REPEATED_VIOLATION_THRESHOLD,
    REPEATED_VIOLATION_WINDOW_DAYS,
)
from marketplace.features.rating.model import Rating
from marketplace.features.violation.service import ViolationService
from marketplace.models.enums import AppointmentStatus, DetectedBy, RatedBy

logger = logging.getLogger(__name__)

LATE_CANCELLATION_HOURS = 24
CANCELLATION_STREAK = 3
POOR_RATING_STREAK = 3


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _get_appointment(db: Session, appointment_id: int) -> Optional[Appointment]:
    return db.query(Appointment).filter(Appointment.id == appointment_id).first()


class PenaltyDetectionService:
    @staticmethod
    def detect_late_cancellation(
        db: Session, appointment_id: int, idempotency_key: Optional[str] = None, now: Optional[datetime] = None
    ) -> Optional[bool]:
        appointment = _get_appointment(db, appointment_id)
        if not appointment:
            return None
        if appointment.status != AppointmentStatus.CANCELLED:
            return False

        cancelled_at = appointment.cancelled_at or now or datetime.now()
        hours_before = (appointment.scheduled_date - cancelled_at).total_seconds() / 3600
        if hours_before >= LATE_CANCELLATION_HOURS:
            return False

        PenaltyService.record_violation(
            db,
            AccountRef.customer(appointment.customer_id),
            "USER_LATE_CANCEL",
            violation_details=f"Appointment cancelled {hours_before:.1f} hours before scheduled time",
            appointment_id=appointment.id,
            detected_by=DetectedBy.SYSTEM,
            idempotency_key=idempotency_key,
            now=now,
        )
        return True

    @staticmethod
    def detect_provider_no_show(
        db: Session, appointment_id: int, idempotency_key: Optional[str] = None, now: Optional[datetime] = None
    ) -> Optional[bool]:
        appointment = _get_appointment(db, appointment_id)
        if not appointment:
            return None
        if appointment.status != AppointmentStatus.PROVIDER_NO_SHOW:
            return False

        ref = AccountRef.provider(appointment.provider_id)
        repeated = PenaltyService.check_repeated_violations(db, ref, "PROVIDER_NO_SHOW", now=now)
        # this no-show would be the third in the window: escalate instead of the base code
        if repeated["count"] + 1 >= REPEATED_VIOLATION_THRESHOLD:
            PenaltyService.record_violation(
                db,
                ref,
                "PROVIDER_REPEATED_NO_SHOW",
                violation_details=(
                    f"Provider has {repeated['count']} no-shows in the past "
                    f"{REPEATED_VIOLATION_WINDOW_DAYS} days"
                ),
                appointment_id=appointment.id,
                idempotency_key=idempotency_key,
                now=now,
            )
        else:
            PenaltyService.record_violation(
                db,
                ref,
                "PROVIDER_NO_SHOW",
                appointment_id=appointment.id,
                idempotency_key=idempotency_key,
                now=now,
            )
        return True

    @staticmethod
    def detect_user_no_show(
        db: Session, appointment_id: int, idempotency_key: Optional[str] = None, now: Optional[datetime] = None
    ) -> Optional[bool]:
        appointment = _get_appointment(db, appointment_id)
        if not appointment:
            return None
        if appointment.status != AppointmentStatus.USER_NO_SHOW:
            return False

        PenaltyService.record_violation(
            db,
            AccountRef.customer(appointment.customer_id),
            "USER_NO_SHOW",
            appointment_id=appointment.id,
            idempotency_key=idempotency_key,
            now=now,
        )
        PenaltyDetectionService.detect_repeated_no_shows(db, appointment.customer_id, now=now)
        return True

    @staticmethod
    def detect_repeated_no_shows(db: Session, customer_id: int, now: Optional[datetime] = None) -> bool:
        """Extra USER_REPEATED_NO_SHOW on top of the base no-shows, once per window."""
        now = now or datetime.now()
        ref = AccountRef.customer(customer_id)
        repeated = PenaltyService.check_repeated_violations(db, ref, "USER_NO_SHOW", now=now)
        if not repeated["should_apply_additional_penalty"]:
            return False

        since = now - timedelta(days=REPEATED_VIOLATION_WINDOW_DAYS)
        if ViolationService.find_recent_of_code(db, ref, "USER_REPEATED_NO_SHOW", since):
            return False

        PenaltyService.record_violation(
            db,
            ref,
            "USER_REPEATED_NO_SHOW",
            violation_details=f"{repeated['count']} no-shows within {REPEATED_VIOLATION_WINDOW_DAYS} days",
            now=now,
        )
        logger.warning(f"{ref} has {repeated['count']} no-shows in {REPEATED_VIOLATION_WINDOW_DAYS} days")
        return True

    @staticmethod
    def detect_consecutive_poor_ratings(
        db: Session, provider_id: int, idempotency_key: Optional[str] = None, now: Optional[datetime] = None
    ) -> bool:
        recent = (
            db.query(Rating)
            .filter(Rating.provider_id == provider_id, Rating.rated_by == RatedBy.CUSTOMER)
            .order_by(Rating.created_at.desc(), Rating.id.desc())
            .limit(POOR_RATING_STREAK)
            .all()
        )
        if len(recent) < POOR_RATING_STREAK or any(r.rating_value != 1 for r in recent):
            return False

        PenaltyService.record_violation(
            db,
            AccountRef.provider(provider_id),
            "PROVIDER_POOR_RATINGS",
            violation_details=f"{POOR_RATING_STREAK} consecutive one-star ratings received",
            rating_id=recent[0].id,
            idempotency_key=idempotency_key,
            now=now,
        )
        return True

    @staticmethod
    def _cancellations_between(db: Session, customer_id: int, start: datetime, end: datetime) -> int:
        return (
            db.query(Appointment)
            .filter(
                Appointment.customer_id == customer_id,
                Appointment.status == AppointmentStatus.CANCELLED,
                Appointment.cancelled_at >= start,
                Appointment.cancelled_at < end,
            )
            .count()
        )

    @staticmethod
    def detect_multiple_cancellations_same_day(db: Session, customer_id: int, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now()
        today = _start_of_day(now)
        tomorrow = today + timedelta(days=1)

        cancellations = PenaltyDetectionService._cancellations_between(db, customer_id, today, tomorrow)
        logger.debug(f"Customer {customer_id} cancelled {cancellations} appointments today")
        if cancellations < CANCELLATION_STREAK:
            return False

        ref = AccountRef.customer(customer_id)
        if ViolationService.find_recent_of_code(db, ref, "USER_MULTIPLE_CANCELS_SAME_DAY", today):
            return False

        PenaltyService.record_violation(
            db,
            ref,
            "USER_MULTIPLE_CANCELS_SAME_DAY",
            violation_details=f"Cancelled {cancellations} appointments within a single day",
            now=now,
        )
        return True

    @staticmethod
    def detect_consecutive_day_cancellations(db: Session, customer_id: int, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now()
        today = _start_of_day(now)

        streak = 0
        for days_back in range(CANCELLATION_STREAK):
            day_start = today - timedelta(days=days_back)
            if not PenaltyDetectionService._cancellations_between(
                db, customer_id, day_start, day_start + timedelta(days=1)
            ):
                break
            streak += 1

        if streak < CANCELLATION_STREAK:
            return False

        ref = AccountRef.customer(customer_id)
        since = today - timedelta(days=CANCELLATION_STREAK)
        if ViolationService.find_recent_of_code(db, ref, "USER_CONSECUTIVE_DAY_CANCELS", since):
            return False

        PenaltyService.record_violation(
            db,
            ref,
            "USER_CONSECUTIVE_DAY_CANCELS",
            violation_details=f"Cancelled appointments on {streak} consecutive days",
            now=now,
        )
        return True
