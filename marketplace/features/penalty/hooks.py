"""
Entry points for the booking and rating flows.

Penalty bookkeeping must never fail the flow that triggered it, so every
detector and reward runs guarded: errors are logged with a traceback and the
session is rolled back, and the hook moves on.
"""
import logging
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional, Dict
from marketplace.features.appointment.model import Appointment
from marketplace.features.penalty.detection import PenaltyDetectionService
from marketplace.features.penalty.service import PenaltyService
from marketplace.features.rating.model import Rating
from marketplace.models.enums import AppointmentStatus, RatedBy

logger = logging.getLogger(__name__)


def _guarded(db: Session, results: Dict, name: str, fn, *args, **kwargs):
    try:
        results[name] = fn(db, *args, **kwargs)
    except Exception:
        logger.exception(f"Penalty hook step {name} failed")
        db.rollback()
        results[name] = None


def on_appointment_status_changed(db: Session, appointment_id: int, now: Optional[datetime] = None) -> Dict:
    """Call once after an appointment's status was saved."""
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        logger.warning(f"Status hook called for unknown appointment {appointment_id}")
        return {}

    # the same appointment reaching the same status twice is one event
    key = f"appointment:{appointment.id}:{appointment.status.value}"
    customer_id = appointment.customer_id
    results = {}

    if appointment.status == AppointmentStatus.CANCELLED:
        _guarded(db, results, "late_cancellation", PenaltyDetectionService.detect_late_cancellation,
                 appointment_id, idempotency_key=key, now=now)
        _guarded(db, results, "same_day_cancellations", PenaltyDetectionService.detect_multiple_cancellations_same_day,
                 customer_id, now=now)
        _guarded(db, results, "consecutive_day_cancellations",
                 PenaltyDetectionService.detect_consecutive_day_cancellations, customer_id, now=now)
    elif appointment.status == AppointmentStatus.USER_NO_SHOW:
        _guarded(db, results, "user_no_show", PenaltyDetectionService.detect_user_no_show,
                 appointment_id, idempotency_key=key, now=now)
    elif appointment.status == AppointmentStatus.PROVIDER_NO_SHOW:
        _guarded(db, results, "provider_no_show", PenaltyDetectionService.detect_provider_no_show,
                 appointment_id, idempotency_key=key, now=now)
    elif appointment.status == AppointmentStatus.COMPLETED:
        _guarded(db, results, "booking_reward", PenaltyService.reward_successful_booking, appointment_id, now=now)

    return results


def on_rating_submitted(db: Session, rating_id: int, now: Optional[datetime] = None) -> Dict:
    """Call once after a rating was saved."""
    rating = db.query(Rating).filter(Rating.id == rating_id).first()
    if not rating:
        logger.warning(f"Rating hook called for unknown rating {rating_id}")
        return {}

    results = {}
    _guarded(db, results, "rating_reward", PenaltyService.reward_good_rating, rating_id, now=now)
    if rating.rated_by == RatedBy.CUSTOMER and rating.rating_value == 1:
        _guarded(db, results, "poor_ratings", PenaltyDetectionService.detect_consecutive_poor_ratings,
                 rating.provider_id, idempotency_key=f"rating:{rating.id}:poor_ratings", now=now)
    return results
