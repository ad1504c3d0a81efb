"""
Progressive restrictions derived from an account's penalty balance.

    81-100  good standing       no restrictions
    71-80   at risk             warning only
    61-70   limited privileges  customers: 2 active appointments, providers: 3 slots/day
    51-60   strict restrictions customers: 1 active appointment,  providers: 2 slots/day
    <= 50   deactivated         no bookings at all
"""
from dataclasses import dataclass, asdict
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional, Dict
from marketplace.features.account.store import Account, AccountRef, AccountStore
from marketplace.features.appointment.model import Appointment, AvailabilitySlot
from marketplace.features.penalty.service import DEACTIVATION_THRESHOLD
from marketplace.models.enums import AccessTier, AccountKind, AppointmentStatus

ACCOUNT_DEACTIVATED = "account_deactivated"
APPOINTMENT_LIMIT_REACHED = "appointment_limit_reached"
SLOT_LIMIT_REACHED = "slot_limit_reached"

ACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.IN_PROGRESS)


@dataclass(frozen=True)
class Tier:
    name: AccessTier
    min_points: int
    max_points: int
    max_appointments: Optional[int] = None
    max_slots_per_day: Optional[int] = None

    def limit_for(self, kind: AccountKind) -> Optional[int]:
        return self.max_appointments if kind == AccountKind.CUSTOMER else self.max_slots_per_day


TIERS = (
    Tier(AccessTier.GOOD_STANDING, 81, 100),
    Tier(AccessTier.AT_RISK, 71, 80),
    Tier(AccessTier.LIMITED, 61, 70, max_appointments=2, max_slots_per_day=3),
    Tier(AccessTier.STRICT, 51, 60, max_appointments=1, max_slots_per_day=2),
    Tier(AccessTier.DEACTIVATED, 0, DEACTIVATION_THRESHOLD, max_appointments=0, max_slots_per_day=0),
)


@dataclass
class BookingEligibility:
    allowed: bool
    tier: AccessTier
    penalty_points: int
    reason: Optional[str] = None
    message: Optional[str] = None
    max_allowed: Optional[int] = None
    current_count: Optional[int] = None

    def to_dict(self) -> Dict:
        return asdict(self)


class AccessPolicyService:
    @staticmethod
    def tier_for(points: int) -> Tier:
        for tier in TIERS:
            if tier.min_points <= points <= tier.max_points:
                return tier
        raise ValueError(f"Penalty points out of range: {points}")

    @staticmethod
    def penalty_warning(account: Account) -> Optional[Dict]:
        """Banner for the at-risk and restricted tiers, ``None`` otherwise."""
        points = account.penalty_points
        tier = AccessPolicyService.tier_for(points)
        if account.is_suspended or tier.name == AccessTier.DEACTIVATED:
            return None

        is_customer = account.kind == AccountKind.CUSTOMER
        limit = tier.limit_for(account.kind)
        if tier.name == AccessTier.AT_RISK:
            return {
                "level": "warning",
                "tier": tier.name.value,
                "message": f"Warning: You have {points} points. Maintain good behavior to avoid restrictions.",
                "penalty_points": points,
                "restrictions": 'None yet, but account marked as "At Risk"',
            }
        if limit is None:
            return None

        if is_customer:
            noun = "appointment" if limit == 1 else "appointments"
            restriction = f"Maximum {limit} active {noun}"
        else:
            restriction = f"Maximum {limit} service slots per day"
        return {
            "level": "limited" if tier.name == AccessTier.LIMITED else "strict",
            "tier": tier.name.value,
            "message": f"{restriction}. Current points: {points}",
            "penalty_points": points,
            "restrictions": restriction,
            ("max_appointments" if is_customer else "max_slots_per_day"): limit,
        }

    @staticmethod
    def _current_count(db: Session, ref: AccountRef, target_date: date) -> int:
        if ref.kind == AccountKind.CUSTOMER:
            return (
                db.query(Appointment)
                .filter(
                    Appointment.customer_id == ref.id,
                    Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
                )
                .count()
            )
        return (
            db.query(AvailabilitySlot)
            .filter(
                AvailabilitySlot.provider_id == ref.id,
                AvailabilitySlot.day_of_week == target_date.weekday(),
                AvailabilitySlot.is_active == True,
            )
            .count()
        )

    @staticmethod
    def check_booking_eligibility(
        db: Session, ref: AccountRef, target_date: Optional[date] = None
    ) -> BookingEligibility:
        """
        Decide whether the account may create one more booking (customer) or
        service slot on ``target_date`` (provider). Reads the live account row.
        """
        account = AccountStore.get(db, ref)
        db.refresh(account)
        points = account.penalty_points
        tier = AccessPolicyService.tier_for(points)

        if points <= DEACTIVATION_THRESHOLD or account.is_suspended:
            return BookingEligibility(
                allowed=False,
                tier=AccessTier.DEACTIVATED if points <= DEACTIVATION_THRESHOLD else tier.name,
                penalty_points=points,
                reason=ACCOUNT_DEACTIVATED,
                message="Your account has been deactivated. Please contact support for review and reactivation.",
                max_allowed=0,
            )

        limit = tier.limit_for(ref.kind)
        if limit is None:
            return BookingEligibility(allowed=True, tier=tier.name, penalty_points=points)

        count = AccessPolicyService._current_count(db, ref, target_date or date.today())
        if count >= limit:
            if ref.kind == AccountKind.CUSTOMER:
                reason = APPOINTMENT_LIMIT_REACHED
                message = f"You can only have {limit} active appointment(s) at your current points ({points})"
            else:
                reason = SLOT_LIMIT_REACHED
                message = f"You can only offer {limit} service slot(s) per day at your current points ({points})"
            return BookingEligibility(
                allowed=False,
                tier=tier.name,
                penalty_points=points,
                reason=reason,
                message=message,
                max_allowed=limit,
                current_count=count,
            )

        return BookingEligibility(
            allowed=True, tier=tier.name, penalty_points=points, max_allowed=limit, current_count=count
        )
