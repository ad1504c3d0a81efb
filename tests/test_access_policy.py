"""Tests for access tiers and the booking eligibility gate."""

from datetime import date

import pytest

from marketplace.features.access_policy.service import (
    ACCOUNT_DEACTIVATED,
    APPOINTMENT_LIMIT_REACHED,
    SLOT_LIMIT_REACHED,
    AccessPolicyService,
)
from marketplace.features.account.store import AccountRef
from marketplace.features.penalty.service import PenaltyService
from marketplace.models.enums import AccessTier, AppointmentStatus

MONDAY = date(2024, 5, 13)


@pytest.mark.parametrize(
    "points, tier",
    [
        (100, AccessTier.GOOD_STANDING),
        (81, AccessTier.GOOD_STANDING),
        (80, AccessTier.AT_RISK),
        (71, AccessTier.AT_RISK),
        (70, AccessTier.LIMITED),
        (61, AccessTier.LIMITED),
        (60, AccessTier.STRICT),
        (51, AccessTier.STRICT),
        (50, AccessTier.DEACTIVATED),
        (0, AccessTier.DEACTIVATED),
    ],
)
def test_tier_boundaries(points, tier):
    assert AccessPolicyService.tier_for(points).name == tier


def test_customer_at_limit_is_rejected_until_points_recover(db, make_customer, provider, make_appointment):
    c = make_customer(points=65)
    make_appointment(c, provider, status=AppointmentStatus.SCHEDULED)
    make_appointment(c, provider, status=AppointmentStatus.IN_PROGRESS)
    ref = AccountRef.customer(c.id)

    result = AccessPolicyService.check_booking_eligibility(db, ref)
    assert result.allowed is False
    assert result.reason == APPOINTMENT_LIMIT_REACHED
    assert result.max_allowed == 2
    assert result.current_count == 2

    PenaltyService.restore_points(db, ref, 10, reason="Good behaviour credit")
    result = AccessPolicyService.check_booking_eligibility(db, ref)
    assert result.allowed is True
    assert result.tier == AccessTier.AT_RISK
    assert result.max_allowed is None


def test_finished_appointments_do_not_count(db, make_customer, provider, make_appointment):
    c = make_customer(points=55)
    make_appointment(c, provider, status=AppointmentStatus.COMPLETED)
    make_appointment(c, provider, status=AppointmentStatus.CANCELLED)

    result = AccessPolicyService.check_booking_eligibility(db, AccountRef.customer(c.id))

    assert result.allowed is True
    assert result.max_allowed == 1
    assert result.current_count == 0


def test_strict_tier_allows_one_appointment(db, make_customer, provider, make_appointment):
    c = make_customer(points=55)
    make_appointment(c, provider)

    result = AccessPolicyService.check_booking_eligibility(db, AccountRef.customer(c.id))

    assert result.allowed is False
    assert result.reason == APPOINTMENT_LIMIT_REACHED
    assert result.max_allowed == 1


def test_deactivated_by_points(db, make_customer):
    c = make_customer(points=45)

    result = AccessPolicyService.check_booking_eligibility(db, AccountRef.customer(c.id))

    assert result.allowed is False
    assert result.reason == ACCOUNT_DEACTIVATED
    assert result.tier == AccessTier.DEACTIVATED


def test_deactivated_by_admin_suspension(db, make_customer):
    c = make_customer(points=90, is_suspended=True, admin_suspended=True)

    result = AccessPolicyService.check_booking_eligibility(db, AccountRef.customer(c.id))

    assert result.allowed is False
    assert result.reason == ACCOUNT_DEACTIVATED


def test_provider_slot_limit_counts_active_slots_on_weekday(db, make_provider, make_slot):
    p = make_provider(points=65)
    for hour in (9, 11, 13):
        make_slot(p, MONDAY.weekday(), start_time=f"{hour:02d}:00", end_time=f"{hour + 1:02d}:00")
    make_slot(p, MONDAY.weekday(), start_time="16:00", end_time="17:00", is_active=False)
    ref = AccountRef.provider(p.id)

    monday = AccessPolicyService.check_booking_eligibility(db, ref, MONDAY)
    assert monday.allowed is False
    assert monday.reason == SLOT_LIMIT_REACHED
    assert monday.max_allowed == 3
    assert monday.current_count == 3

    tuesday = AccessPolicyService.check_booking_eligibility(db, ref, date(2024, 5, 14))
    assert tuesday.allowed is True
    assert tuesday.current_count == 0


def test_gate_reads_live_balance(db, make_customer):
    c = make_customer(points=55)
    ref = AccountRef.customer(c.id)
    assert AccessPolicyService.check_booking_eligibility(db, ref).allowed is True

    db.execute(c.__table__.update().where(c.__table__.c.id == c.id).values(penalty_points=40, is_suspended=True))
    db.commit()

    assert AccessPolicyService.check_booking_eligibility(db, ref).reason == ACCOUNT_DEACTIVATED


def test_penalty_warning_banners(make_customer, make_provider):
    assert AccessPolicyService.penalty_warning(make_customer(points=95)) is None

    at_risk = AccessPolicyService.penalty_warning(make_customer(points=75))
    assert at_risk["tier"] == "at_risk"
    assert at_risk["level"] == "warning"

    limited = AccessPolicyService.penalty_warning(make_customer(points=65))
    assert limited["max_appointments"] == 2

    strict = AccessPolicyService.penalty_warning(make_provider(points=55))
    assert strict["level"] == "strict"
    assert strict["max_slots_per_day"] == 2

    assert AccessPolicyService.penalty_warning(make_customer(points=40)) is None
