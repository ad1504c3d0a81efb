"""Tests for appeals, appeal review and admin reversal."""

from datetime import timedelta

import pytest

from marketplace.core.exceptions import (
    AlreadyReversedError,
    InvalidStateError,
    UnauthorizedError,
    ValidationError,
)
from marketplace.features.account.store import AccountRef
from marketplace.features.appeal.service import AppealService
from marketplace.features.penalty.service import PenaltyService
from marketplace.features.penalty_adjustment.model import PenaltyAdjustment
from marketplace.features.violation.service import ViolationService
from marketplace.models.enums import AdjustmentType, AppealStatus, ViolationStatus

REASON = "I cancelled because of a medical emergency"
NOTES = "Medical certificate checked and accepted"


@pytest.fixture
def violation(db, customer, now):
    return PenaltyService.record_violation(db, AccountRef.customer(customer.id), "USER_NO_SHOW", now=now)


def test_appeal_marks_violation_pending(db, customer, violation, now):
    appealed = AppealService.appeal(db, violation.id, REASON, AccountRef.customer(customer.id), now=now)

    assert appealed.status == ViolationStatus.APPEALED
    assert appealed.appeal_status == AppealStatus.PENDING
    assert appealed.appeal_reason == REASON
    assert appealed.appeal_submitted_at == now


def test_only_owner_may_appeal(db, make_customer, provider, violation):
    other = make_customer()
    with pytest.raises(UnauthorizedError):
        AppealService.appeal(db, violation.id, REASON, AccountRef.customer(other.id))
    with pytest.raises(UnauthorizedError):
        AppealService.appeal(db, violation.id, REASON, AccountRef.provider(provider.id))


@pytest.mark.parametrize("reason", ["", "too short", "          x         "])
def test_appeal_reason_must_be_ten_characters(db, customer, violation, reason):
    with pytest.raises(ValidationError):
        AppealService.appeal(db, violation.id, reason, AccountRef.customer(customer.id))
    db.refresh(violation)
    assert violation.appeal_status == AppealStatus.NONE


def test_cannot_appeal_twice_while_pending(db, customer, violation):
    ref = AccountRef.customer(customer.id)
    AppealService.appeal(db, violation.id, REASON, ref)
    with pytest.raises(InvalidStateError):
        AppealService.appeal(db, violation.id, REASON, ref)


def test_approved_appeal_restores_points_once(db, customer, admin, violation, now):
    ref = AccountRef.customer(customer.id)
    AppealService.appeal(db, violation.id, REASON, ref)

    reviewed = AppealService.review_appeal(db, violation.id, True, admin.id, NOTES, now=now)

    assert reviewed.status == ViolationStatus.REVERSED
    assert reviewed.appeal_status == AppealStatus.APPROVED
    assert reviewed.appeal_reviewed_by == admin.id
    assert reviewed.appeal_reviewed_at == now
    assert reviewed.reversed_at == now
    db.refresh(customer)
    assert customer.penalty_points == 100

    restore = db.query(PenaltyAdjustment).filter(
        PenaltyAdjustment.adjustment_type == AdjustmentType.RESTORE
    ).one()
    assert restore.points_adjusted == violation.points_deducted
    assert restore.related_violation_id == violation.id
    assert restore.adjusted_by_admin_id == admin.id

    with pytest.raises(InvalidStateError):
        AppealService.review_appeal(db, violation.id, True, admin.id, NOTES)
    with pytest.raises(AlreadyReversedError):
        AppealService.admin_reverse_violation(db, violation.id, admin.id, NOTES)
    with pytest.raises(InvalidStateError):
        AppealService.appeal(db, violation.id, REASON, ref)
    db.refresh(customer)
    assert customer.penalty_points == 100


def test_rejected_appeal_returns_to_active_and_can_be_appealed_again(db, customer, admin, violation):
    ref = AccountRef.customer(customer.id)
    AppealService.appeal(db, violation.id, REASON, ref)

    reviewed = AppealService.review_appeal(db, violation.id, False, admin.id, NOTES)

    assert reviewed.status == ViolationStatus.ACTIVE
    assert reviewed.appeal_status == AppealStatus.REJECTED
    db.refresh(customer)
    assert customer.penalty_points == 85

    again = AppealService.appeal(db, violation.id, REASON + " (new evidence)", ref)
    assert again.appeal_status == AppealStatus.PENDING


def test_review_requires_pending_appeal(db, admin, violation):
    with pytest.raises(InvalidStateError):
        AppealService.review_appeal(db, violation.id, True, admin.id, NOTES)


def test_review_notes_are_required(db, customer, admin, violation):
    AppealService.appeal(db, violation.id, REASON, AccountRef.customer(customer.id))
    with pytest.raises(ValidationError):
        AppealService.review_appeal(db, violation.id, True, admin.id, "ok")


def test_admin_reversal_restores_exactly_once(db, make_customer, admin, now):
    c = make_customer(points=60)
    ref = AccountRef.customer(c.id)
    violation = PenaltyService.record_violation(db, ref, "USER_HARASSMENT", now=now)
    db.refresh(c)
    assert c.penalty_points == 10
    assert c.is_suspended is True

    reversed_violation = AppealService.admin_reverse_violation(db, violation.id, admin.id, "Reported by mistake, wrong account")

    assert reversed_violation.status == ViolationStatus.REVERSED
    assert reversed_violation.reversed_by_admin_id == admin.id
    db.refresh(c)
    assert c.penalty_points == 60
    assert c.is_suspended is False

    with pytest.raises(AlreadyReversedError):
        AppealService.admin_reverse_violation(db, violation.id, admin.id, "Reported by mistake, wrong account")
    db.refresh(c)
    assert c.penalty_points == 60


def test_admin_reversal_closes_pending_appeal(db, customer, admin, violation):
    AppealService.appeal(db, violation.id, REASON, AccountRef.customer(customer.id))

    result = AppealService.admin_reverse_violation(db, violation.id, admin.id, "Dismissed after support call")

    assert result.status == ViolationStatus.REVERSED
    assert result.appeal_status == AppealStatus.APPROVED
    assert ViolationService.list_pending_appeals(db) == []


def test_admin_reversal_reason_length(db, admin, violation):
    with pytest.raises(ValidationError):
        AppealService.admin_reverse_violation(db, violation.id, admin.id, "nope")


def test_pending_appeals_oldest_first(db, make_customer, now):
    first_owner = make_customer()
    second_owner = make_customer()
    first = PenaltyService.record_violation(db, AccountRef.customer(first_owner.id), "USER_LATE_CANCEL", now=now)
    second = PenaltyService.record_violation(db, AccountRef.customer(second_owner.id), "USER_LATE_CANCEL", now=now)

    AppealService.appeal(db, second.id, REASON, AccountRef.customer(second_owner.id), now=now)
    AppealService.appeal(db, first.id, REASON, AccountRef.customer(first_owner.id), now=now + timedelta(hours=1))

    assert [v.id for v in ViolationService.list_pending_appeals(db)] == [second.id, first.id]
