"""Tests for admin point corrections, suspensions and dashboards."""

from datetime import timedelta

import pytest

from marketplace.core.exceptions import NotFoundError, ValidationError
from marketplace.features.account.store import AccountRef
from marketplace.features.admin.service import AdminService
from marketplace.features.penalty.service import PenaltyService
from marketplace.features.penalty_adjustment.model import PenaltyAdjustment
from marketplace.models.enums import AccountKind, AdjustmentType

REASON = "Manual correction after support ticket"


def test_authenticate_admin(db, admin):
    assert AdminService.authenticate_admin(db, "root", "s3cret-pass").id == admin.id
    assert AdminService.authenticate_admin(db, "root", "wrong") is None
    assert AdminService.authenticate_admin(db, "nobody", "s3cret-pass") is None


def test_adjust_points_add_and_deduct(db, make_customer, admin, now):
    c = make_customer(points=70)
    ref = AccountRef.customer(c.id)

    added = AdminService.admin_adjust_points(db, ref, 10, "add", REASON, admin.id, now=now)
    assert added["new_points"] == 80
    deducted = AdminService.admin_adjust_points(db, ref, 35, "deduct", REASON, admin.id, now=now)
    assert deducted["new_points"] == 45
    assert deducted["deactivated"] is True

    rows = db.query(PenaltyAdjustment).order_by(PenaltyAdjustment.id).all()
    assert [r.adjustment_type for r in rows] == [AdjustmentType.RESTORE, AdjustmentType.PENALTY]
    assert all(r.adjusted_by_admin_id == admin.id for r in rows)
    assert rows[0].reason.startswith("Admin adjustment:")


@pytest.mark.parametrize("action, reason", [("add", "short"), ("double", REASON)])
def test_adjust_points_rejects_bad_input(db, customer, admin, action, reason):
    with pytest.raises(ValidationError):
        AdminService.admin_adjust_points(db, AccountRef.customer(customer.id), 5, action, reason, admin.id)
    assert db.query(PenaltyAdjustment).count() == 0


def test_adjust_points_unknown_account(db, admin):
    with pytest.raises(NotFoundError):
        AdminService.admin_adjust_points(db, AccountRef.provider(999), 5, "add", REASON, admin.id)


def test_suspend_and_lift(db, provider, admin, now):
    ref = AccountRef.provider(provider.id)

    suspended = AdminService.manage_suspension(db, ref, "suspend", REASON, admin.id, suspension_days=7, now=now)

    assert suspended["is_suspended"] is True
    assert suspended["admin_suspended"] is True
    assert suspended["suspended_at"] == now
    assert suspended["suspended_until"] == now + timedelta(days=7)

    lifted = AdminService.manage_suspension(db, ref, "lift", REASON, admin.id, now=now)

    assert lifted["is_suspended"] is False
    assert lifted["suspended_at"] is None
    rows = db.query(PenaltyAdjustment).order_by(PenaltyAdjustment.id).all()
    assert [r.adjustment_type for r in rows] == [AdjustmentType.SUSPENSION, AdjustmentType.LIFT_SUSPENSION]
    assert all(r.points_adjusted == 0 and r.previous_points == r.new_points == 100 for r in rows)


def test_lift_keeps_point_floor_suspension(db, make_customer, admin, now):
    c = make_customer(points=40, is_suspended=True, suspended_at=now)
    ref = AccountRef.customer(c.id)
    AdminService.manage_suspension(db, ref, "suspend", REASON, admin.id, now=now)

    lifted = AdminService.manage_suspension(db, ref, "lift", REASON, admin.id, now=now)

    assert lifted["admin_suspended"] is False
    assert lifted["is_suspended"] is True
    assert lifted["suspended_at"] == now


def test_suspension_rejects_bad_days(db, customer, admin):
    with pytest.raises(ValidationError):
        AdminService.manage_suspension(
            db, AccountRef.customer(customer.id), "suspend", REASON, admin.id, suspension_days=0
        )


def test_expired_fixed_term_suspensions_are_lifted(db, make_customer, make_provider, admin, now):
    short = make_customer()
    open_ended = make_provider()
    AdminService.manage_suspension(
        db, AccountRef.customer(short.id), "suspend", REASON, admin.id, suspension_days=1, now=now
    )
    AdminService.manage_suspension(db, AccountRef.provider(open_ended.id), "suspend", REASON, admin.id, now=now)

    assert AdminService.lift_expired_suspensions(db, now=now + timedelta(hours=12)) == 0
    assert AdminService.lift_expired_suspensions(db, now=now + timedelta(days=2)) == 1

    db.refresh(short)
    db.refresh(open_ended)
    assert short.is_suspended is False
    assert open_ended.is_suspended is True


def test_reset_points_records_true_delta(db, make_customer, admin, now):
    c = make_customer(points=30, is_suspended=True, suspended_at=now)

    result = AdminService.reset_points(db, AccountRef.customer(c.id), REASON, admin.id, reset_value=80, now=now)

    assert result == {"previous_points": 30, "new_points": 80, "is_suspended": False}
    row = db.query(PenaltyAdjustment).one()
    assert row.adjustment_type == AdjustmentType.RESET
    assert row.points_adjusted == 50


def test_reset_points_to_low_value_suspends(db, customer, admin, now):
    result = AdminService.reset_points(db, AccountRef.customer(customer.id), REASON, admin.id, reset_value=20, now=now)

    assert result["is_suspended"] is True
    db.refresh(customer)
    assert customer.suspended_at == now
    assert db.query(PenaltyAdjustment).one().points_adjusted == -80


def test_reset_points_range(db, customer, admin):
    with pytest.raises(ValidationError):
        AdminService.reset_points(db, AccountRef.customer(customer.id), REASON, admin.id, reset_value=101)


def test_restricted_accounts_excludes_suspended(db, make_customer):
    make_customer(points=95)
    low = make_customer(points=52)
    mid = make_customer(points=59)
    make_customer(points=40)

    page = AdminService.restricted_accounts(db, AccountKind.CUSTOMER)

    assert [a.id for a in page["items"]] == [low.id, mid.id]
    assert page["total"] == 2
    assert page["has_more"] is False


def test_dashboard(db, make_customer, provider, now):
    c = make_customer(points=100)
    ref = AccountRef.customer(c.id)
    PenaltyService.record_violation(db, ref, "USER_LATE_CANCEL", now=now - timedelta(days=10))
    PenaltyService.record_violation(db, ref, "USER_LATE_CANCEL", now=now)
    PenaltyService.record_violation(db, AccountRef.provider(provider.id), "PROVIDER_FRAUD", now=now)

    stats = AdminService.dashboard_stats(db, now=now)

    assert stats["total_violations"] == 3
    assert stats["weekly_violations"] == 2
    assert stats["pending_appeals"] == 0
    assert stats["suspended_accounts"] == {"customer": 0, "provider": 1}
    assert stats["restricted_accounts"] == {"customer": 0, "provider": 0}
    assert stats["top_violation_types"][0] == {"code": "USER_LATE_CANCEL", "name": "Late Cancellation", "count": 2}
