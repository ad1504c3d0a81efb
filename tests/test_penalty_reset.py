"""Tests for the quarterly reset and its worker schedule."""

from datetime import datetime

import pytest

from marketplace.features.penalty_adjustment.model import PenaltyAdjustment
from marketplace.features.penalty_reset.service import PenaltyResetService
from marketplace.models.enums import AdjustmentType
from marketplace.worker import WorkerSettings, build_cron_jobs, quarterly_penalty_reset_task


def test_reset_restores_every_account_below_max(db, make_customer, make_provider, now):
    low = make_customer(points=45, is_suspended=True, suspended_at=now)
    mid = make_provider(points=82)
    full = make_customer(points=100)

    summary = PenaltyResetService.run_reset(db, now=now)

    assert summary == {"customer": 1, "provider": 1, "total": 2}
    for account in (low, mid, full):
        db.refresh(account)
        assert account.penalty_points == 100
    assert low.is_suspended is False
    assert low.suspended_at is None

    rows = db.query(PenaltyAdjustment).order_by(PenaltyAdjustment.id).all()
    assert [r.adjustment_type for r in rows] == [AdjustmentType.RESET, AdjustmentType.RESET]
    by_owner = {(r.customer_id, r.provider_id): r for r in rows}
    low_row = by_owner[(low.id, None)]
    assert (low_row.previous_points, low_row.new_points, low_row.points_adjusted) == (45, 100, 55)
    mid_row = by_owner[(None, mid.id)]
    assert (mid_row.previous_points, mid_row.points_adjusted) == (82, 18)


def test_second_run_in_same_quarter_writes_nothing(db, make_customer, now):
    make_customer(points=60)
    PenaltyResetService.run_reset(db, now=now)

    summary = PenaltyResetService.run_reset(db, now=now)

    assert summary["total"] == 0
    assert db.query(PenaltyAdjustment).count() == 1


def test_reset_keeps_administrative_suspension(db, make_customer, now):
    c = make_customer(points=70, is_suspended=True, admin_suspended=True, suspended_at=now)

    PenaltyResetService.run_reset(db, now=now)

    db.refresh(c)
    assert c.penalty_points == 100
    assert c.is_suspended is True
    assert c.suspended_at == now


@pytest.mark.parametrize(
    "moment, expected",
    [
        (datetime(2024, 2, 15, 9, 30), datetime(2024, 4, 1)),
        (datetime(2024, 4, 1, 0, 0), datetime(2024, 7, 1)),
        (datetime(2024, 9, 30, 23, 59), datetime(2024, 10, 1)),
        (datetime(2024, 12, 31, 12, 0), datetime(2025, 1, 1)),
    ],
)
def test_next_reset_date(moment, expected):
    assert PenaltyResetService.next_reset_date(moment) == expected


def test_cron_table_is_rebuilt_identically():
    first = build_cron_jobs()
    second = build_cron_jobs()

    assert [job.name for job in first] == [job.name for job in second]
    assert len(WorkerSettings.cron_jobs) == len(first)
    quarterly = next(job for job in first if job.coroutine is quarterly_penalty_reset_task)
    assert quarterly.month == {1, 4, 7, 10}
    assert (quarterly.day, quarterly.hour, quarterly.minute) == (1, 0, 0)
