"""Tests for push notification dispatch around penalty changes."""

import pytest
from fastapi import BackgroundTasks

from marketplace.features.account.store import AccountRef
from marketplace.features.admin.service import AdminService
from marketplace.features.appeal.service import AppealService
from marketplace.features.penalty.service import PenaltyService
from marketplace.services.notification_service import NotificationService

API = "/api/v1"
REASON = "Verified through the support ticket"


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def record(fcm_token, title, body, data=None):
        calls.append((fcm_token, title))
        return True

    monkeypatch.setattr(NotificationService, "send_notification", staticmethod(record))
    return calls


def _run(tasks: BackgroundTasks):
    for task in tasks.tasks:
        task.func(*task.args, **task.kwargs)


def test_queued_push_is_sent_only_when_tasks_run(db, make_customer, sent):
    c = make_customer(fcm_token="device-1")
    tasks = BackgroundTasks()

    queued = NotificationService.notify_account(
        db, AccountRef.customer(c.id), "Penalty applied", "10 points deducted", background_tasks=tasks
    )

    assert queued is True
    assert sent == []
    assert len(tasks.tasks) == 1
    _run(tasks)
    assert sent == [("device-1", "Penalty applied")]


def test_nothing_is_queued_without_a_device(db, customer, sent):
    tasks = BackgroundTasks()

    for ref in (AccountRef.customer(customer.id), AccountRef.provider(999)):
        assert NotificationService.notify_account(db, ref, "t", "b", background_tasks=tasks) is False
    assert tasks.tasks == []
    assert sent == []


def test_push_without_tasks_is_sent_inline(db, make_provider, sent):
    p = make_provider(fcm_token="device-2")

    assert NotificationService.notify_account(db, AccountRef.provider(p.id), "Account suspended", "b") is True
    assert sent == [("device-2", "Account suspended")]


def test_violation_that_deactivates_queues_both_pushes(db, make_customer, sent):
    c = make_customer(points=55, fcm_token="device-3")
    tasks = BackgroundTasks()

    PenaltyService.record_violation(db, AccountRef.customer(c.id), "USER_RUDE_BEHAVIOR", background_tasks=tasks)

    db.refresh(c)
    assert c.penalty_points == 35
    assert c.is_suspended is True
    assert sent == []
    _run(tasks)
    assert sent == [("device-3", "Penalty applied"), ("device-3", "Account deactivated")]


def test_appeal_review_and_admin_actions_queue_pushes(db, admin, make_customer, sent):
    c = make_customer(fcm_token="device-4")
    ref = AccountRef.customer(c.id)
    violation = PenaltyService.record_violation(db, ref, "USER_LATE_CANCEL")
    AppealService.appeal(db, violation.id, "I cancelled because of a family emergency", ref)
    sent.clear()
    tasks = BackgroundTasks()

    AppealService.review_appeal(db, violation.id, True, admin.id, "Emergency confirmed", background_tasks=tasks)
    AdminService.manage_suspension(db, ref, "suspend", REASON, admin.id, background_tasks=tasks)
    AdminService.manage_suspension(db, ref, "lift", REASON, admin.id, background_tasks=tasks)

    assert sent == []
    _run(tasks)
    assert [title for _, title in sent] == ["Appeal approved", "Account suspended", "Account reactivated"]


def test_admin_deduction_queues_the_deactivation_push(db, admin, make_provider, sent):
    p = make_provider(points=60, fcm_token="device-5")
    tasks = BackgroundTasks()

    result = AdminService.admin_adjust_points(
        db, AccountRef.provider(p.id), 15, "deduct", REASON, admin.id, background_tasks=tasks
    )

    assert result["deactivated"] is True
    assert len(tasks.tasks) == 1
    assert sent == []


def test_admin_routes_push_after_responding(client, admin, make_customer, auth_headers, sent):
    c = make_customer(fcm_token="device-6")
    headers = auth_headers("admin", admin.id)

    recorded = client.post(
        f"{API}/admin/penalty/violations",
        json={"customer_id": c.id, "violation_code": "USER_LATE_CANCEL"},
        headers=headers,
    )
    suspended = client.post(
        f"{API}/admin/penalty/suspension",
        json={"customer_id": c.id, "action": "suspend", "reason": REASON},
        headers=headers,
    )

    assert recorded.status_code == 201
    assert suspended.status_code == 200
    assert sent == [("device-6", "Penalty applied"), ("device-6", "Account suspended")]
