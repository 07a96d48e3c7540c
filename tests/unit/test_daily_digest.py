"""Unit tests for daily digest assembly

Runs against a real SQLite store in tmp_path with a fixed clock
(2026-10-19 07:30 local).
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from officehub.notifications.digest import DigestService
from officehub.notifications.queue import EmailQueue
from officehub.storage.models import Profile
from officehub.storage.repository import StoreError

NOW = datetime(2026, 10, 19, 7, 30)
TODAY = datetime(2026, 10, 19)


class FakeSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_service(store, queue, sleep=None) -> DigestService:
    return DigestService(store, queue, clock=lambda: NOW, sleep=sleep or FakeSleep())


@pytest.mark.asyncio
async def test_digest_lists_overdue_and_today_tasks(store, employee, recording_queue):
    store.add_task(
        title="Fatura onayı",
        assigned_to=employee.id,
        due_date=TODAY - timedelta(days=2),
        status="in_progress",
    )
    store.add_task(
        title="Sunucu bakımı",
        assigned_to=employee.id,
        due_date=TODAY + timedelta(hours=15),
        priority="low",
    )
    store.add_task(
        title="Müşteri toplantısı",
        assigned_to=employee.id,
        due_date=TODAY + timedelta(hours=9),
        priority="critical",
    )

    queued = await make_service(store, recording_queue).send_to_user(employee.id)

    assert queued is True
    [(recipient, subject, html)] = recording_queue.emails
    assert recipient == "ayse@example.com"
    assert subject == "📊 Günlük Özet - 19 Ekim 2026"
    assert "Günaydın Ayşe Yılmaz" in html
    assert "Gecikmiş Görevler (1)" in html
    assert "Fatura onayı" in html
    assert "17.10.2026" in html
    assert "Bugün Yapılacaklar (2)" in html
    assert html.index("Müşteri toplantısı") < html.index("Sunucu bakımı")
    assert "Bekleyen Sorunlar" not in html


@pytest.mark.asyncio
async def test_finished_and_future_tasks_are_not_reported(store, employee, recording_queue):
    store.add_task(
        title="Biten iş",
        assigned_to=employee.id,
        due_date=TODAY - timedelta(days=1),
        status="completed",
    )
    store.add_task(title="Yarın", assigned_to=employee.id, due_date=TODAY + timedelta(days=1))
    store.add_task(
        title="Engelli bugün",
        assigned_to=employee.id,
        due_date=TODAY + timedelta(hours=10),
        status="blocked",
    )

    queued = await make_service(store, recording_queue).send_to_user(employee.id)

    assert queued is False
    assert recording_queue.emails == []


@pytest.mark.asyncio
async def test_blocked_overdue_task_is_reported(store, employee, recording_queue):
    store.add_task(
        title="Takılan iş",
        assigned_to=employee.id,
        due_date=TODAY - timedelta(days=3),
        status="blocked",
    )

    assert await make_service(store, recording_queue).send_to_user(employee.id) is True
    assert "Takılan iş" in recording_queue.emails[0][2]


@pytest.mark.asyncio
async def test_admin_digest_includes_pending_issues(store, admin, employee, recording_queue):
    store.add_issue(
        title="Yazıcı bozuk",
        reported_by=employee.id,
        priority="high",
        created_at=NOW - timedelta(days=1),
    )
    store.add_issue(title="Klima arızası", reported_by=None, created_at=NOW - timedelta(hours=1))
    store.add_issue(title="Çözülmüş", reported_by=employee.id, status="resolved")

    queued = await make_service(store, recording_queue).send_to_user(admin.id)

    assert queued is True
    html = recording_queue.emails[0][2]
    assert "Bekleyen Sorunlar (2)" in html
    assert html.index("Klima arızası") < html.index("Yazıcı bozuk")
    assert "Bildiren: Ayşe Yılmaz" in html
    assert "Bildiren: Unknown" in html
    assert "Çözülmüş" not in html


@pytest.mark.asyncio
async def test_employee_digest_never_includes_issues(store, employee, recording_queue):
    store.add_issue(title="Yazıcı bozuk", reported_by=employee.id)

    queued = await make_service(store, recording_queue).send_to_user(employee.id)

    assert queued is False
    assert recording_queue.emails == []


@pytest.mark.asyncio
async def test_opted_out_user_gets_nothing(store, recording_queue):
    user = store.upsert_profile(
        Profile(
            id="user-2",
            email="can@example.com",
            full_name="Can Kaya",
            notification_preferences={"email": False, "push": True},
        )
    )
    store.add_task(title="Gecikmiş", assigned_to=user.id, due_date=TODAY - timedelta(days=1))

    queued = await make_service(store, recording_queue).send_to_user(user.id)

    assert queued is False
    assert recording_queue.emails == []


@pytest.mark.asyncio
async def test_missing_profile_has_no_side_effect(store, recording_queue):
    assert await make_service(store, recording_queue).send_to_user("ghost") is False
    assert recording_queue.emails == []


@pytest.mark.asyncio
async def test_sections_are_capped_at_ten_items(store, employee, recording_queue):
    for day in range(1, 13):
        store.add_task(
            title=f"Görev {day}",
            assigned_to=employee.id,
            due_date=TODAY - timedelta(days=day),
        )

    await make_service(store, recording_queue).send_to_user(employee.id)

    assert "Gecikmiş Görevler (10)" in recording_queue.emails[0][2]


@pytest.mark.asyncio
async def test_store_error_is_logged_and_swallowed(recording_queue, caplog):
    class BrokenStore:
        def get_profile(self, user_id):
            raise StoreError("database is locked")

    service = make_service(BrokenStore(), recording_queue)

    assert await service.send_to_user("user-1") is False
    assert recording_queue.emails == []
    assert "Error sending daily digest to user user-1" in caplog.text


@pytest.mark.asyncio
async def test_send_to_all_pauses_between_users(store, employee, admin, recording_queue):
    store.upsert_profile(Profile(id="user-3", email="zeynep@example.com", full_name="Zeynep Ak"))
    store.add_task(title="Gecikmiş", assigned_to=employee.id, due_date=TODAY - timedelta(days=1))
    store.add_issue(title="Yazıcı bozuk", reported_by=employee.id)
    sleep = FakeSleep()

    queued = await make_service(store, recording_queue, sleep=sleep).send_to_all()

    assert queued == 2
    assert sleep.calls == [1.0, 1.0]
    assert {email for email, _, _ in recording_queue.emails} == {
        "ayse@example.com",
        "mehmet@example.com",
    }


@pytest.mark.asyncio
async def test_send_to_all_propagates_profile_list_failure(recording_queue):
    class BrokenStore:
        def list_profiles(self):
            raise StoreError("no such table: profiles")

    with pytest.raises(StoreError):
        await make_service(BrokenStore(), recording_queue).send_to_all()


@pytest.mark.asyncio
async def test_trigger_now_reports_batch_outcome(store, employee, recording_queue):
    result = await make_service(store, recording_queue).trigger_now()

    assert result == {"success": True, "message": "Daily digest sent successfully"}


@pytest.mark.asyncio
async def test_trigger_now_reports_failure(recording_queue):
    class BrokenStore:
        def list_profiles(self):
            raise StoreError("no such table: profiles")

    result = await make_service(BrokenStore(), recording_queue).trigger_now()

    assert result["success"] is False
    assert "no such table" in result["message"]


@pytest.mark.asyncio
async def test_single_overdue_task_produces_one_transport_call(
    store, employee, fake_transport, manual_scheduler
):
    store.add_task(title="Rapor teslimi", assigned_to=employee.id, due_date=TODAY - timedelta(days=1))
    queue = EmailQueue(fake_transport, manual_scheduler)

    await make_service(store, queue).send_to_user(employee.id)
    await manual_scheduler.run_until_idle()

    assert fake_transport.calls == ["ayse@example.com"]
    [(_, subject, html)] = fake_transport.sent
    assert "19 Ekim 2026" in subject
    assert "Rapor teslimi" in html
