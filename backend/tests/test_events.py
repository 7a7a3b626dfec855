"""Calendar, reminders and notifications."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import select

from studpal.db.models import Event, Notification
from studpal.services import calendar


def iso(value: datetime) -> str:
    return value.isoformat()


async def test_empty_month(client, auth_headers):
    response = await client.get("/events/", params={"month": 3, "year": 2030}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"events": [], "upcoming_events": []}


async def test_invalid_month(client, auth_headers):
    for month in (0, 13):
        response = await client.get("/events/", params={"month": month, "year": 2030}, headers=auth_headers)
        assert response.status_code == 400


def test_month_range_wraps_december():
    start, end = calendar.month_range(2030, 12)
    assert start == datetime(2030, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2031, 1, 1, tzinfo=timezone.utc)


async def test_month_view_includes_events_ending_in_month(client, auth_headers):
    events = [
        ("Spans in", datetime(2030, 2, 27, 9, tzinfo=timezone.utc), datetime(2030, 3, 1, 9, tzinfo=timezone.utc)),
        ("Inside", datetime(2030, 3, 15, 9, tzinfo=timezone.utc), None),
        ("Next month", datetime(2030, 4, 1, 0, tzinfo=timezone.utc), None),
    ]
    for title, start_at, end_at in events:
        payload = {"title": title, "start_at": iso(start_at)}
        if end_at:
            payload["end_at"] = iso(end_at)
        assert (await client.post("/events/", json=payload, headers=auth_headers)).status_code == 201

    response = await client.get("/events/", params={"month": 3, "year": 2030}, headers=auth_headers)
    assert [e["title"] for e in response.json()["events"]] == ["Spans in", "Inside"]


async def test_end_before_start_is_rejected(client, auth_headers):
    start = datetime(2030, 3, 15, 9, tzinfo=timezone.utc)
    response = await client.post(
        "/events/",
        json={"title": "Backwards", "start_at": iso(start), "end_at": iso(start - timedelta(hours=1))},
        headers=auth_headers,
    )
    assert response.status_code == 400


async def test_reminders_create_notifications(client, auth_headers, session_factory, user):
    start = datetime(2030, 5, 10, 14, tzinfo=timezone.utc)
    response = await client.post(
        "/events/",
        json={"title": "Midterm", "type": "exam", "start_at": iso(start), "reminders": [60, 1440, 60]},
        headers=auth_headers,
    )
    assert response.status_code == 201
    event = response.json()
    assert event["reminders"] == [1440, 60]

    async with session_factory() as session:
        result = await session.execute(
            select(Notification).where(Notification.event_id == UUID(event["id"]))
        )
        reminders = sorted(result.scalars(), key=lambda n: n.reminder_offset_minutes)

    assert [n.reminder_offset_minutes for n in reminders] == [60, 1440]
    assert all(n.user_id == user.id for n in reminders)
    assert reminders[0].scheduled_for.replace(tzinfo=timezone.utc) == start - timedelta(minutes=60)

    listed = await client.get("/notifications/", headers=auth_headers)
    assert len(listed.json()) == 2
    due = await client.get("/notifications/", params={"due_only": True}, headers=auth_headers)
    assert due.json() == []


async def test_deleting_event_removes_reminders(client, auth_headers):
    start = datetime.now(timezone.utc) + timedelta(days=30)
    created = await client.post(
        "/events/", json={"title": "Quiz", "start_at": iso(start), "reminders": [30]}, headers=auth_headers
    )
    event_id = created.json()["id"]

    assert (await client.delete(f"/events/{event_id}", headers=auth_headers)).status_code == 204
    assert (await client.get(f"/events/{event_id}", headers=auth_headers)).status_code == 404
    assert (await client.get("/notifications/", headers=auth_headers)).json() == []


async def test_upcoming_events_order_and_window(client, auth_headers):
    now = datetime.now(timezone.utc)
    plan = [
        ("Soon low", now + timedelta(days=1), "low"),
        ("Later high", now + timedelta(days=5), "high"),
        ("Soon high", now + timedelta(days=2), "high"),
        ("Too far", now + timedelta(days=10), "high"),
        ("Past", now - timedelta(days=1), "high"),
    ]
    for title, start_at, priority in plan:
        await client.post(
            "/events/", json={"title": title, "start_at": iso(start_at), "priority": priority}, headers=auth_headers
        )

    response = await client.get("/events/", headers=auth_headers)
    upcoming = [e["title"] for e in response.json()["upcoming_events"]]
    assert upcoming == ["Soon high", "Later high", "Soon low"]


async def test_mark_notification_read(client, auth_headers, other_headers):
    start = datetime.now(timezone.utc) + timedelta(days=3)
    await client.post(
        "/events/", json={"title": "Lab", "start_at": iso(start), "reminders": [10]}, headers=auth_headers
    )
    [notification] = (await client.get("/notifications/", headers=auth_headers)).json()

    assert (
        await client.patch(f"/notifications/{notification['id']}/read", headers=other_headers)
    ).status_code == 404

    response = await client.patch(f"/notifications/{notification['id']}/read", headers=auth_headers)
    assert response.json()["is_read"] is True
    unread = await client.get("/notifications/", params={"unread_only": True}, headers=auth_headers)
    assert unread.json() == []


async def test_failed_reminder_insert_is_isolated(db, session_factory, user):
    event = Event(
        user_id=user.id,
        title="Defense",
        start_at=datetime(2030, 6, 1, 12, tzinfo=timezone.utc),
        reminders=[10, 60],
    )
    db.add(event)
    await db.commit()

    attempts = []

    def flaky_factory():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("connection refused")
        return session_factory()

    stored = await calendar.schedule_reminders(flaky_factory, event, [60, 10])
    assert stored == 1

    result = await db.execute(select(Notification).where(Notification.event_id == event.id))
    assert len(result.scalars().all()) == 1
