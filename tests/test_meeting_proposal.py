"""Tests for creating meeting proposals and their background calendar booking."""

from datetime import datetime

import pytest

from calsync.models.meeting_model import MeetingModel
from calsync.models.slot_model import SlotModel
from calsync.services import meeting_service
from calsync.utils import email_utils

SLOTS = ["2025-01-06T09:00:00.000Z", "2025-01-06T11:00:00.000Z", "2025-01-06T14:00:00.000Z"]


def propose(client, headers, slots=SLOTS, **overrides):
    body = {"attendeeEmail": "guest@example.com", "attendeeName": "Guest", "slots": slots}
    body.update(overrides)
    return client.post("/api/meetings/create", json=body, headers=headers)


def test_create_meeting_persists_one_pending_meeting_and_n_slots(client, auth_headers, organizer, session_factory):
    response = propose(client, auth_headers)

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["message"] == "Meeting created. Attendee will receive an email to select a slot."
    assert data["link"] == f"https://calsync.test/select-slot/{data['uniqueLink']}"

    with session_factory() as db:
        meeting = db.get(MeetingModel, data["meetingId"])
        assert meeting.status == "pending"
        assert meeting.selected_slot is None
        assert meeting.user_id == organizer["id"]
        assert meeting.unique_link == data["uniqueLink"]

        slots = db.query(SlotModel).filter_by(meeting_id=meeting.id).order_by(SlotModel.slot_time).all()
        assert [s.slot_time for s in slots] == [
            datetime(2025, 1, 6, 9), datetime(2025, 1, 6, 11), datetime(2025, 1, 6, 14),
        ]
        assert not any(s.is_selected for s in slots)


def test_links_are_unique_and_unguessable(client, auth_headers):
    first = propose(client, auth_headers).json()["uniqueLink"]
    second = propose(client, auth_headers).json()["uniqueLink"]

    assert first != second
    assert len(first) >= 20


def test_background_booking_books_every_slot_on_every_provider(client, auth_headers, calendars, session_factory):
    data = propose(client, auth_headers).json()

    assert len(calendars["google"].created) == 3
    assert len(calendars["outlook"].created) == 3
    first = calendars["google"].created[0]
    assert first["subject"] == "Meeting with guest@example.com"
    assert first["start"] == datetime(2025, 1, 6, 9)
    assert first["end"] == datetime(2025, 1, 6, 10)

    with session_factory() as db:
        meeting = db.get(MeetingModel, data["meetingId"])
        assert meeting.booking_status == "done"
        for slot in db.query(SlotModel).filter_by(meeting_id=meeting.id):
            assert slot.google_event_id.startswith("google-evt-")
            assert slot.outlook_event_id.startswith("outlook-evt-")
            assert slot.google_status == "booked"
            assert slot.outlook_status == "booked"


def test_attendee_receives_link_by_email(client, auth_headers, outbox):
    data = propose(client, auth_headers).json()

    assert len(outbox) == 1
    assert outbox[0]["to"] == "guest@example.com"
    assert outbox[0]["subject"] == "Meeting Request from organizer@example.com"
    assert data["link"] in outbox[0]["html"]
    assert "3 time slots" in outbox[0]["html"]


def test_provider_failure_is_recorded_but_not_fatal(client, auth_headers, calendars, session_factory):
    calendars["outlook"].fail_create = True

    response = propose(client, auth_headers)

    assert response.status_code == 200
    with session_factory() as db:
        meeting = db.get(MeetingModel, response.json()["meetingId"])
        assert meeting.booking_status == "done"
        for slot in db.query(SlotModel).filter_by(meeting_id=meeting.id):
            assert slot.google_status == "booked"
            assert slot.outlook_status == "failed"
            assert slot.outlook_event_id is None


def test_unconnected_provider_is_marked_not_connected(client, calendars, user_factory, bearer, session_factory):
    user_id = user_factory("google-only@example.com", google_token="g-token")

    response = propose(client, bearer(user_id), slots=SLOTS[:1])

    assert response.status_code == 200
    assert calendars["outlook"].created == []
    with session_factory() as db:
        slot = db.query(SlotModel).filter_by(meeting_id=response.json()["meetingId"]).one()
        assert slot.google_status == "booked"
        assert slot.outlook_status == "not_connected"


def test_email_failure_is_swallowed(client, auth_headers, monkeypatch, session_factory):
    def broken_send(*args, **kwargs):
        raise OSError("smtp down")

    monkeypatch.setattr(email_utils, "send_email", broken_send)

    response = propose(client, auth_headers)

    assert response.status_code == 200
    with session_factory() as db:
        assert db.get(MeetingModel, response.json()["meetingId"]).booking_status == "done"


def test_crashing_booking_task_still_finishes(client, auth_headers, calendars, monkeypatch, session_factory):
    def explode(user):
        raise RuntimeError("adapter construction failed")

    monkeypatch.setattr(meeting_service, "build_calendar_clients", explode)

    response = propose(client, auth_headers)

    assert response.status_code == 200
    with session_factory() as db:
        meeting = db.get(MeetingModel, response.json()["meetingId"])
        assert meeting.booking_status == "done"
        assert db.query(SlotModel).filter_by(meeting_id=meeting.id).count() == 3


@pytest.mark.parametrize("overrides", [
    {"attendeeEmail": None},
    {"attendeeName": ""},
    {"slots": []},
    {"slots": None},
])
def test_create_meeting_requires_all_fields(client, auth_headers, overrides, session_factory):
    response = propose(client, auth_headers, **overrides)

    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields"
    with session_factory() as db:
        assert db.query(MeetingModel).count() == 0


def test_create_meeting_rejects_unparseable_slot(client, auth_headers, session_factory):
    response = propose(client, auth_headers, slots=["2025-01-06T09:00:00Z", "next tuesday"])

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid slot timestamp"
    with session_factory() as db:
        assert db.query(SlotModel).count() == 0


def test_create_meeting_requires_auth(client):
    response = propose(client, {})

    assert response.status_code == 401
    assert response.json()["error"] == "No token provided"


def test_link_collision_is_retried(client, auth_headers, monkeypatch, session_factory):
    existing = propose(client, auth_headers).json()["uniqueLink"]
    tokens = iter([existing, existing, "fresh-link-token"])
    monkeypatch.setattr(meeting_service.secrets, "token_urlsafe", lambda nbytes: next(tokens))

    response = propose(client, auth_headers)

    assert response.status_code == 200, response.text
    assert response.json()["uniqueLink"] == "fresh-link-token"
    with session_factory() as db:
        assert db.query(MeetingModel).count() == 2
        assert db.query(SlotModel).count() == 6


def test_link_collision_gives_up_after_max_attempts(client, auth_headers, monkeypatch, session_factory):
    existing = propose(client, auth_headers).json()["uniqueLink"]
    monkeypatch.setattr(meeting_service.secrets, "token_urlsafe", lambda nbytes: existing)

    response = propose(client, auth_headers)

    assert response.status_code == 500
    assert response.json()["error"] == "Could not allocate meeting link"
    with session_factory() as db:
        assert db.query(MeetingModel).count() == 1


def test_organizer_lists_meetings_with_booking_outcome(client, auth_headers, calendars):
    calendars["google"].fail_create = True
    created = propose(client, auth_headers, slots=SLOTS[:2]).json()

    response = client.get("/api/meetings", headers=auth_headers)

    assert response.status_code == 200
    meetings = response.json()["meetings"]
    assert len(meetings) == 1
    entry = meetings[0]
    assert entry["uniqueLink"] == created["uniqueLink"]
    assert entry["link"] == created["link"]
    assert entry["status"] == "pending"
    assert entry["bookingStatus"] == "done"
    assert [s["googleStatus"] for s in entry["slots"]] == ["failed", "failed"]
    assert [s["outlookStatus"] for s in entry["slots"]] == ["booked", "booked"]


def test_organizer_only_sees_own_meetings(client, auth_headers, user_factory, bearer):
    propose(client, auth_headers)
    other = user_factory("other@example.com")

    response = client.get("/api/meetings", headers=bearer(other))

    assert response.json()["meetings"] == []


def test_slot_released_during_booking_drops_its_new_events(client, auth_headers, calendars, monkeypatch, session_factory):
    google = calendars["google"]
    create_event = google.create_event

    def create_then_release(subject, start, end, attendee_email):
        # a selection deletes this slot row while its events are being created
        event_id = create_event(subject, start, end, attendee_email)
        if start == datetime(2025, 1, 6, 9):
            with session_factory() as db:
                db.query(SlotModel).filter_by(slot_time=start).delete()
                db.commit()
        return event_id

    monkeypatch.setattr(google, "create_event", create_then_release)

    response = propose(client, auth_headers)

    assert response.status_code == 200
    released_google = google.created[0]["id"]
    released_outlook = calendars["outlook"].created[0]["id"]
    assert google.deleted == [released_google]
    assert calendars["outlook"].deleted == [released_outlook]
    with session_factory() as db:
        remaining = db.query(SlotModel).filter_by(meeting_id=response.json()["meetingId"]).all()
        assert [s.slot_time for s in remaining] == [datetime(2025, 1, 6, 11), datetime(2025, 1, 6, 14)]
        assert db.get(MeetingModel, response.json()["meetingId"]).booking_status == "done"
