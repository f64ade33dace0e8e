# calsync/services/meeting_service.py

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from calsync.base.config import AppConfig, get_settings
from calsync.base.metrics import meetings_created_counter
from calsync.base.models import (
    CreateMeetingRequest,
    CreateMeetingResponse,
    MeetingDetailResponse,
    MeetingView,
    OrganizerMeetingView,
    SlotBookingView,
    SlotView,
)
from calsync.models.meeting_model import (
    BOOKING_DONE,
    BOOKING_IN_PROGRESS,
    BOOKING_QUEUED,
    STATUS_PENDING,
    MeetingModel,
)
from calsync.models.slot_model import (
    PROVIDER_BOOKED,
    PROVIDER_FAILED,
    PROVIDER_NOT_CONNECTED,
    PROVIDER_PENDING,
    SlotModel,
)
from calsync.models.user_model import UserModel
from calsync.providers.calendar_clients import GOOGLE, OUTLOOK, PROVIDERS, CalendarClient, build_calendar_clients
from calsync.utils.email_utils import notify_attendee_of_proposal
from calsync.utils.time_utils import parse_iso_datetime, to_iso_utc

logger = logging.getLogger("booking")

EVENT_ID_COLUMNS = {GOOGLE: "google_event_id", OUTLOOK: "outlook_event_id"}
STATUS_COLUMNS = {GOOGLE: "google_status", OUTLOOK: "outlook_status"}


class MeetingService:
    """
    Builds meeting proposals and books their tentative calendar events.

    `create_meeting` persists the meeting and its slots and returns right away.
    `book_meeting_slots` is meant to run as a background task afterwards: it
    emails the attendee and books every slot on every connected calendar,
    recording a per-provider outcome on each slot row.
    """

    def __init__(self, settings: Optional[AppConfig] = None):
        self.settings = settings or get_settings()

    def shareable_link(self, unique_link: str) -> str:
        return f"{self.settings.FRONTEND_URL.rstrip('/')}/select-slot/{unique_link}"

    # === Proposal ===

    def create_meeting(self, user_id: int, req: CreateMeetingRequest, db: Session) -> CreateMeetingResponse:
        if not req.attendee_email or not req.attendee_name or not req.slots:
            raise HTTPException(status_code=400, detail="Missing required fields")

        try:
            slot_times = [parse_iso_datetime(raw) for raw in req.slots]
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="Invalid slot timestamp")

        user = db.get(UserModel, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")

        meeting = self._insert_meeting(db, user_id, req.attendee_email, req.attendee_name)
        for slot_time in slot_times:
            db.add(SlotModel(meeting_id=meeting.id, slot_time=slot_time))
        db.commit()

        meetings_created_counter.inc()
        logger.info(f"[Create] Meeting {meeting.id} proposed to {req.attendee_email} with {len(slot_times)} slot(s)")

        return CreateMeetingResponse(
            message="Meeting created. Attendee will receive an email to select a slot.",
            meeting_id=meeting.id,
            unique_link=meeting.unique_link,
            link=self.shareable_link(meeting.unique_link),
        )

    def _insert_meeting(self, db: Session, user_id: int, attendee_email: str, attendee_name: str) -> MeetingModel:
        # must be the first write of the transaction: a collision rolls everything back
        for attempt in range(1, self.settings.LINK_MAX_ATTEMPTS + 1):
            meeting = MeetingModel(
                user_id=user_id,
                attendee_email=attendee_email,
                attendee_name=attendee_name,
                unique_link=secrets.token_urlsafe(self.settings.LINK_TOKEN_BYTES),
                status=STATUS_PENDING,
                booking_status=BOOKING_QUEUED,
            )
            db.add(meeting)
            try:
                db.flush()
                return meeting
            except IntegrityError:
                db.rollback()
                logger.warning(f"[Create] Link collision on attempt {attempt}, regenerating")

        logger.error(f"[Create] Gave up allocating a unique link after {self.settings.LINK_MAX_ATTEMPTS} attempts")
        raise HTTPException(status_code=500, detail="Could not allocate meeting link")

    # === Background Booking ===

    def book_meeting_slots(self, meeting_id: int, session_factory: Callable[[], Session]) -> None:
        db = None
        try:
            db = session_factory()
            meeting = db.get(MeetingModel, meeting_id)
            if meeting is None:
                logger.warning(f"[Booking] Meeting {meeting_id} vanished before booking")
                return
            user = db.get(UserModel, meeting.user_id)

            meeting.booking_status = BOOKING_IN_PROGRESS
            meeting.booking_started_at = datetime.utcnow()
            db.commit()

            slots = db.query(SlotModel).filter_by(meeting_id=meeting.id).order_by(SlotModel.slot_time.asc()).all()

            notify_attendee_of_proposal(
                attendee_email=meeting.attendee_email,
                attendee_name=meeting.attendee_name,
                organizer_email=user.email,
                slot_count=len(slots),
                link=self.shareable_link(meeting.unique_link),
                settings=self.settings,
            )

            clients = build_calendar_clients(user)
            for slot in slots:
                self._book_slot(db, slot.id, slot.slot_time, meeting.attendee_email, clients)

        except Exception as e:
            logger.exception(f"[Booking] ❌ Slot booking error for meeting {meeting_id}: {e}")
        finally:
            if db is not None:
                self._finish_booking(db, meeting_id)
                db.close()

    def _book_slot(
        self,
        db: Session,
        slot_id: int,
        slot_time: datetime,
        attendee_email: str,
        clients: Dict[str, CalendarClient],
    ) -> None:
        end_time = slot_time + timedelta(minutes=self.settings.SLOT_DURATION_MINUTES)
        subject = f"Meeting with {attendee_email}"

        values: Dict[str, Optional[str]] = {}
        created: Dict[str, str] = {}
        for provider in PROVIDERS:
            client = clients.get(provider)
            if client is None:
                values[STATUS_COLUMNS[provider]] = PROVIDER_NOT_CONNECTED
                continue

            event_id = client.create_event(subject, slot_time, end_time, attendee_email)
            if event_id:
                created[provider] = event_id
                values[EVENT_ID_COLUMNS[provider]] = event_id
                values[STATUS_COLUMNS[provider]] = PROVIDER_BOOKED
            else:
                values[STATUS_COLUMNS[provider]] = PROVIDER_FAILED

        updated = db.query(SlotModel).filter(SlotModel.id == slot_id).update(values, synchronize_session=False)
        db.commit()

        if updated == 0:
            # the slot was released while we were booking it
            logger.warning(f"[Booking] Slot {slot_id} no longer exists, releasing its new events")
            for provider, event_id in created.items():
                clients[provider].delete_event(event_id)
            return

        logger.info(f"[Booking] Slot {slot_id} at {slot_time}: {values}")

    def _finish_booking(self, db: Session, meeting_id: int) -> None:
        try:
            db.rollback()
            db.query(MeetingModel).filter(MeetingModel.id == meeting_id).update(
                {"booking_status": BOOKING_DONE}, synchronize_session=False
            )
            db.commit()
        except Exception as e:
            logger.error(f"[Booking] Could not mark meeting {meeting_id} as booked: {e}")

    # === Lookups ===

    def get_meeting(self, unique_link: str, db: Session) -> MeetingDetailResponse:
        meeting = db.query(MeetingModel).filter_by(unique_link=unique_link).first()
        if not meeting:
            raise HTTPException(status_code=404, detail="Meeting not found")

        slots = db.query(SlotModel).filter_by(meeting_id=meeting.id).order_by(SlotModel.slot_time.asc()).all()
        return MeetingDetailResponse(
            meeting=meeting_view(meeting),
            slots=[SlotView(id=s.id, slot_time=to_iso_utc(s.slot_time), is_selected=bool(s.is_selected)) for s in slots],
        )

    def list_meetings(self, user_id: int, db: Session) -> List[OrganizerMeetingView]:
        meetings = (
            db.query(MeetingModel)
            .filter_by(user_id=user_id)
            .order_by(MeetingModel.created_at.desc(), MeetingModel.id.desc())
            .all()
        )
        views = []
        for meeting in meetings:
            slots = db.query(SlotModel).filter_by(meeting_id=meeting.id).order_by(SlotModel.slot_time.asc()).all()
            views.append(OrganizerMeetingView(
                **meeting_view(meeting).model_dump(),
                unique_link=meeting.unique_link,
                link=self.shareable_link(meeting.unique_link),
                booking_status=meeting.booking_status,
                created_at=to_iso_utc(meeting.created_at),
                slots=[slot_booking_view(s) for s in slots],
            ))
        return views


def meeting_view(meeting: MeetingModel) -> MeetingView:
    return MeetingView(
        id=meeting.id,
        attendee_email=meeting.attendee_email,
        attendee_name=meeting.attendee_name,
        status=meeting.status,
        selected_slot=to_iso_utc(meeting.selected_slot),
    )


def slot_booking_view(slot: SlotModel) -> SlotBookingView:
    return SlotBookingView(
        id=slot.id,
        slot_time=to_iso_utc(slot.slot_time),
        is_selected=bool(slot.is_selected),
        google_event_id=slot.google_event_id,
        outlook_event_id=slot.outlook_event_id,
        google_status=slot.google_status or PROVIDER_PENDING,
        outlook_status=slot.outlook_status or PROVIDER_PENDING,
    )
