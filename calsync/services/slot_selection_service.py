# calsync/services/slot_selection_service.py

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from calsync.base.config import AppConfig, get_settings
from calsync.base.metrics import slot_selection_counter
from calsync.base.models import ReleaseSummary, SelectSlotRequest, SelectSlotResponse
from calsync.models.meeting_model import BOOKING_DONE, STATUS_CONFIRMED, STATUS_PENDING, MeetingModel
from calsync.models.slot_model import SlotModel
from calsync.models.user_model import UserModel
from calsync.providers.calendar_clients import GOOGLE, OUTLOOK, PROVIDERS, CalendarClient, build_calendar_clients
from calsync.utils.email_utils import notify_meeting_confirmed
from calsync.utils.time_utils import to_iso_utc

logger = logging.getLogger("booking")


def parse_slot_id(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError("boolean is not a slot id")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        return int(raw.strip(), 10)
    raise ValueError(f"unsupported slot id type: {type(raw).__name__}")


class SlotSelectionService:
    """
    Resolves an attendee's pick: confirms the meeting on the chosen slot and
    releases every sibling slot together with its tentative calendar events.

    Meeting lifecycle is `pending -> confirmed`, claimed with a conditional
    update so that only one selection can ever win.
    """

    def __init__(self, settings: Optional[AppConfig] = None):
        self.settings = settings or get_settings()

    def select_slot(self, unique_link: str, req: SelectSlotRequest, db: Session) -> SelectSlotResponse:
        meeting = db.query(MeetingModel).filter_by(unique_link=unique_link).first()
        if not meeting:
            raise HTTPException(status_code=404, detail="Meeting not found")

        if req.slot_id is None or req.slot_id == "":
            raise HTTPException(status_code=400, detail="Slot ID required")
        try:
            slot_id = parse_slot_id(req.slot_id)
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="Invalid Slot ID")

        slot = db.query(SlotModel).filter_by(id=slot_id, meeting_id=meeting.id).first()
        if not slot:
            raise HTTPException(status_code=404, detail="Slot not found for this meeting")

        if meeting.status == STATUS_CONFIRMED:
            slot_selection_counter.labels(outcome="already_confirmed").inc()
            raise HTTPException(status_code=409, detail="Meeting already confirmed")
        if meeting.booking_status != BOOKING_DONE:
            slot_count = db.query(SlotModel).filter_by(meeting_id=meeting.id).count()
            deadline = self._booking_deadline(meeting, slot_count)
            if deadline is not None and datetime.utcnow() < deadline:
                slot_selection_counter.labels(outcome="booking_in_progress").inc()
                raise HTTPException(status_code=409, detail="Calendar booking still in progress, try again shortly")
            logger.warning(
                f"[Select] Booking of meeting {meeting.id} stuck at '{meeting.booking_status}' "
                f"past {deadline}, allowing selection"
            )

        selected_time = slot.slot_time
        self._claim(db, meeting.id, slot.id, selected_time)

        user = db.get(UserModel, meeting.user_id)
        released = self._release_siblings(db, meeting.id, slot.id, build_calendar_clients(user))

        selected_slot = to_iso_utc(selected_time)
        logger.info(f"[Select] Meeting {meeting.id} confirmed for {selected_slot} (slot {slot.id})")
        slot_selection_counter.labels(outcome="confirmed").inc()

        notify_meeting_confirmed(
            attendee_email=meeting.attendee_email,
            attendee_name=meeting.attendee_name,
            organizer_email=user.email,
            selected_slot=selected_slot,
            settings=self.settings,
        )

        return SelectSlotResponse(
            message="Slot selected and other slots deleted",
            selected_slot=selected_slot,
            released_events=released,
        )

    def _booking_deadline(self, meeting: MeetingModel, slot_count: int) -> Optional[datetime]:
        """
        Point after which an unfinished booking task is presumed lost.

        Background tasks live in process memory, so a restart or kill leaves
        the meeting `queued` or `in_progress` for good. The window lets every
        provider call of every slot hit its timeout twice.
        """
        started = meeting.booking_started_at or meeting.created_at
        if started is None:
            return None
        window = max(
            self.settings.BOOKING_STALE_MIN_SECONDS,
            2 * slot_count * len(PROVIDERS) * self.settings.HTTP_TIMEOUT_SECONDS,
        )
        return started + timedelta(seconds=window)

    def _claim(self, db: Session, meeting_id: int, slot_id: int, selected_time) -> None:
        claimed = (
            db.query(MeetingModel)
            .filter(MeetingModel.id == meeting_id, MeetingModel.status == STATUS_PENDING)
            .update({"status": STATUS_CONFIRMED, "selected_slot": selected_time}, synchronize_session=False)
        )
        if claimed == 0:
            db.rollback()
            slot_selection_counter.labels(outcome="lost_race").inc()
            logger.warning(f"[Select] Meeting {meeting_id} was confirmed by a concurrent request")
            raise HTTPException(status_code=409, detail="Meeting already confirmed")

        db.query(SlotModel).filter(SlotModel.id == slot_id).update({"is_selected": True}, synchronize_session=False)
        db.commit()

    def _release_siblings(
        self,
        db: Session,
        meeting_id: int,
        selected_slot_id: int,
        clients: Dict[str, CalendarClient],
    ) -> Dict[str, ReleaseSummary]:
        summary = {provider: ReleaseSummary() for provider in PROVIDERS}

        siblings = (
            db.query(SlotModel)
            .filter(SlotModel.meeting_id == meeting_id, SlotModel.id != selected_slot_id)
            .all()
        )
        for sibling in siblings:
            sibling_id = sibling.id
            for provider, event_id in ((GOOGLE, sibling.google_event_id), (OUTLOOK, sibling.outlook_event_id)):
                if not event_id:
                    continue
                client = clients.get(provider)
                if client is not None and client.delete_event(event_id):
                    summary[provider].deleted += 1
                else:
                    if client is None:
                        logger.warning(f"[Release] {provider} disconnected, event {event_id} left in place")
                    summary[provider].failed += 1

            db.delete(sibling)
            db.commit()
            logger.info(f"[Release] Slot {sibling_id} released from meeting {meeting_id}")

        return summary
