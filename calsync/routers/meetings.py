# calsync/routers/meetings.py

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from calsync.base.database import get_db, get_session_factory
from calsync.base.models import (
    CreateMeetingRequest,
    CreateMeetingResponse,
    MeetingDetailResponse,
    OrganizerMeetingsResponse,
    SelectSlotRequest,
    SelectSlotResponse,
)
from calsync.base.security import get_current_user_id
from calsync.services import MeetingService, SlotSelectionService

router = APIRouter(tags=["Meetings"])


def get_meeting_service() -> MeetingService:
    return MeetingService()


def get_selection_service() -> SlotSelectionService:
    return SlotSelectionService()


# === Organizer ===

@router.post("/create", response_model=CreateMeetingResponse)
def create_meeting(
    req: CreateMeetingRequest,
    background_tasks: BackgroundTasks,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
    service: MeetingService = Depends(get_meeting_service),
):
    """
    Stores the proposal and answers immediately; the attendee email and the
    tentative calendar events are handled after the response is sent.
    """
    result = service.create_meeting(user_id, req, db)
    background_tasks.add_task(service.book_meeting_slots, result.meeting_id, session_factory)
    return result


@router.get("", response_model=OrganizerMeetingsResponse)
def list_meetings(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: MeetingService = Depends(get_meeting_service),
):
    return OrganizerMeetingsResponse(meetings=service.list_meetings(user_id, db))


# === Attendee (public) ===

@router.get("/{unique_link}", response_model=MeetingDetailResponse)
def get_meeting(unique_link: str, db: Session = Depends(get_db),
                service: MeetingService = Depends(get_meeting_service)):
    return service.get_meeting(unique_link, db)


@router.post("/select-slot/{unique_link}", response_model=SelectSlotResponse)
def select_slot(unique_link: str, req: Optional[SelectSlotRequest] = None, db: Session = Depends(get_db),
                service: SlotSelectionService = Depends(get_selection_service)):
    return service.select_slot(unique_link, req or SelectSlotRequest(), db)
