from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    # JSON uses camelCase keys, Python code uses field names
    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(ApiModel):
    message: str


# === 🔐 Auth ===

class CredentialsRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(ApiModel):
    token: str
    user_id: int = Field(..., alias="userId")
    email: str


class OAuthCallbackRequest(ApiModel):
    code: Optional[str] = None


class AuthorizeUrlResponse(ApiModel):
    provider: str
    url: str


# === 📅 Availability ===

class AvailableSlotsResponse(ApiModel):
    available_slots: List[str] = Field(default_factory=list, alias="availableSlots")


# === 🤝 Meeting Proposal ===

class CreateMeetingRequest(ApiModel):
    attendee_email: Optional[str] = Field(None, alias="attendeeEmail")
    attendee_name: Optional[str] = Field(None, alias="attendeeName")
    slots: Optional[List[Any]] = Field(None, description="Candidate slot start times (ISO-8601)")


class CreateMeetingResponse(ApiModel):
    message: str
    meeting_id: int = Field(..., alias="meetingId")
    unique_link: str = Field(..., alias="uniqueLink")
    link: str = Field(..., description="Shareable URL the attendee uses to pick a slot")


# === 🎯 Slot Selection ===

class SelectSlotRequest(ApiModel):
    slot_id: Optional[Any] = Field(None, alias="slotId")


class ReleaseSummary(ApiModel):
    deleted: int = 0
    failed: int = 0


class SelectSlotResponse(ApiModel):
    message: str
    selected_slot: str = Field(..., alias="selectedSlot")
    released_events: Dict[str, ReleaseSummary] = Field(default_factory=dict, alias="releasedEvents")


# === 🔎 Meeting Views ===

class SlotView(ApiModel):
    id: int
    slot_time: str
    is_selected: bool


class MeetingView(ApiModel):
    id: int
    attendee_email: str = Field(..., alias="attendeeEmail")
    attendee_name: Optional[str] = Field(None, alias="attendeeName")
    status: str
    selected_slot: Optional[str] = Field(None, alias="selectedSlot")


class MeetingDetailResponse(ApiModel):
    meeting: MeetingView
    slots: List[SlotView]


class SlotBookingView(SlotView):
    google_event_id: Optional[str] = Field(None, alias="googleEventId")
    outlook_event_id: Optional[str] = Field(None, alias="outlookEventId")
    google_status: str = Field(..., alias="googleStatus")
    outlook_status: str = Field(..., alias="outlookStatus")


class OrganizerMeetingView(MeetingView):
    unique_link: str = Field(..., alias="uniqueLink")
    link: str
    booking_status: str = Field(..., alias="bookingStatus")
    created_at: Optional[str] = Field(None, alias="createdAt")
    slots: List[SlotBookingView] = Field(default_factory=list)


class OrganizerMeetingsResponse(ApiModel):
    meetings: List[OrganizerMeetingView]
