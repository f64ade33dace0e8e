"""
CalSync Services Module

Central access to the services behind the HTTP routes: organizer accounts and
calendar connections, availability lookup, meeting proposals with their
background calendar booking, and the attendee's slot selection.
"""

# === Accounts & Calendar Connections ===
from .auth_service import AuthService
from .oauth_service import OAuthService

# === Availability ===
from .availability_service import AvailabilityService

# === Meeting Lifecycle ===
from .meeting_service import MeetingService
from .slot_selection_service import SlotSelectionService

# === Exported Interface ===
__all__ = [
    "AuthService",
    "OAuthService",
    "AvailabilityService",
    "MeetingService",
    "SlotSelectionService",
]
