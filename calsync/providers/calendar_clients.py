from typing import Dict, Union

from calsync.models.user_model import UserModel
from calsync.providers.google_calendar import GoogleCalendarClient
from calsync.providers.outlook_calendar import OutlookCalendarClient

GOOGLE = "google"
OUTLOOK = "outlook"
PROVIDERS = (GOOGLE, OUTLOOK)

CalendarClient = Union[GoogleCalendarClient, OutlookCalendarClient]


def build_calendar_clients(user: UserModel) -> Dict[str, CalendarClient]:
    """Returns one adapter per calendar the user has connected."""
    clients: Dict[str, CalendarClient] = {}
    if user.google_token:
        clients[GOOGLE] = GoogleCalendarClient(user.google_token)
    if user.outlook_token:
        clients[OUTLOOK] = OutlookCalendarClient(user.outlook_token)
    return clients
