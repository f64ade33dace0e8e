import logging
from datetime import datetime
from typing import Dict, List, Optional

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from calsync.base.config import settings
from calsync.base.metrics import record_provider_call
from calsync.utils.time_utils import to_iso_utc

logger = logging.getLogger("calendar_sync")

PROVIDER = "google"


class GoogleCalendarClient:
    """
    Google Calendar adapter acting on behalf of one organizer.

    Authenticates with the organizer's stored OAuth access token. Every call is
    best-effort: failures are logged and reported as None / False / [].
    """

    def __init__(self, token: Optional[str], calendar_id: str = "primary",
                 timeout: Optional[float] = None, service=None):
        self.token = token
        self.calendar_id = calendar_id
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._service = service

    @property
    def service(self):
        if self._service is None:
            credentials = Credentials(token=self.token)
            http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=self.timeout))
            self._service = build("calendar", "v3", http=http, cache_discovery=False)
        return self._service

    def list_events(self, time_min: datetime, time_max: datetime) -> List[Dict]:
        if not self.token:
            return []
        try:
            events_result = self.service.events().list(
                calendarId=self.calendar_id,
                timeMin=to_iso_utc(time_min),
                timeMax=to_iso_utc(time_max),
                singleEvents=True,
                orderBy="startTime"
            ).execute()
            record_provider_call(PROVIDER, "list", "ok")
            return events_result.get("items", [])
        except HttpError as e:
            logger.error(f"[GoogleCalendar] API Error (list_events): {e}")
        except Exception as e:
            logger.error(f"[GoogleCalendar] Google fetch error: {e}")
        record_provider_call(PROVIDER, "list", "error")
        return []

    def create_event(
        self,
        subject: str,
        start: datetime,
        end: datetime,
        attendee_email: str,
    ) -> Optional[str]:
        if not self.token:
            record_provider_call(PROVIDER, "create", "skipped")
            return None

        event = {
            "summary": subject,
            "start": {"dateTime": to_iso_utc(start), "timeZone": "UTC"},
            "end": {"dateTime": to_iso_utc(end), "timeZone": "UTC"},
            "attendees": [{"email": attendee_email}],
        }

        try:
            created_event = self.service.events().insert(
                calendarId=self.calendar_id,
                body=event,
            ).execute()
            event_id = created_event.get("id")
            logger.info(f"[EventCreate] Google event created: {event_id}")
            record_provider_call(PROVIDER, "create", "ok")
            return event_id
        except HttpError as e:
            logger.error(f"[EventCreate] Google event creation error: {e}")
        except Exception as e:
            logger.error(f"[EventCreate] Google event creation failed: {e}")
        record_provider_call(PROVIDER, "create", "error")
        return None

    def delete_event(self, event_id: str) -> bool:
        if not self.token:
            record_provider_call(PROVIDER, "delete", "skipped")
            return False
        try:
            self.service.events().delete(calendarId=self.calendar_id, eventId=event_id).execute()
            logger.info(f"[EventDelete] Deleted Google event ID: {event_id}")
            record_provider_call(PROVIDER, "delete", "ok")
            return True
        except HttpError as e:
            logger.warning(f"[EventDelete] Google event deletion error: {e}")
        except Exception as e:
            logger.warning(f"[EventDelete] Google event deletion failed: {e}")
        record_provider_call(PROVIDER, "delete", "error")
        return False
