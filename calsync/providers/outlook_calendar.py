import logging
from datetime import datetime
from functools import lru_cache
from typing import Dict, List, Optional

import httpx

from calsync.base.config import settings
from calsync.base.metrics import record_provider_call
from calsync.utils.time_utils import to_iso_utc

logger = logging.getLogger("calendar_sync")

PROVIDER = "outlook"
GRAPH_API = "https://graph.microsoft.com/v1.0"


@lru_cache()
def get_graph_http_client() -> httpx.Client:
    # shared connection pool for every organizer; auth is per request
    return httpx.Client(base_url=GRAPH_API, timeout=settings.HTTP_TIMEOUT_SECONDS)


class OutlookCalendarClient:
    """Microsoft Graph calendar adapter acting on behalf of one organizer."""

    def __init__(self, token: Optional[str], http_client: Optional[httpx.Client] = None):
        self.token = token
        self.http = http_client or get_graph_http_client()

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Prefer": 'outlook.timezone="UTC"',
        }

    def list_events(self, time_min: datetime, time_max: datetime) -> List[Dict]:
        if not self.token:
            return []
        try:
            response = self.http.get(
                "/me/calendarView",
                headers=self.headers,
                params={
                    "startDateTime": to_iso_utc(time_min),
                    "endDateTime": to_iso_utc(time_max),
                },
            )
            response.raise_for_status()
            record_provider_call(PROVIDER, "list", "ok")
            return [self._normalize(item) for item in response.json().get("value", [])]
        except httpx.HTTPError as e:
            logger.error(f"[OutlookCalendar] Outlook fetch error: {e}")
        except (httpx.InvalidURL, ValueError) as e:
            logger.error(f"[OutlookCalendar] Unreadable calendarView payload: {e}")
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
            "subject": subject,
            "start": {"dateTime": to_iso_utc(start)[:-1], "timeZone": "UTC"},
            "end": {"dateTime": to_iso_utc(end)[:-1], "timeZone": "UTC"},
            "attendees": [
                {"emailAddress": {"address": attendee_email}, "type": "required"}
            ],
        }

        try:
            response = self.http.post("/me/calendar/events", headers=self.headers, json=event)
            response.raise_for_status()
            event_id = response.json().get("id")
            logger.info(f"[EventCreate] Outlook event created: {event_id}")
            record_provider_call(PROVIDER, "create", "ok")
            return event_id
        except httpx.HTTPError as e:
            logger.error(f"[EventCreate] Outlook event creation error: {e}")
        except (httpx.InvalidURL, ValueError) as e:
            logger.error(f"[EventCreate] Unreadable Outlook response: {e}")
        record_provider_call(PROVIDER, "create", "error")
        return None

    def delete_event(self, event_id: str) -> bool:
        if not self.token:
            record_provider_call(PROVIDER, "delete", "skipped")
            return False
        try:
            response = self.http.delete(f"/me/calendar/events/{event_id}", headers=self.headers)
            response.raise_for_status()
            logger.info(f"[EventDelete] Deleted Outlook event ID: {event_id}")
            record_provider_call(PROVIDER, "delete", "ok")
            return True
        except httpx.HTTPError as e:
            logger.warning(f"[EventDelete] Outlook event deletion error: {e}")
        except (httpx.InvalidURL, ValueError) as e:
            logger.warning(f"[EventDelete] Outlook rejected event ID {event_id!r}: {e}")
        record_provider_call(PROVIDER, "delete", "error")
        return False

    @staticmethod
    def _normalize(item: Dict) -> Dict:
        # Graph returns {"dateTime": "...", "timeZone": "UTC"} without an offset
        def bound(key: str) -> Dict:
            value = (item.get(key) or {}).get("dateTime")
            return {"dateTime": f"{value}Z" if value else None}

        return {
            "id": item.get("id"),
            "summary": item.get("subject"),
            "start": bound("start"),
            "end": bound("end"),
        }
