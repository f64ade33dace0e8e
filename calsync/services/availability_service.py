import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from calsync.base.config import AppConfig, get_settings
from calsync.models.user_model import UserModel
from calsync.providers.calendar_clients import build_calendar_clients
from calsync.utils.time_utils import parse_iso_datetime, to_iso_utc

logger = logging.getLogger("calendar_sync")

BusyInterval = Tuple[datetime, datetime]


def _event_bound(event: Dict, key: str) -> Optional[datetime]:
    # timed events carry dateTime, all-day events only carry date
    bound = event.get(key) or {}
    raw = bound.get("dateTime") or bound.get("date")
    if not raw:
        return None
    try:
        return parse_iso_datetime(raw)
    except (TypeError, ValueError):
        return None


def busy_intervals(events: Iterable[Dict]) -> List[BusyInterval]:
    intervals = []
    for event in events:
        start = _event_bound(event, "start")
        end = _event_bound(event, "end")
        if start is None or end is None:
            logger.debug(f"[SlotGen] Ignoring event without usable bounds: {event.get('id')}")
            continue
        intervals.append((start, end))
    return intervals


def generate_available_slots(
    events: Iterable[Dict],
    day: date,
    start_hour: int = 9,
    slot_count: int = 8,
    slot_minutes: int = 60,
) -> Iterator[str]:
    """
    Yields the fixed hourly candidates of `day` that overlap no busy event.

    Candidates are [09:00, 10:00), [10:00, 11:00), ... [16:00, 17:00) in
    ascending order. A candidate is busy when
    `candidate_start < busy_end and candidate_end > busy_start`.
    """
    intervals = busy_intervals(events)
    day_start = datetime.combine(day, time(hour=start_hour))
    width = timedelta(minutes=slot_minutes)

    for i in range(slot_count):
        slot_start = day_start + i * width
        slot_end = slot_start + width
        is_booked = any(slot_start < busy_end and slot_end > busy_start for busy_start, busy_end in intervals)
        if not is_booked:
            yield to_iso_utc(slot_start)


class AvailabilityService:
    def __init__(self, settings: Optional[AppConfig] = None):
        self.settings = settings or get_settings()

    def collect_events(self, user: UserModel, day: date) -> List[Dict]:
        window_start = datetime.combine(day, time.min)
        window_end = window_start + timedelta(days=1)

        events: List[Dict] = []
        for provider, client in build_calendar_clients(user).items():
            provider_events = client.list_events(window_start, window_end)
            logger.info(f"[SlotGen] {len(provider_events)} {provider} event(s) on {day}")
            events.extend(provider_events)
        return events

    def available_slots(self, user: UserModel, day: date) -> List[str]:
        events = self.collect_events(user, day)
        slots = list(generate_available_slots(
            events,
            day,
            start_hour=self.settings.WORKDAY_START_HOUR,
            slot_count=self.settings.SLOTS_PER_DAY,
            slot_minutes=self.settings.SLOT_DURATION_MINUTES,
        ))
        logger.info(f"[SlotGen] {len(slots)} slots found for {day} (user {user.id})")
        return slots
