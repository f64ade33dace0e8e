import re
from datetime import date, datetime, timezone
from typing import Optional

# Graph emits 7 fractional digits, fromisoformat accepts at most 6
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_iso_datetime(value: str) -> datetime:
    """
    Parses an ISO-8601 timestamp into a naive UTC datetime.

    Accepts a trailing 'Z' and bare dates (read as midnight). Raises ValueError
    on anything else.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid ISO timestamp: {value!r}")

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date(value: str) -> date:
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def to_iso_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"
