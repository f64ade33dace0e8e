from prometheus_client import Counter


# === Global Metrics ===

api_exception_counter = Counter(
    "api_exception_count", "Total API exceptions by type",
    ["type"]
)

provider_call_counter = Counter(
    "calendar_provider_calls_total", "Calendar provider API calls by outcome",
    ["provider", "operation", "outcome"]
)

email_counter = Counter(
    "emails_sent_total", "Outbound emails by outcome",
    ["outcome"]
)

meetings_created_counter = Counter(
    "meetings_created_total", "Meetings proposed to attendees"
)

slot_selection_counter = Counter(
    "slot_selections_total", "Attendee slot selections by outcome",
    ["outcome"]
)


def record_provider_call(provider: str, operation: str, outcome: str) -> None:
    provider_call_counter.labels(provider=provider, operation=operation, outcome=outcome).inc()
