from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp for every stored datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands stored timestamps back without tzinfo; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
