from datetime import UTC, datetime


def now() -> datetime:
    return datetime.now(UTC)


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string with millisecond precision."""
    return now().isoformat(timespec="milliseconds").replace("+00:00", "Z")
