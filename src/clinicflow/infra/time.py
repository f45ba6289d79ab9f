"""Timestamp helpers shared by logging and message history ordering."""

from datetime import date, datetime, time, timezone


class TimestampParseError(ValueError):
    """Raised when a stored send time cannot be read as a point in time."""

    def __init__(self, value: object, record_id: str | None = None):
        self.value = value
        self.record_id = record_id
        where = f" (record {record_id})" if record_id else ""
        super().__init__(f"Unparsable timestamp{where}: {value!r}")


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | datetime | date, record_id: str | None = None) -> datetime:
    """Parse a stored timestamp into an aware UTC datetime.

    Accepts what the messages API returns: ISO-8601 strings with or without
    fractional seconds, a trailing ``Z`` or an explicit offset, and plain
    dates (read as midnight UTC). Naive values are taken as UTC, matching
    how the API serializes ``sentAt``.

    Raises:
        TimestampParseError: If the value is empty or not a timestamp. The
            caller decides what to do; nothing is defaulted here.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise TimestampParseError(value, record_id)
        if text[-1] in "zZ":
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise TimestampParseError(value, record_id) from e
    else:
        raise TimestampParseError(value, record_id)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
