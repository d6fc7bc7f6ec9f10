import datetime as dt


def utc_now() -> dt.datetime:
    """
    Get current UTC datetime with timezone information.

    Returns:
        dt.datetime: Current UTC datetime with timezone awareness
    """
    return dt.datetime.now(dt.timezone.utc)


def iso(value: dt.datetime | None) -> str | None:
    return value.isoformat() if value else None
