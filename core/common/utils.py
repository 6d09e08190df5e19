from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Mongo hands back naive datetimes unless the client is tz_aware; treat them as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def now_ms_iso() -> tuple[int, str]:
    now = utcnow()
    return int(now.timestamp() * 1000), now.isoformat().replace("+00:00", "Z")


def floor_time(ts: datetime, step: timedelta) -> datetime:
    """
    Align `ts` down to a multiple of `step` counted from the Unix epoch.
    """
    ts = ensure_utc(ts)
    epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
    return ts - ((ts - epoch) % step)
