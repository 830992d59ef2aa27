"""Time helpers: current instant, day boundaries, and timestamp encoding."""

from datetime import UTC, date, datetime, timedelta, tzinfo

from dateutil import parser as dateutil_parser, tz

from src.core.config import settings


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def day_zone() -> tzinfo:
    """Return the timezone whose midnight starts a new day."""
    zone = tz.gettz(settings.day_boundary_timezone)
    if zone is None:
        msg = f"Unknown day boundary timezone: {settings.day_boundary_timezone}"
        raise ValueError(msg)
    return zone


def local_date(moment: datetime) -> date:
    """Return the calendar date of an instant in the day-boundary timezone."""
    return ensure_aware(moment).astimezone(day_zone()).date()


def day_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """Return [midnight, next midnight) around an instant, as UTC datetimes."""
    zone = day_zone()
    local = ensure_aware(moment).astimezone(zone)
    start = datetime(local.year, local.month, local.day, tzinfo=zone)
    end = datetime.combine(start.date() + timedelta(days=1), start.time(), tzinfo=zone)
    return start.astimezone(UTC), end.astimezone(UTC)


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def format_timestamp(moment: datetime) -> str:
    """Encode an instant as a fixed-width UTC ISO string.

    Fixed width keeps lexical ordering identical to chronological ordering,
    which the store relies on for range filters.
    """
    return ensure_aware(moment).astimezone(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | datetime) -> datetime:
    """Decode a stored or client-supplied timestamp into an aware UTC datetime."""
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(UTC)
    return ensure_aware(dateutil_parser.isoparse(value)).astimezone(UTC)
