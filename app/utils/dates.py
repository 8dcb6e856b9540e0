from datetime import date, datetime, time, timedelta
from pytz import timezone, utc
from app.config import CAMPUS_TIMEZONE

campus_tz = timezone(CAMPUS_TIMEZONE)


def utc_now() -> datetime:
    """Naive UTC timestamp, the form pymongo stores and returns."""
    return datetime.utcnow()


def local_date(moment: datetime) -> date:
    """Campus calendar day of a naive UTC timestamp."""
    return utc.localize(moment).astimezone(campus_tz).date()


def local_hour(moment: datetime) -> int:
    return utc.localize(moment).astimezone(campus_tz).hour


def weekday_index(day: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[start, end) of a campus calendar day as naive UTC datetimes."""
    start = campus_tz.localize(datetime.combine(day, time.min))
    end = campus_tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return (
        start.astimezone(utc).replace(tzinfo=None),
        end.astimezone(utc).replace(tzinfo=None),
    )


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Normalize client supplied timestamps to naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(utc).replace(tzinfo=None)
