"""Resolution of upstream start/end values into canonical event times."""
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from importers.errors import InvalidTimeError
from model.event import DateOnly, DateTime, EventTime

UTC = "UTC"

DateOrDateTime = Union[date, datetime]


def to_fixed_offset(value: datetime) -> datetime:
    """Convert an aware datetime to one with a fixed UTC offset."""
    return value.astimezone(timezone(value.utcoffset()))


def localize(naive: datetime, tz_name: str) -> datetime:
    """
    Interpret a wall-clock time in the given zone.

    Args:
        naive: Local time without tzinfo
        tz_name: IANA timezone name, or "UTC"

    Returns:
        Datetime with a fixed UTC offset

    Raises:
        InvalidTimeError: If the zone is unknown, or the local time is
            ambiguous or skipped by a daylight-saving transition
    """
    if tz_name == UTC:
        return naive.replace(tzinfo=timezone.utc)
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimeError(f"Unknown timezone {tz_name}") from e

    earlier = naive.replace(tzinfo=zone, fold=0)
    later = naive.replace(tzinfo=zone, fold=1)
    if earlier.utcoffset() != later.utcoffset():
        raise InvalidTimeError(f"Ambiguous local time {naive} in {tz_name}")
    return to_fixed_offset(earlier)


def resolve_time(
    start: DateOrDateTime,
    start_tzid: Optional[str],
    end: DateOrDateTime,
    end_tzid: Optional[str],
    default_timezone: Optional[str] = None,
    accept_utc: bool = True,
) -> EventTime:
    """
    Resolve upstream start and end values into an EventTime.

    Whole-day values use an exclusive upstream end date, so one day is
    subtracted. Timestamps are given as wall-clock times plus the zone they
    were declared in: None for floating times, "UTC" for UTC-designated
    values, or a TZID.

    Args:
        start: Upstream start value (date or naive datetime)
        start_tzid: Declared zone of the start value
        end: Upstream end value (date or naive datetime)
        end_tzid: Declared zone of the end value
        default_timezone: Zone expected by the source, if any
        accept_utc: Whether UTC-designated values are allowed when a
            default timezone is set

    Returns:
        DateOnly or DateTime

    Raises:
        InvalidTimeError: If the values can't be resolved
    """
    start_is_datetime = isinstance(start, datetime)
    end_is_datetime = isinstance(end, datetime)

    if not start_is_datetime and not end_is_datetime:
        try:
            return DateOnly(start_date=start, end_date=end - timedelta(days=1))
        except ValueError as e:
            raise InvalidTimeError(str(e)) from e

    if not (start_is_datetime and end_is_datetime):
        raise InvalidTimeError("Mismatched start and end times")

    if start_tzid != end_tzid:
        raise InvalidTimeError(
            f"Start timezone {start_tzid} differs from end timezone {end_tzid}"
        )

    tzid = start_tzid
    if tzid is None:
        if default_timezone is None:
            raise InvalidTimeError("Floating time with no default timezone")
        tzid = default_timezone
    elif default_timezone is not None and tzid != default_timezone and not (
        tzid == UTC and accept_utc
    ):
        raise InvalidTimeError(f"Unexpected timezone {tzid}")

    try:
        return DateTime(start=localize(start, tzid), end=localize(end, tzid))
    except ValueError as e:
        raise InvalidTimeError(str(e)) from e


def _parse_iso(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidTimeError(f"Invalid timestamp {value!r}") from e


def resolve_instants(
    start_iso: str,
    end_iso: str,
    tz_name: str,
    default_timezone: Optional[str] = None,
) -> DateTime:
    """
    Resolve ISO 8601 timestamps with an explicit timezone into a DateTime.

    Offset-aware timestamps are converted into the given zone; timestamps
    without an offset are taken as wall-clock times in that zone. The start
    time is truncated to the minute.

    Raises:
        InvalidTimeError: If a timestamp or the zone is invalid, or the zone
            disagrees with the source's default timezone
    """
    if default_timezone is not None and tz_name != default_timezone:
        raise InvalidTimeError(f"Unexpected timezone {tz_name}")
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimeError(f"Unknown timezone {tz_name}") from e

    def convert(value: str) -> datetime:
        parsed = _parse_iso(value)
        if parsed.tzinfo is None:
            return localize(parsed, tz_name)
        return to_fixed_offset(parsed.astimezone(zone))

    start = convert(start_iso).replace(second=0, microsecond=0)
    end = convert(end_iso)
    try:
        return DateTime(start=start, end=end)
    except ValueError as e:
        raise InvalidTimeError(str(e)) from e
