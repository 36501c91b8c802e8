"""Feed formats: parsing raw feed text and extracting EventParts from records."""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup
from icalendar import Calendar

from importers.adapter import EventParts, SourceAdapter
from importers.errors import FeedParseError, InvalidFieldError
from importers.timeutil import UTC, resolve_instants, resolve_time
from model.event import EventTime

logger = logging.getLogger(__name__)


def clean_text(text: str) -> str:
    """
    Strip HTML markup and entities from upstream text.

    Args:
        text: Description as published by the feed

    Returns:
        Plain text with non-breaking spaces replaced and outer whitespace removed
    """
    if "<" not in text and "&" not in text:
        return text.strip()
    plain = BeautifulSoup(text, "html.parser").get_text()
    return plain.replace("\xa0", " ").strip()


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        value = value[0] if value else None
        if value is None:
            return None
    return str(value)


def _string_field(record: Dict[str, Any], key: str) -> Optional[str]:
    """
    Read an optional string field from a JSON record.

    Raises:
        InvalidFieldError: If the field is present with a non-string value
    """
    value = record.get(key)
    if value is None or isinstance(value, str):
        return value
    raise InvalidFieldError(key, value)


class ICalendarFeed:
    """iCalendar (text/calendar) feeds."""

    name = "icalendar"

    def parse(self, text: str) -> List[Any]:
        """
        Parse calendar text into its VEVENT components.

        Raises:
            FeedParseError: If the text is not a valid calendar
        """
        try:
            calendar = Calendar.from_ical(text)
        except ValueError as e:
            raise FeedParseError(f"Error parsing iCalendar feed: {e}") from e
        return list(calendar.walk("VEVENT"))

    def extract(
        self, component: Any, adapter: SourceAdapter, feed_url: Optional[str] = None
    ) -> EventParts:
        description = _optional_text(component.get("DESCRIPTION"))
        if description is not None:
            description = clean_text(description)

        return EventParts(
            url=_optional_text(component.get("URL")),
            summary=_optional_text(component.get("SUMMARY")),
            description=description,
            location=_optional_text(component.get("LOCATION")),
            time=self._time(component, adapter),
            organiser=self._organiser(component),
            categories=self._categories(component),
            cancelled=str(component.get("STATUS", "")).upper() == "CANCELLED",
            feed_url=feed_url,
        )

    @staticmethod
    def _endpoint(prop: Any) -> Tuple[Any, Optional[str]]:
        value = prop.dt
        if not isinstance(value, datetime):
            return value, None
        tzid = prop.params.get("TZID")
        if tzid is None and value.tzinfo is not None:
            tzid = UTC
        return value.replace(tzinfo=None), tzid

    def _time(self, component: Any, adapter: SourceAdapter) -> Optional[EventTime]:
        start = component.get("DTSTART")
        end = component.get("DTEND")
        if start is None or end is None:
            return None
        start_value, start_tzid = self._endpoint(start)
        end_value, end_tzid = self._endpoint(end)
        return resolve_time(
            start_value, start_tzid, end_value, end_tzid,
            adapter.default_timezone, adapter.accepts_utc,
        )

    @staticmethod
    def _organiser(component: Any) -> Optional[str]:
        organiser = component.get("ORGANIZER")
        if isinstance(organiser, list):
            organiser = organiser[0] if organiser else None
        if organiser is None:
            return None
        name = organiser.params.get("CN")
        if not name:
            return None
        return name.strip('"')

    @staticmethod
    def _categories(component: Any) -> Tuple[str, ...]:
        value = component.get("CATEGORIES")
        if value is None:
            return ()
        values = value if isinstance(value, list) else [value]
        categories: List[str] = []
        for item in values:
            categories.extend(str(category).strip() for category in getattr(item, "cats", [item]))
        return tuple(categories)


class JsonEventFeed:
    """JSON event list as served by the plug.events embed API."""

    name = "json"

    def parse(self, text: str) -> List[Dict[str, Any]]:
        """
        Parse the JSON body into its list of event records.

        Raises:
            FeedParseError: If the body is not JSON or has no event list
        """
        try:
            body = json.loads(text)
        except ValueError as e:
            raise FeedParseError(f"Error parsing JSON feed: {e}") from e
        if not isinstance(body, dict) or not isinstance(body.get("events"), list):
            raise FeedParseError("JSON feed has no 'events' list")
        records = [record for record in body["events"] if isinstance(record, dict)]
        if len(records) != len(body["events"]):
            logger.warning(
                f"Ignoring {len(body['events']) - len(records)} malformed records"
            )
        return records

    def extract(
        self, record: Dict[str, Any], adapter: SourceAdapter, feed_url: Optional[str] = None
    ) -> EventParts:
        description = _string_field(record, "description")
        if description is not None:
            description = clean_text(description)

        time = None
        start = _string_field(record, "startDateTimeIso")
        end = _string_field(record, "endDateTimeIso")
        tz_name = _string_field(record, "timezone")
        if start and end and tz_name:
            time = resolve_instants(start, end, tz_name, adapter.default_timezone)

        if record.get("isFree"):
            price = "free"
        else:
            price = _string_field(record, "priceDisplay") or None

        subinterests = record.get("subinterests") or []
        if not isinstance(subinterests, list):
            raise InvalidFieldError("subinterests", subinterests)
        for tag in subinterests:
            if not isinstance(tag, str):
                raise InvalidFieldError("subinterests", tag)

        return EventParts(
            url=_string_field(record, "plugUrl"),
            summary=_string_field(record, "name"),
            description=description,
            location=_string_field(record, "venueLocale"),
            time=time,
            organiser=_string_field(record, "publishedByName"),
            categories=tuple(subinterests),
            price=price,
            feed_url=feed_url,
        )


FEED_FORMATS = {
    ICalendarFeed.name: ICalendarFeed(),
    JsonEventFeed.name: JsonEventFeed(),
}
