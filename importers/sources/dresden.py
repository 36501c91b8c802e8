"""Folktanz Dresden calendars: monthly dances and the weekly Tuesday class."""
import logging
from dataclasses import replace
from datetime import timedelta
from typing import FrozenSet, Optional

from importers.adapter import EventParts, Location, SourceAdapter
from importers.errors import InvalidTimeError
from importers.timeutil import localize
from model.event import DanceStyle, DateTime, Event

logger = logging.getLogger(__name__)

ORGANISATION = "Folktanz Dresden e.V."
TIMEZONE = "Europe/Berlin"


class _DresdenAdapter(SourceAdapter):
    name = "dresden"
    default_organisation = ORGANISATION
    default_timezone = TIMEZONE
    page_url = ""

    def classify_social(self, parts: EventParts) -> bool:
        return True

    def derive_styles(self, parts: EventParts) -> FrozenSet[DanceStyle]:
        return frozenset([DanceStyle.BALFOLK])

    def derive_location(self, parts: EventParts) -> Optional[Location]:
        return "Germany", None, "Dresden"

    def fixup(self, event: Event) -> Optional[Event]:
        time = event.time
        # The feed labels local times as UTC.
        if isinstance(time, DateTime) and time.start.utcoffset() == timedelta(0):
            try:
                time = DateTime(
                    start=localize(time.start.replace(tzinfo=None), TIMEZONE),
                    end=localize(time.end.replace(tzinfo=None), TIMEZONE),
                )
            except InvalidTimeError as e:
                logger.warning(f"Dropping '{event.name}' {event.links[0]}: {e}")
                return None

        links = event.links
        if self.page_url not in links:
            links = links + (self.page_url,)
        return replace(event, time=time, links=links, organisation=ORGANISATION)


class DresdenAdapter(_DresdenAdapter):
    feed_url = "https://www.gugelhupf-dresden.de/tanz-in-dresden/calendar/icslist/calendar.ics"
    page_url = "https://www.gugelhupf-dresden.de/tanz-in-dresden/"

    def classify_workshop(self, parts: EventParts) -> bool:
        return "tanzfest" in parts.summary.lower()

    def derive_location(self, parts: EventParts) -> Optional[Location]:
        city = "Hohnstein" if "Hohnstein" in parts.summary else "Dresden"
        return "Germany", None, city


class DresdenWeeklyAdapter(_DresdenAdapter):
    feed_url = "https://www.gugelhupf-dresden.de/tanz-am-dienstag/calendar/icslist/calendar.ics"
    page_url = "https://www.gugelhupf-dresden.de/tanz-am-dienstag/"

    def classify_workshop(self, parts: EventParts) -> bool:
        return True
