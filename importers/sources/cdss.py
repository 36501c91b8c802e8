"""Country Dance and Song Society event calendar."""
import logging
from typing import FrozenSet, Optional

from importers.adapter import EventParts, Location, SourceAdapter
from model.event import DanceStyle

logger = logging.getLogger(__name__)

BANDS = (
    "Bunny Bread Bandits",
    "SpringTide",
    "Stomp Rocket",
    "Supertrad",
)

CALLERS = (
    "Alan Rosenthal",
    "Alice Raybourn",
    "Cathy Campbell",
    "Dave Berman",
    "Gaye Fifer",
    "George Marshall",
    "Janine Smith",
    "Lisa Greenleaf",
    "Michael Karchar",
    "Steve Zakon-Anderson",
    "Walter Zagorski",
)

ONLINE_CATEGORY = "Online Event"

CATEGORY_STYLES = {
    "Contra Dance": DanceStyle.CONTRA,
    "English Country Dance": DanceStyle.ENGLISH_COUNTRY_DANCE,
}

COUNTRY_NAMES = {
    "United States": "USA",
}


class CdssAdapter(SourceAdapter):
    name = "cdss"
    feed_url = "https://cdss.org/events/list/?ical=1"
    default_organisation = "CDSS"
    bands = BANDS
    callers = CALLERS

    def classify_workshop(self, parts: EventParts) -> bool:
        return False

    def classify_social(self, parts: EventParts) -> bool:
        return True

    def derive_styles(self, parts: EventParts) -> FrozenSet[DanceStyle]:
        if ONLINE_CATEGORY in parts.categories:
            return frozenset()
        return frozenset(
            style for category, style in CATEGORY_STYLES.items() if category in parts.categories
        )

    def derive_location(self, parts: EventParts) -> Optional[Location]:
        # Venue, street, city, state, postcode, country
        location_parts = [part.strip() for part in parts.location.split(",")]
        if len(location_parts) < 4:
            logger.warning(f"Invalid location '{parts.location}' for {parts.url}")
            return None
        country = COUNTRY_NAMES.get(location_parts[-1], location_parts[-1])
        return country, location_parts[-3], location_parts[-4]
