"""balfolk.nl calendar of Dutch balfolk events."""
import logging
from dataclasses import replace
from typing import FrozenSet, Optional

from importers.adapter import EventParts, Location, SourceAdapter
from model.event import DanceStyle, Event

logger = logging.getLogger(__name__)

BANDS = (
    "Achterband",
    "Androneda",
    "Artisjok",
    "Aurélien Claranbaux",
    "Beat Bouet Trio",
    "Berkenwerk",
    "BmB",
    "Celts without Borders",
    "Duo Absynthe",
    "Duo Mackie/Hendrix",
    "Duo Roblin-Thebaut",
    "Emelie Waldken",
    "Fahrenheit",
    "Geronimo",
    "Hartwin Dhoore",
    "La Sauterelle",
    "Laouen",
    "Les Bottines Artistiques",
    "Les Zéoles",
    "Madlot",
    "Mieneke",
    "Momiro",
    "Naragonia",
    "Nebel",
    "Nubia",
    "Paracetamol",
    "QuiVive",
    "Swinco",
    "Wilma",
    "Wouter en de Draak",
    "Wouter Kuyper",
)

# Lower-cased keywords; see _classify.
WORKSHOP_NAME_CONTAINS = (
    "fundamentals",
    "basis van",
    "beginnerslessen",
    "danslessen",
    "workshop",
)
WORKSHOP_NAME_STARTS = ("socialles ", "proefles ")
WORKSHOP_DESCRIPTION_CONTAINS = (
    "dansworkshop",
    "workshopbeschrijving",
    "workshop ",
    "dans uitleg",
    "dansuitleg",
    " leren ",
    "de docent",
)

SOCIAL_NAME_CONTAINS = (
    "social dance",
    "balfolkbal",
    "avondbal",
    "bal in",
    "balfolk bal",
    "vuurbal",
)
SOCIAL_NAME_STARTS = (
    "balfolk wilhelmina",
    "fest noz",
    "folkwoods",
    "folkbal",
    "socialles ",
    "verjaardagsbal",
    "balfolk utrecht bal",
)
SOCIAL_DESCRIPTION_CONTAINS = ("bal deel",)

BOTH_NAMES = ("dennefeest", "folkbal wilhelmina")
SOCIAL_NAMES = ("balfolk café nijmegen",)


def event_name(summary: str) -> str:
    """Name without the trailing ', city', with em dashes as separators."""
    return summary.rsplit(",", 1)[0].replace(" - ", " — ")


def _classify(name: str, description: str, contains, starts, description_contains) -> bool:
    name = name.lower()
    description = description.lower()
    return (
        any(keyword in name for keyword in contains)
        or name.startswith(starts)
        or any(keyword in description for keyword in description_contains)
    )


class BalfolkNlAdapter(SourceAdapter):
    name = "balfolknl"
    feed_url = "https://www.balfolk.nl/events.ics"
    default_organisation = "balfolk.nl"
    default_timezone = "Europe/Amsterdam"
    accepts_utc = False
    bands = BANDS

    def classify_workshop(self, parts: EventParts) -> bool:
        name = event_name(parts.summary)
        return name.lower() in BOTH_NAMES or _classify(
            name,
            parts.description,
            WORKSHOP_NAME_CONTAINS,
            WORKSHOP_NAME_STARTS,
            WORKSHOP_DESCRIPTION_CONTAINS,
        )

    def classify_social(self, parts: EventParts) -> bool:
        name = event_name(parts.summary)
        return name.lower() in BOTH_NAMES + SOCIAL_NAMES or _classify(
            name,
            parts.description,
            SOCIAL_NAME_CONTAINS,
            SOCIAL_NAME_STARTS,
            SOCIAL_DESCRIPTION_CONTAINS,
        )

    def derive_styles(self, parts: EventParts) -> FrozenSet[DanceStyle]:
        return frozenset([DanceStyle.BALFOLK])

    def derive_location(self, parts: EventParts) -> Optional[Location]:
        location_parts = [part.strip() for part in parts.location.split(",")]
        if len(location_parts) == 8:
            city = location_parts[3]
        elif len(location_parts) >= 4:
            city = location_parts[2]
        else:
            logger.warning(f"Invalid location '{parts.location}' for {parts.url}")
            return None
        return "Netherlands", None, city

    def fixup(self, event: Event) -> Optional[Event]:
        raw_name = event.name.rsplit(",", 1)[0]
        name = event_name(event.name)

        # Music workshops, not dance events.
        if name.startswith("Muziekstage"):
            logger.info(f"Skipping \"{name}\" {event.links[0]}")
            return None

        details = event.details
        if details is not None:
            details = details.removeprefix(f"{raw_name}, ").strip() or None

        return replace(
            event,
            name=name,
            details=details,
            bands=event.bands if event.social else (),
        )
