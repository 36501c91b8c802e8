"""Canonical event model shared by all importers."""
import hashlib
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import FrozenSet, Iterable, List, NamedTuple, Optional, Tuple, Union


class DanceStyle(str, Enum):
    BALFOLK = "balfolk"
    CAJUN = "cajun"
    CONTRA = "contra"
    ENGLISH_COUNTRY_DANCE = "ecd"
    IRISH = "irish"
    PLAYFORD = "playford"
    POLSKA = "polska"
    SCANDINAVIAN = "scandinavian"
    SCOTTISH = "scottish"

    @property
    def label(self) -> str:
        return _STYLE_LABELS[self]


_STYLE_LABELS = {
    DanceStyle.BALFOLK: "Balfolk",
    DanceStyle.CAJUN: "Cajun",
    DanceStyle.CONTRA: "Contra",
    DanceStyle.ENGLISH_COUNTRY_DANCE: "English Country Dance",
    DanceStyle.IRISH: "Irish Set Dance",
    DanceStyle.PLAYFORD: "Playford",
    DanceStyle.POLSKA: "Polska",
    DanceStyle.SCANDINAVIAN: "Scandinavian",
    DanceStyle.SCOTTISH: "Scottish Country Dance",
}


@dataclass(frozen=True)
class DateOnly:
    """Whole-day event time; both dates are inclusive."""
    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError(
                f"End date {self.end_date} is before start date {self.start_date}"
            )


@dataclass(frozen=True)
class DateTime:
    """Timestamped event time with fixed UTC offsets."""
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("Event timestamps must carry a UTC offset")
        if self.end < self.start:
            raise ValueError(f"End time {self.end} is before start time {self.start}")


EventTime = Union[DateOnly, DateTime]


@dataclass(frozen=True)
class Event:
    """A single published dance event."""
    name: str
    links: Tuple[str, ...]
    time: EventTime
    country: str
    city: str
    styles: FrozenSet[DanceStyle]
    details: Optional[str] = None
    state: Optional[str] = None
    workshop: bool = False
    social: bool = False
    bands: Tuple[str, ...] = ()
    callers: Tuple[str, ...] = ()
    price: Optional[str] = None
    organisation: Optional[str] = None
    cancelled: bool = False
    source: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Event name must not be empty")
        # Accept any iterable from callers but store immutable containers.
        object.__setattr__(self, "links", tuple(self.links))
        object.__setattr__(self, "styles", frozenset(self.styles))
        object.__setattr__(self, "bands", tuple(self.bands))
        object.__setattr__(self, "callers", tuple(self.callers))

    @property
    def start_date(self) -> date:
        if isinstance(self.time, DateOnly):
            return self.time.start_date
        return self.time.start.date()

    @property
    def end_date(self) -> date:
        if isinstance(self.time, DateOnly):
            return self.time.end_date
        return self.time.end.date()

    @property
    def multiday(self) -> bool:
        return self.end_date > self.start_date


@dataclass(frozen=True)
class Filters:
    """Constraints for selecting events; None means no constraint."""
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    style: Optional[DanceStyle] = None
    organisation: Optional[str] = None
    band: Optional[str] = None
    caller: Optional[str] = None
    name: Optional[str] = None
    workshop: Optional[bool] = None
    social: Optional[bool] = None
    cancelled: Optional[bool] = None


class Month(NamedTuple):
    """Events starting in one calendar month."""
    start: date
    events: List[Event]

    @property
    def name(self) -> str:
        return self.start.strftime("%B %Y")


IdentityKey = Union[str, Tuple[Optional[str], str, str, date]]


def _contains(haystack: str, needle: str) -> bool:
    return needle.lower() in haystack.lower()


def matches(event: Event, filters: Filters) -> bool:
    """
    Check whether an event satisfies every constraint present in the filters.

    Category fields (country, state, style, organisation) compare exactly;
    free-text fields (city, band, caller, name) use case-insensitive
    substring containment.

    Args:
        event: Event to check
        filters: Filters to apply

    Returns:
        True if the event matches all present constraints
    """
    if filters.country is not None and event.country != filters.country:
        return False
    if filters.state is not None and event.state != filters.state:
        return False
    if filters.style is not None and filters.style not in event.styles:
        return False
    if filters.organisation is not None and event.organisation != filters.organisation:
        return False
    if filters.city is not None and not _contains(event.city, filters.city):
        return False
    if filters.name is not None and not _contains(event.name, filters.name):
        return False
    if filters.band is not None and not any(
        _contains(band, filters.band) for band in event.bands
    ):
        return False
    if filters.caller is not None and not any(
        _contains(caller, filters.caller) for caller in event.callers
    ):
        return False
    if filters.workshop is not None and event.workshop != filters.workshop:
        return False
    if filters.social is not None and event.social != filters.social:
        return False
    if filters.cancelled is not None and event.cancelled != filters.cancelled:
        return False
    return True


def sort_by_start(events: Iterable[Event]) -> List[Event]:
    """Stable sort by ascending start date."""
    return sorted(events, key=lambda event: event.start_date)


def group_by_month(events: Iterable[Event]) -> List[Month]:
    """
    Sort events by start date and group them by starting month.

    Args:
        events: Events in arbitrary order

    Returns:
        List of Month groups in chronological order, none of them empty
    """
    months: List[Month] = []
    for event in sort_by_start(events):
        start = event.start_date
        if months and (months[-1].start.year, months[-1].start.month) == (
            start.year,
            start.month,
        ):
            months[-1].events.append(event)
        else:
            months.append(Month(start=start.replace(day=1), events=[event]))
    return months


def identity_key(event: Event) -> IdentityKey:
    """
    Key used to recognise the same real-world event across fetch cycles.

    The primary link is a stable permalink for every imported event, so it is
    used whenever present. Manually curated entries may have no links at all.
    """
    if event.links:
        return event.links[0]
    return (event.organisation, event.name, event.city, event.start_date)


def event_id(event: Event) -> str:
    """
    Generate a stable identifier from the event's identity key.

    Returns:
        SHA256 hex digest of the identity key
    """
    key = identity_key(event)
    if isinstance(key, tuple):
        composite = "|".join("" if part is None else str(part) for part in key)
    else:
        composite = key
    return hashlib.sha256(composite.encode("utf-8")).hexdigest()
