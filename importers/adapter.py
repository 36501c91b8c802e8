"""Per-source adapter interface used by the import pipeline."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from model.event import DanceStyle, Event, EventTime

# (country, state, city)
Location = Tuple[str, Optional[str], str]


@dataclass(frozen=True)
class EventParts:
    """Fields extracted from one upstream record before adapter hooks run."""
    url: Optional[str]
    summary: Optional[str]
    description: Optional[str]
    location: Optional[str]
    time: Optional[EventTime]
    organiser: Optional[str] = None
    categories: Tuple[str, ...] = ()
    price: Optional[str] = None
    cancelled: bool = False
    feed_url: Optional[str] = None

    @property
    def text(self) -> str:
        """Lower-cased summary and description for keyword matching."""
        return f"{self.summary or ''}\n{self.description or ''}".lower()


def find_names(roster: Sequence[str], text: str) -> List[str]:
    """
    Find which names from a roster are mentioned in the given text.

    Args:
        roster: Known band or caller names
        text: Text to search, compared case-insensitively

    Returns:
        Matching names in roster order
    """
    text = text.lower()
    return [name for name in roster if name.lower() in text]


class SourceAdapter(ABC):
    """
    Configuration and classification hooks for one upstream feed.

    Subclasses set the class attributes describing the feed and implement the
    classification hooks. Hooks must be pure functions of their arguments.
    """

    name: str = ""
    feed_url: str = ""
    feed_format: str = "icalendar"
    default_organisation: Optional[str] = None
    default_timezone: Optional[str] = None
    # Whether UTC-designated times are allowed alongside default_timezone.
    accepts_utc: bool = True
    bands: Tuple[str, ...] = ()
    callers: Tuple[str, ...] = ()

    @property
    def feed_params(self) -> Dict[str, str]:
        """Query parameters sent with the feed request."""
        return {}

    @abstractmethod
    def classify_workshop(self, parts: EventParts) -> bool:
        ...

    @abstractmethod
    def classify_social(self, parts: EventParts) -> bool:
        ...

    @abstractmethod
    def derive_styles(self, parts: EventParts) -> FrozenSet[DanceStyle]:
        """Dance styles of the event; an empty set means it is not publishable."""
        ...

    @abstractmethod
    def derive_location(self, parts: EventParts) -> Optional[Location]:
        """Country, state and city of the event, or None if not recognisable."""
        ...

    def fixup(self, event: Event) -> Optional[Event]:
        """Final adjustment of the assembled event; return None to drop it."""
        return event


@dataclass
class Source:
    """A named source made up of one or more feed endpoints."""
    name: str
    adapters: List[SourceAdapter] = field(default_factory=list)
    horizon_days: Optional[int] = None
