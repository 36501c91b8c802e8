"""In-memory event corpus served to readers between aggregation cycles."""
import logging
from typing import Iterable, List, Optional, Tuple

from model.event import Event, Filters, Month, group_by_month, matches, sort_by_start

logger = logging.getLogger(__name__)


class EventCorpus:
    """
    Immutable snapshot of the published events.

    The snapshot is replaced wholesale by assigning a new tuple, so readers
    always see either the old or the new corpus and never wait for a writer.
    """

    def __init__(self, events: Iterable[Event] = ()):
        self._events: Tuple[Event, ...] = tuple(events)

    @property
    def events(self) -> Tuple[Event, ...]:
        return self._events

    def __len__(self) -> int:
        return len(self._events)

    def replace(self, events: Iterable[Event]) -> None:
        """Swap in a new snapshot."""
        snapshot = tuple(events)
        self._events = snapshot
        logger.info(f"Corpus replaced with {len(snapshot)} events")

    def matching(self, filters: Filters) -> List[Event]:
        """
        Select the events satisfying the filters.

        Args:
            filters: Constraints to apply

        Returns:
            Matching events in ascending order of start date
        """
        snapshot = self._events
        return sort_by_start(event for event in snapshot if matches(event, filters))

    @staticmethod
    def group_by_month(events: Iterable[Event]) -> List[Month]:
        return group_by_month(events)

    def countries(self) -> List[str]:
        return sorted({event.country for event in self._events})

    def cities(self, country: Optional[str] = None) -> List[str]:
        return sorted({
            event.city
            for event in self._events
            if country is None or event.country == country
        })

    def bands(self) -> List[str]:
        return sorted({band for event in self._events for band in event.bands})

    def callers(self) -> List[str]:
        return sorted({caller for event in self._events for caller in event.callers})

    def organisations(self) -> List[str]:
        return sorted({
            event.organisation for event in self._events if event.organisation is not None
        })
