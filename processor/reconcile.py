"""Merge freshly imported events with the previously persisted corpus."""
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Tuple

from model.event import Event, IdentityKey, event_id, identity_key
from processor.models import FetchWindow, ReconcileStats

logger = logging.getLogger(__name__)


def _index(events: Iterable[Event], label: str) -> Dict[IdentityKey, Event]:
    """Key events by identity; a later event replaces an earlier one with the same key."""
    indexed: Dict[IdentityKey, Event] = {}
    for event in events:
        key = identity_key(event)
        if key in indexed:
            logger.warning(
                f"Duplicate {label} event for {key!r}: keeping '{event.name}', "
                f"discarding '{indexed[key].name}'"
            )
        indexed[key] = event
    return indexed


def merge(old: Event, new: Event) -> Event:
    """
    Combine the stored and freshly imported versions of the same event.

    Upstream fields come from the new event. Cancellation is sticky: once an
    event has been marked cancelled, a re-fetch without a cancellation marker
    does not revert it.
    """
    if old.cancelled and not new.cancelled:
        return replace(new, cancelled=True)
    return new


def _is_stale(event: Event, windows: Mapping[str, FetchWindow]) -> bool:
    """Whether an event missing from this cycle's import was removed upstream."""
    if event.source is None:
        return False
    window = windows.get(event.source)
    if window is None:
        return False
    return window.covers(event.start_date)


def reconcile_with_stats(
    old: Iterable[Event],
    new: Iterable[Event],
    windows: Mapping[str, FetchWindow],
) -> Tuple[List[Event], ReconcileStats]:
    """
    Merge a freshly imported batch into the previously persisted corpus.

    Args:
        old: Previously persisted events
        new: Events imported this cycle
        windows: Date range covered by this cycle's fetch, per source that
            was imported successfully

    Returns:
        Tuple of (merged events sorted by start date, statistics)
    """
    old_events = _index(old, "stored")
    new_events = _index(new, "imported")
    stats = ReconcileStats()
    merged: List[Event] = []

    for key, event in new_events.items():
        previous = old_events.get(key)
        if previous is None:
            stats.added += 1
            merged.append(event)
        else:
            stats.updated += 1
            merged.append(merge(previous, event))

    for key, event in old_events.items():
        if key in new_events:
            continue
        if _is_stale(event, windows):
            stats.dropped += 1
            logger.info(f"Dropping '{event.name}' on {event.start_date}, no longer in {event.source}")
        else:
            stats.retained += 1
            merged.append(event)

    merged.sort(key=lambda event: (event.start_date, event_id(event)))
    logger.info(
        f"Reconciled {len(merged)} events: {stats.added} added, {stats.updated} updated, "
        f"{stats.retained} retained, {stats.dropped} dropped"
    )
    return merged, stats


def reconcile(
    old: Iterable[Event],
    new: Iterable[Event],
    windows: Mapping[str, FetchWindow],
) -> List[Event]:
    """Merge a freshly imported batch into the previously persisted corpus."""
    merged, _ = reconcile_with_stats(old, new, windows)
    return merged
