"""Configured event sources."""
from typing import List, Optional

from importers.adapter import Source
from importers.sources.balfolknl import BalfolkNlAdapter
from importers.sources.cdss import CdssAdapter
from importers.sources.dresden import DresdenAdapter, DresdenWeeklyAdapter
from importers.sources.plugevents import PlugEventsAdapter

# Days ahead covered by feeds that only publish a bounded horizon.
PLUG_EVENTS_HORIZON_DAYS = 365


def build_sources(plug_events_token: Optional[str] = None) -> List[Source]:
    """
    Build the list of sources to import each cycle.

    Args:
        plug_events_token: API token for plug.events; the source is skipped
            when not configured

    Returns:
        List of Source objects
    """
    sources = [
        Source(name="balfolknl", adapters=[BalfolkNlAdapter()]),
        Source(name="cdss", adapters=[CdssAdapter()]),
        Source(name="dresden", adapters=[DresdenAdapter(), DresdenWeeklyAdapter()]),
    ]
    if plug_events_token:
        sources.append(
            Source(
                name="plugevents",
                adapters=[PlugEventsAdapter(plug_events_token)],
                horizon_days=PLUG_EVENTS_HORIZON_DAYS,
            )
        )
    return sources
