"""Shared fixtures for tests."""
from datetime import date

import pytest

from model.event import DanceStyle, DateOnly, Event


@pytest.fixture
def event_factory():
    """Return a function creating events with sensible defaults."""
    def make(**kwargs) -> Event:
        fields = dict(
            name="Balfolk Bal",
            links=("https://example.com/bal",),
            time=DateOnly(date(2024, 6, 1), date(2024, 6, 1)),
            country="Netherlands",
            city="Utrecht",
            styles=frozenset([DanceStyle.BALFOLK]),
            social=True,
            source="balfolknl",
        )
        fields.update(kwargs)
        return Event(**fields)

    return make
