"""Conversion between Event objects and plain structured records."""
from datetime import date, datetime
from typing import Any, Dict

from model.event import DanceStyle, DateOnly, DateTime, Event


def event_to_dict(event: Event) -> Dict[str, Any]:
    """
    Convert an Event to a plain dictionary of strings, lists and booleans.

    Optional fields are only included when present, and empty lists are
    omitted.

    Args:
        event: Event to convert

    Returns:
        Dictionary suitable for YAML/JSON dumping or DynamoDB storage
    """
    record: Dict[str, Any] = {"name": event.name}
    if event.details is not None:
        record["details"] = event.details
    record["links"] = list(event.links)
    if isinstance(event.time, DateOnly):
        record["start_date"] = event.time.start_date.isoformat()
        record["end_date"] = event.time.end_date.isoformat()
    else:
        record["start_time"] = event.time.start.isoformat()
        record["end_time"] = event.time.end.isoformat()
    record["country"] = event.country
    if event.state is not None:
        record["state"] = event.state
    record["city"] = event.city
    record["styles"] = sorted(style.value for style in event.styles)
    record["workshop"] = event.workshop
    record["social"] = event.social
    if event.bands:
        record["bands"] = list(event.bands)
    if event.callers:
        record["callers"] = list(event.callers)
    if event.price is not None:
        record["price"] = event.price
    if event.organisation is not None:
        record["organisation"] = event.organisation
    if event.cancelled:
        record["cancelled"] = True
    if event.source is not None:
        record["source"] = event.source
    return record


def event_from_dict(record: Dict[str, Any]) -> Event:
    """
    Build an Event from a dictionary produced by event_to_dict.

    Raises:
        KeyError: If a required field is missing
        ValueError: If a field has an invalid value
    """
    if "start_date" in record:
        time = DateOnly(
            start_date=date.fromisoformat(record["start_date"]),
            end_date=date.fromisoformat(record["end_date"]),
        )
    else:
        time = DateTime(
            start=datetime.fromisoformat(record["start_time"]),
            end=datetime.fromisoformat(record["end_time"]),
        )

    return Event(
        name=record["name"],
        details=record.get("details"),
        links=tuple(record.get("links", ())),
        time=time,
        country=record["country"],
        state=record.get("state"),
        city=record["city"],
        styles=frozenset(DanceStyle(style) for style in record.get("styles", ())),
        workshop=bool(record.get("workshop", False)),
        social=bool(record.get("social", False)),
        bands=tuple(record.get("bands", ())),
        callers=tuple(record.get("callers", ())),
        price=record.get("price"),
        organisation=record.get("organisation"),
        cancelled=bool(record.get("cancelled", False)),
        source=record.get("source"),
    )
