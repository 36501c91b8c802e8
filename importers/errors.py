"""Error types raised while importing events."""


class SourceError(Exception):
    """A whole source could not be imported this cycle."""


class FetchError(SourceError):
    """The feed could not be fetched (network failure, timeout, HTTP error)."""


class FeedParseError(SourceError):
    """The feed was fetched but could not be parsed."""


class EventError(Exception):
    """A single upstream record could not be converted into an event."""


class MissingFieldError(EventError):
    """A mandatory field is absent from an upstream record."""

    def __init__(self, field_name: str):
        super().__init__(f"missing required field: {field_name}")
        self.field_name = field_name


class InvalidTimeError(EventError):
    """The start/end time of a record cannot be resolved unambiguously."""


class InvalidLocationError(EventError):
    """The location of a record does not have the expected shape."""


class InvalidFieldError(EventError):
    """A field of an upstream record has the wrong type."""

    def __init__(self, field_name: str, value: object):
        super().__init__(
            f"field {field_name} has unexpected type {type(value).__name__}"
        )
        self.field_name = field_name
