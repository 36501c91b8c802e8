"""Generic fetch, parse and normalize pipeline driven by source adapters."""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, List, Optional, Sequence

import requests

from importers.adapter import EventParts, Source, SourceAdapter, find_names
from importers.errors import (
    EventError,
    FetchError,
    InvalidLocationError,
    MissingFieldError,
    SourceError,
)
from importers.feeds import FEED_FORMATS
from model.event import Event
from processor.models import FetchWindow

logger = logging.getLogger(__name__)

USER_AGENT = "FolkDanceEvents/1.0 (event listing aggregator)"

MANDATORY_FIELDS = ("url", "summary", "description", "time", "location")


@dataclass
class ImportResult:
    """Outcome of importing one source."""
    source: str
    ok: bool = True
    events: List[Event] = field(default_factory=list)
    window: Optional[FetchWindow] = None
    errors: List[str] = field(default_factory=list)
    skipped: int = 0
    dropped: int = 0


def _describe(record: Any) -> str:
    """Short identifying text for a raw record, for log messages."""
    getter = getattr(record, "get", None)
    if getter is None:
        return repr(record)[:80]
    summary = getter("SUMMARY") or getter("name")
    url = getter("URL") or getter("plugUrl")
    return f"'{summary}' {url}"


class ImportPipeline:
    """
    Imports events from sources into canonical Event objects.

    Each source is fetched with retries and a bounded timeout. Failures to
    fetch or parse a feed skip that source; failures on a single record skip
    that record.
    """

    def __init__(
        self,
        timeout: int = 30,
        max_retries: int = 3,
        base_delay: float = 1.0,
        today: Optional[date] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Fetch attempts per feed (default: 3)
            base_delay: Initial backoff delay in seconds, doubled per retry
            today: Date the fetch windows start from (default: today)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.today = today or date.today()

    def import_all(self, sources: Sequence[Source], max_workers: int = 4) -> List[ImportResult]:
        """
        Import all sources in parallel and wait for every one to finish.

        Args:
            sources: Sources to import
            max_workers: Maximum number of sources fetched concurrently

        Returns:
            One ImportResult per source, in the order given
        """
        if not sources:
            return []

        results = []
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self.import_source, source) for source in sources]
            for source, future in zip(sources, futures):
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(
                        f"Unexpected error importing {source.name}: {e}", exc_info=True
                    )
                    results.append(ImportResult(source=source.name, ok=False, errors=[str(e)]))

        total = sum(len(result.events) for result in results)
        failed = [result.source for result in results if not result.ok]
        logger.info(
            f"Imported {total} events from {len(sources)} sources"
            + (f"; failed: {', '.join(failed)}" if failed else "")
        )
        return results

    def import_source(self, source: Source) -> ImportResult:
        """
        Import every endpoint of a source and concatenate their events.

        Args:
            source: Source to import

        Returns:
            ImportResult; on a source-level error ok is False and no events or
            window are returned
        """
        result = ImportResult(source=source.name)
        events: List[Event] = []

        try:
            with requests.Session() as session:
                session.headers["User-Agent"] = USER_AGENT
                for adapter in source.adapters:
                    events.extend(self._import_endpoint(session, adapter, result))
        except SourceError as e:
            logger.error(f"Skipping source {source.name} this cycle: {e}")
            result.ok = False
            result.errors.append(str(e))
            return result

        result.events = events
        end = None
        if source.horizon_days is not None:
            end = self.today + timedelta(days=source.horizon_days)
        result.window = FetchWindow(start=self.today, end=end)

        logger.info(
            f"Source {source.name}: {len(events)} events, "
            f"{result.skipped} skipped, {result.dropped} dropped"
        )
        return result

    def _import_endpoint(
        self, session: requests.Session, adapter: SourceAdapter, result: ImportResult
    ) -> List[Event]:
        feed = FEED_FORMATS[adapter.feed_format]
        text = self.fetch(session, adapter)
        records = feed.parse(text)
        logger.info(f"[{adapter.name}] Parsed {len(records)} records from {adapter.feed_url}")

        events = []
        for record in records:
            try:
                parts = feed.extract(record, adapter, adapter.feed_url)
                event = self.convert(parts, adapter)
            except (EventError, ValueError) as e:
                result.skipped += 1
                message = f"[{adapter.name}] Skipping {_describe(record)}: {e}"
                logger.warning(message)
                result.errors.append(message)
                continue

            if event is None:
                result.dropped += 1
                continue
            events.append(event)

        return events

    def fetch(self, session: requests.Session, adapter: SourceAdapter) -> str:
        """
        Fetch the raw feed text with retry logic.

        Args:
            session: HTTP session to use
            adapter: Adapter describing the feed

        Returns:
            Feed body as text

        Raises:
            FetchError: If all retry attempts fail
        """
        url = adapter.feed_url
        for attempt in range(self.max_retries):
            try:
                logger.info(f"Fetching {url} (attempt {attempt + 1}/{self.max_retries})")
                response = session.get(url, params=adapter.feed_params, timeout=self.timeout)
                response.raise_for_status()
                if "charset" not in response.headers.get("Content-Type", ""):
                    response.encoding = "utf-8"
                return response.text

            except requests.RequestException as e:
                # Exception text may contain the query string, which can carry a token.
                reason = type(e).__name__
                if e.response is not None:
                    reason = f"HTTP {e.response.status_code}"
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request to {url} failed (attempt {attempt + 1}/{self.max_retries}): "
                        f"{reason}. Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(f"All {self.max_retries} attempts to fetch {url} failed: {reason}")
                    raise FetchError(f"Failed to fetch {url}: {reason}") from e

        raise FetchError(f"Failed to fetch {url}: no attempts made")

    def convert(self, parts: EventParts, adapter: SourceAdapter) -> Optional[Event]:
        """
        Turn extracted parts into a canonical Event using the adapter's hooks.

        Args:
            parts: Fields extracted from one upstream record
            adapter: Adapter for the record's source

        Returns:
            Event, or None if the event has no dance style or was vetoed by
            the adapter's fixup

        Raises:
            EventError: If a mandatory field is missing or malformed
        """
        for field_name in MANDATORY_FIELDS:
            if getattr(parts, field_name) is None:
                raise MissingFieldError(field_name)

        styles = adapter.derive_styles(parts)
        if not styles:
            logger.info(f"[{adapter.name}] No dance style for '{parts.summary}' {parts.url}, dropping")
            return None

        location = adapter.derive_location(parts)
        if location is None:
            raise InvalidLocationError(f"unrecognised location {parts.location!r}")
        country, state, city = location

        text = parts.text
        event = Event(
            name=parts.summary.strip(),
            details=parts.description or None,
            links=(parts.url,),
            time=parts.time,
            country=country,
            state=state,
            city=city,
            styles=styles,
            workshop=adapter.classify_workshop(parts),
            social=adapter.classify_social(parts),
            bands=tuple(find_names(adapter.bands, text)),
            callers=tuple(find_names(adapter.callers, text)),
            price=parts.price,
            organisation=parts.organiser or adapter.default_organisation,
            cancelled=parts.cancelled,
            source=adapter.name,
        )

        fixed = adapter.fixup(event)
        if fixed is None:
            logger.info(f"[{adapter.name}] Fixup dropped '{event.name}' {parts.url}")
        return fixed
