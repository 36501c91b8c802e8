"""Data models for reconciliation and storage sync."""
from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class FetchWindow:
    """Range of start dates covered by one cycle's fetch of a source."""
    start: date
    end: Optional[date] = None

    def covers(self, day: date) -> bool:
        if day < self.start:
            return False
        return self.end is None or day <= self.end


@dataclass
class ReconcileStats:
    """Counts from one reconciliation."""
    added: int = 0
    updated: int = 0
    retained: int = 0
    dropped: int = 0


@dataclass
class SyncResult:
    """Result of sync operation."""
    added: int
    updated: int
    deleted: int
    errors: list[str]
