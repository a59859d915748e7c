"""Per-provider in-memory record snapshot with a staleness threshold."""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from dns_reconciler.records import DNSRecord, normalize_name

logger = logging.getLogger(__name__)


class RecordCache:
    """Snapshot of one provider's records.

    ``refresh()`` replaces the whole snapshot; local mutations are applied in
    place so the rest of a reconciliation batch sees them without another
    backend call.
    """

    def __init__(
        self,
        loader: Callable[[], List[DNSRecord]],
        staleness_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self.staleness_seconds = staleness_seconds
        self._clock = clock
        self._records: List[DNSRecord] = []
        self.last_updated: Optional[float] = None

    def __len__(self) -> int:
        return len(self._records)

    def is_stale(self) -> bool:
        if self.last_updated is None:
            return True
        return self._clock() - self.last_updated >= self.staleness_seconds

    def refresh(self) -> List[DNSRecord]:
        """Reload from the backend. On failure the old snapshot is kept."""
        records = list(self._loader())
        self._records = records
        self.last_updated = self._clock()
        logger.debug(f"Record cache refreshed: {len(records)} record(s)")
        return list(records)

    def invalidate(self) -> None:
        self.last_updated = None

    def snapshot(self) -> List[DNSRecord]:
        """Current records, without ever touching the backend."""
        return list(self._records)

    def get(self, type: Optional[str] = None, name: Optional[str] = None) -> List[DNSRecord]:
        if self.is_stale() or not self._records:
            self.refresh()

        wanted_type = type.upper() if type else None
        wanted_name = normalize_name(name) if name else None
        return [
            r
            for r in self._records
            if (wanted_type is None or r.type == wanted_type)
            and (wanted_name is None or normalize_name(r.name) == wanted_name)
        ]

    def upsert(self, record: DNSRecord) -> None:
        """Insert ``record``, replacing any cached record with the same id or identity."""
        self._records = [
            r for r in self._records if not _same_record(r, record)
        ]
        self._records.append(record)

    def remove(self, record: DNSRecord) -> bool:
        before = len(self._records)
        self._records = [r for r in self._records if not _same_record(r, record)]
        return len(self._records) != before


def _same_record(a: DNSRecord, b: DNSRecord) -> bool:
    if a.id and b.id:
        return a.id == b.id
    return a.key == b.key and a.content == b.content
