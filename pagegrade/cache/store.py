"""In-memory pipeline result cache."""

from __future__ import annotations

from collections import OrderedDict
import logging
from typing import TYPE_CHECKING

from .fingerprint import Fingerprint

if TYPE_CHECKING:
    from ..pipeline.types import PipelineResult

log = logging.getLogger(__name__)


class ResultCache:
    """Fingerprint-keyed store with least-recently-inserted eviction.

    Unbounded when ``max_entries`` is None. A repeated ``put`` for one key
    overwrites the stored result and counts as a fresh insertion. A ``put``
    drops every entry from an older time bucket.
    """

    def __init__(self, max_entries: int | None = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be positive: {max_entries}")
        self.max_entries = max_entries
        self._entries: OrderedDict[Fingerprint, PipelineResult] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, fingerprint: Fingerprint) -> PipelineResult | None:
        result = self._entries.get(fingerprint)
        if result is None:
            self.misses += 1
            return None
        self.hits += 1
        return result

    def put(self, fingerprint: Fingerprint, result: PipelineResult) -> None:
        # entries from earlier time buckets can never be looked up again
        stale = [key for key in self._entries if key.bucket < fingerprint.bucket]
        for key in stale:
            del self._entries[key]
        if stale:
            log.debug(f"Dropped {len(stale)} entries older than bucket {fingerprint.bucket}")
        self._entries.pop(fingerprint, None)
        self._entries[fingerprint] = result
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                log.debug(f"Evicted cache entry {evicted.key}")

    def __contains__(self, fingerprint: Fingerprint) -> bool:
        return fingerprint in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        lookups = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / lookups, 4) if lookups else 0.0,
        }
