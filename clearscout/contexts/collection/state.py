"""
Run-scoped collection state shared by every strategy.

Holds the identity keys already persisted and the saved count compared against
the quota. ``save`` is the only mutation point: it re-checks the quota and the
identity set right before writing, so a decision made before a batch of
concurrent fetches can never overshoot the quota.
"""

import threading
from typing import Optional, Set

from loguru import logger

from clearscout.contexts.collection.schema import JobRecord


class CollectionState:
    def __init__(self, results_wanted: int, seen: Optional[Set[str]] = None):
        if results_wanted < 0:
            raise ValueError("results_wanted must be non-negative")
        self.results_wanted = results_wanted
        self.seen: Set[str] = set(seen or ())
        self.saved = 0
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int:
        return max(self.results_wanted - self.saved, 0)

    @property
    def quota_met(self) -> bool:
        return self.saved >= self.results_wanted

    def is_seen(self, record: JobRecord) -> bool:
        key = record.identity_key
        return key is not None and key in self.seen

    def save(self, record: JobRecord, sink) -> bool:
        """
        Persist record through sink unless the quota is met or its identity was already saved.

        Returns:
            True if the record was written
        """
        record = record.normalized()
        key = record.identity_key
        if key is None:
            logger.debug(f"Skipping record without url or id: {record.title!r}")
            return False

        with self._lock:
            if self.quota_met or key in self.seen:
                return False
            sink.write(record)
            self.seen.add(key)
            self.saved += 1
            saved = self.saved

        logger.info(f"Saved job #{saved} [{record.source_strategy.value}]: {record.title or '(no title)'}")
        return True
