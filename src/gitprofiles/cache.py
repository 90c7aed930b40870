"""Short-lived per-root memoization of resolved workspace status."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .models import WorkspaceStatus

DEFAULT_TTL_SECONDS = 1.0


@dataclass(frozen=True)
class CacheEntry:
    status: WorkspaceStatus
    stored_at: float


class StatusCache:
    """Map of repository root to the last status computed for it.

    Entries expire ``ttl_seconds`` after they were stored. The cache never
    observes writes on its own; whoever changes identity config or a
    selection must call ``invalidate`` for the affected root.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Path, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, root: Path) -> WorkspaceStatus | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(root)
            if entry is None:
                return None
            if now - entry.stored_at >= self.ttl_seconds:
                del self._entries[root]
                return None
            return entry.status

    def put(self, root: Path, status: WorkspaceStatus) -> None:
        entry = CacheEntry(status=status, stored_at=self._clock())
        with self._lock:
            self._entries[root] = entry

    def invalidate(self, root: Path | None = None) -> None:
        """Drop the entry for ``root``, or every entry when ``root`` is omitted."""
        with self._lock:
            if root is None:
                self._entries.clear()
            else:
                self._entries.pop(root, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
