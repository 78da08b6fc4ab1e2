"""Hot-read buffer for recently retrieved values.

Holds decoded values for a short window so repeated reads skip the disk and
the codec. Every read refreshes the entry. A background sweep, running every
``2 * window`` seconds, drops entries that have not been touched within the
window. The buffer is only an accelerator: losing it never loses data.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

from kvstash.shared.logger import get_cache_logger

logger = get_cache_logger("buffer")


@dataclass
class BufferEntry:
    value: Any
    last_accessed: float


class HotReadBuffer:
    """Time-windowed, access-refreshing map of key -> decoded value."""

    def __init__(self, window: float = 3.0):
        self._window = window
        self._storage: dict[str, BufferEntry] = {}
        self._sweep_task: asyncio.Task | None = None

    @property
    def window(self) -> float:
        return self._window

    def put(self, key: str, value: Any):
        self._storage[key] = BufferEntry(value=value, last_accessed=time.time())

    def get(self, key: str) -> Any | None:
        """Return the buffered value and refresh its access time."""
        entry = self._storage.get(key)
        if entry is None:
            return None
        entry.last_accessed = time.time()
        return entry.value

    def has(self, key: str) -> bool:
        return key in self._storage

    def evict(self, key: str) -> bool:
        return self._storage.pop(key, None) is not None

    def cleanup(self, now: float | None = None) -> int:
        """Drop entries idle for longer than the window. Returns count removed."""
        now = now if now is not None else time.time()
        stale = [k for k, e in self._storage.items() if now - e.last_accessed > self._window]
        for key in stale:
            del self._storage[key]
        return len(stale)

    def start(self):
        """Start the background sweep on the running loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def shutdown(self):
        """Stop the background sweep. Safe to call more than once."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sweep_loop(self):
        while True:
            await asyncio.sleep(self._window * 2)
            try:
                removed = self.cleanup()
                if removed:
                    logger.debug(f"Swept {removed} idle buffer entries")
            except Exception as e:
                logger.error(f"Buffer sweep failed: {e}")

    def __len__(self) -> int:
        return len(self._storage)
