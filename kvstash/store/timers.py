"""Per-key expiry timers.

At most one timer is outstanding per key. Re-arming cancels the previous
timer. When a timer fires its slot is popped before the callback runs, so a
concurrent ``cancel`` for the same key becomes a no-op.
"""

import asyncio
from typing import Callable


class ExpiryTimerRegistry:
    """Owns one ``loop.call_later`` handle per key."""

    def __init__(self):
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def arm(self, key: str, delay: float, on_fire: Callable[[str], None]):
        """Schedule ``on_fire(key)`` after ``delay`` seconds, replacing any existing timer."""
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._timers[key] = loop.call_later(delay, self._fire, key, on_fire)

    def cancel(self, key: str) -> bool:
        """Cancel the timer for ``key``. Returns False if none was pending."""
        handle = self._timers.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self):
        for key in list(self._timers):
            self.cancel(key)

    def has(self, key: str) -> bool:
        return key in self._timers

    def when(self, key: str) -> float | None:
        """Loop time at which the timer for ``key`` fires, or None."""
        handle = self._timers.get(key)
        return handle.when() if handle else None

    def _fire(self, key: str, on_fire: Callable[[str], None]):
        if self._timers.pop(key, None) is None:
            return
        on_fire(key)

    def __len__(self) -> int:
        return len(self._timers)
