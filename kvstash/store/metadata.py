"""Authoritative record of live cache entries, mirrored to ``metadata.json``.

The in-memory map is updated immediately on every mutation. The on-disk
mirror is written either after a quiet period (``schedule_persist``, which
coalesces bursts of writes) or right away (``flush``). A failed write is
reported but never rolls back memory; the next successful write reconciles.
"""

import asyncio
import json
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from kvstash.shared.errors import CacheError, MetadataCorruptError, PersistError
from kvstash.shared.logger import get_cache_logger
from kvstash.store.keywords import KeywordIndex
from kvstash.store.values import ValueType

METADATA_FILE = "metadata.json"

logger = get_cache_logger("metadata")


@dataclass
class CacheEntry:
    key: str
    path: str
    size: int
    value_type: ValueType
    compressed: bool = False
    expire: float = 0
    search: list[str] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def remaining(self, now: float | None = None) -> float:
        """Seconds until expiry, or 0 if the entry never expires."""
        if self.expire <= 0:
            return 0
        now = now if now is not None else time.time()
        return self.expire - (now - self.updated_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "path": self.path,
            "size": self.size,
            "type": self.value_type.value,
            "compressed": self.compressed,
            "expire": self.expire,
            "search": list(self.search),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        return cls(
            key=data["key"],
            path=data["path"],
            size=int(data["size"]),
            value_type=ValueType(data["type"]),
            compressed=bool(data.get("compressed", False)),
            expire=float(data.get("expire", 0)),
            search=list(data.get("search", [])),
            created_at=float(data["created_at"]),
            updated_at=float(data["updated_at"]),
        )


def _atomic_write(path: Path, text: str):
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".metadata_", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class MetadataStore:
    """In-memory entry map plus its debounced side-car mirror."""

    def __init__(
        self,
        root: str | Path,
        keywords: KeywordIndex,
        on_error: Callable[[CacheError], None],
        auto_compress: bool = False,
        buffer_window: float = 0,
        persist_delay: float = 0.5,
    ):
        self._root = Path(root)
        self._keywords = keywords
        self._on_error = on_error
        self._auto_compress = auto_compress
        self._buffer_window = buffer_window
        self._persist_delay = persist_delay
        self._entries: dict[str, CacheEntry] = {}
        self._created_at = time.time()
        self._dirty = False
        self._persist_handle: asyncio.TimerHandle | None = None
        self._persist_task: asyncio.Task | None = None
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._root / METADATA_FILE

    @property
    def dirty(self) -> bool:
        return self._dirty

    def upsert(self, key: str, entry: CacheEntry):
        self._entries[key] = entry

    def read(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def remove(self, key: str) -> CacheEntry | None:
        return self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._entries)

    def entries(self) -> list[CacheEntry]:
        return list(self._entries.values())

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> dict[str, Any]:
        return {
            "data": {k: e.to_dict() for k, e in self._entries.items()},
            "created_at": self._created_at,
            "updated_at": time.time(),
            "auto_compress": self._auto_compress,
            "buffer_window": self._buffer_window,
            "path": str(self._root),
            "keywords": self._keywords.to_dict(),
        }

    def schedule_persist(self):
        """Mark dirty and (re)start the quiet-period timer."""
        self._dirty = True
        if self._persist_handle is not None:
            self._persist_handle.cancel()
        loop = asyncio.get_running_loop()
        self._persist_handle = loop.call_later(self._persist_delay, self._start_background_flush)

    def _start_background_flush(self):
        self._persist_handle = None
        self._persist_task = asyncio.create_task(self._background_flush())

    async def _background_flush(self):
        try:
            await self.flush()
        except CacheError as e:
            logger.error(f"Debounced metadata persist failed: {e}")

    async def flush(self) -> bool:
        """Write the side-car now, cancelling any pending debounce.

        Returns True on success. Failures go to the error sink.
        """
        if self._persist_handle is not None:
            self._persist_handle.cancel()
            self._persist_handle = None

        async with self._write_lock:
            self._dirty = False
            text = json.dumps(self.snapshot())
            try:
                await asyncio.to_thread(_atomic_write, self.path, text)
            except OSError as e:
                self._dirty = True
                self._on_error(PersistError(f"Failed to write metadata: {e}"))
                return False
        logger.debug("Flushed metadata", extra={"cache_data": {"entries": len(self._entries)}})
        return True

    async def close(self):
        """Drain pending persistence and write a final snapshot."""
        task, self._persist_task = self._persist_task, None
        if task is not None and not task.done():
            await task
        await self.flush()

    async def load(self) -> list[CacheEntry]:
        """Load the side-car if present and rebuild the keyword index.

        Raises:
            MetadataCorruptError: If the file exists but cannot be parsed.
        """
        if not self.path.exists():
            return []

        try:
            raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            payload = json.loads(raw)
            entries = {k: CacheEntry.from_dict(v) for k, v in payload.get("data", {}).items()}
            keywords = payload.get("keywords", {})
            created_at = float(payload.get("created_at", self._created_at))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise MetadataCorruptError(f"Corrupt metadata file {self.path}: {e}") from e

        self._entries = entries
        self._created_at = created_at
        self._keywords.load(
            {kw: [k for k in keys if k in entries] for kw, keys in keywords.items()}
        )
        logger.debug(
            f"Loaded {len(entries)} entries from metadata",
            extra={"cache_data": {"entries": len(entries), "keywords": len(self._keywords)}},
        )
        return self.entries()
