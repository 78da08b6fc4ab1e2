"""File-backed key/value cache.

``FileCache`` keeps four pieces of state consistent: the metadata store
(source of truth), the keyword index, the hot-read buffer and the per-key
expiry timers. Values live one-per-file under the cache folder; the
metadata side-car records how to read them back.

Usage::

    async with FileCache(CacheConfig(folder="./cache")) as cache:
        await cache.set("user:1", {"name": "Jo"}, search=["vip"], expire=60)
        await cache.get("user:1")
        cache.search(["vip"])
"""

import asyncio
import time
from dataclasses import replace
from typing import Any, Callable, Iterable

from kvstash.shared.bus import create_bus
from kvstash.shared.codec import get_codec
from kvstash.shared.config import CacheConfig, load_cache_config
from kvstash.shared.errors import (
    CacheError,
    CodecError,
    ContentInvalidError,
    IOFailureError,
    NotFoundError,
    SizeExceededError,
)
from kvstash.shared.logger import get_cache_logger
from kvstash.store.buffer import HotReadBuffer
from kvstash.store.files import DeletionWorker, FileStore, storage_name
from kvstash.store.keywords import KeywordIndex
from kvstash.store.locks import KeyedLock
from kvstash.store.metadata import CacheEntry, MetadataStore
from kvstash.store.timers import ExpiryTimerRegistry
from kvstash.store.values import decode_value, encode_value

# Floor for timers re-armed at startup for entries that are already past due
MIN_RESTORE_DELAY = 0.001


class FileCache:
    """Async file-based cache with compression, expiry and keyword search.

    Call ``setup()`` (or use ``async with``) before any other operation.
    All same-key operations are serialized; different keys interleave freely.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        bus=None,
        files: FileStore | None = None,
        **overrides: Any,
    ):
        config = config or CacheConfig()
        if overrides:
            config = replace(config, **overrides)
        self._config = config
        self.logger = get_cache_logger("cache")

        self._codec = get_codec(config.compression)
        self._files = files or FileStore(config.folder)
        self._worker = DeletionWorker(self._files)
        self._keywords = KeywordIndex()
        self._metadata = MetadataStore(
            config.folder,
            self._keywords,
            on_error=self._report,
            auto_compress=config.auto_compress,
            buffer_window=config.buffer_window,
            persist_delay=config.persist_delay,
        )
        self._buffer = HotReadBuffer(config.buffer_window) if config.buffer_window > 0 else None
        self._timers = ExpiryTimerRegistry()
        self._locks = KeyedLock()
        self._bus = bus or create_bus(config.redis_url)
        self._expiring: set[asyncio.Task] = set()
        self._ready = False
        self._closed = False

    @classmethod
    def from_config(cls, config_path: str, **overrides: Any) -> "FileCache":
        """Build a cache from a JSON config file."""
        return cls(load_cache_config(config_path), **overrides)

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def buffer(self) -> HotReadBuffer | None:
        return self._buffer

    @property
    def timers(self) -> ExpiryTimerRegistry:
        return self._timers

    @property
    def keywords(self) -> KeywordIndex:
        return self._keywords

    @property
    def metadata(self) -> MetadataStore:
        return self._metadata

    async def __aenter__(self) -> "FileCache":
        await self.setup()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def setup(self):
        """Create the cache folder, load the side-car and re-arm pending expiries.

        Raises:
            MetadataCorruptError: If an existing side-car cannot be parsed.
        """
        await self._bus.connect()
        try:
            await self._files.ensure_root()
        except OSError as e:
            self._report(IOFailureError(f"Cannot create cache folder {self._files.root}: {e}"))
            return
        self._log(f"Initialized folder: {self._files.root}")

        for entry in await self._metadata.load():
            if entry.expire > 0:
                delay = max(entry.remaining(), MIN_RESTORE_DELAY)
                self._timers.arm(entry.key, delay, self._on_expire)

        if self._buffer is not None:
            self._buffer.start()
        self._ready = True
        await self._metadata.flush()

    async def close(self):
        """Stop background work and write a final metadata snapshot."""
        if self._closed:
            return
        self._closed = True
        if self._buffer is not None:
            await self._buffer.shutdown()
        self._timers.cancel_all()
        if self._expiring:
            await asyncio.gather(*self._expiring, return_exceptions=True)
        await self._worker.shutdown()
        if self._ready:
            await self._metadata.close()
        await self._bus.disconnect()
        self._log("Cache closed")

    async def flush(self) -> bool:
        """Persist metadata immediately."""
        return await self._metadata.flush()

    # ------------------------------------------------------------------
    # Cache operations
    # ------------------------------------------------------------------

    async def set(
        self,
        key: str,
        content: Any,
        compress: bool | None = None,
        expire: float | None = None,
        search: Iterable[str] | str | None = None,
    ):
        """Store ``content`` under ``key``.

        Args:
            key: Cache key.
            content: A str, number, or JSON-serializable object.
            compress: Compress this value. The configured ``auto_compress`` also applies.
            expire: Seconds until the entry is deleted. Falsy uses the configured default;
                an effective 0 means never, and clears any pending expiry.
            search: Keywords to tag the entry with, replacing previous tags.
        """
        self._require_ready()
        try:
            text, value_type = encode_value(content)
        except ContentInvalidError as err:
            err.key = key
            self._report(err)
            return

        data = text.encode("utf-8")
        size = len(data)
        if 0 < self._config.max_size < size:
            self._report(SizeExceededError(
                f"Content size {size} exceeds max_size {self._config.max_size} at key: {key}",
                key=key,
            ))
            if self._config.strict_max_size:
                return

        compressed = bool(compress) or self._config.auto_compress
        expire = expire or self._config.expire
        if isinstance(search, str):
            search = [search]
        tags = list(dict.fromkeys(search or []))
        name = storage_name(key)

        async with self._locks.hold(key):
            try:
                if compressed:
                    data = await asyncio.to_thread(self._codec.compress, data)
                await self._files.write(name, data)
            except CodecError as err:
                err.key = key
                self._report(err)
                return
            except OSError as e:
                self._report(IOFailureError(f"Failed to write cache for {key}: {e}", key=key))
                return
            self._log(f"Saved cache: {key}")

            now = time.time()
            previous = self._metadata.read(key)
            self._metadata.upsert(key, CacheEntry(
                key=key,
                path=name,
                size=size,
                value_type=value_type,
                compressed=compressed,
                expire=expire,
                search=tags,
                created_at=previous.created_at if previous else now,
                updated_at=now,
            ))
            self._keywords.remove_key(key)
            for tag in tags:
                self._keywords.add_tag(tag, key)
            if self._buffer is not None:
                self._buffer.evict(key)
            self._metadata.schedule_persist()

            if expire > 0:
                self._timers.arm(key, expire, self._on_expire)
            elif self._timers.cancel(key):
                self._log(f"Cleared expiry for key: {key}")

    async def get(self, key: str) -> Any:
        """Return the value stored under ``key``.

        A missing key is reported as ``NotFoundError``; if the error handler
        does not raise, ``None`` is returned.
        """
        self._require_ready()
        async with self._locks.hold(key):
            if self._buffer is not None and self._buffer.has(key):
                return self._buffer.get(key)

            entry = self._metadata.read(key)
            if entry is None:
                self._report(NotFoundError(f"Key does not exist: {key}", key=key))
                return None

            try:
                data = await self._files.read(entry.path)
                if entry.compressed:
                    data = await asyncio.to_thread(self._codec.decompress, data)
                value = decode_value(data.decode("utf-8"), entry.value_type)
            except CodecError as err:
                err.key = key
                self._report(err)
                return None
            except OSError as e:
                self._report(IOFailureError(f"Failed to read cache for {key}: {e}", key=key))
                return None
            except ValueError as e:
                self._report(CodecError(f"Stored value for {key} is corrupt: {e}", key=key))
                return None

            # expiry does not take the key lock; the entry may have gone mid-read
            if self._metadata.read(key) is not entry:
                self._report(NotFoundError(f"Key does not exist: {key}", key=key))
                return None

            if self._buffer is not None:
                self._buffer.put(key, value)
            return value

    async def delete(self, key: str):
        """Remove ``key`` and its file. A missing key is logged, not reported."""
        self._require_ready()
        async with self._locks.hold(key):
            entry = self._metadata.read(key)
            if entry is None:
                self._log(f"Key {key} not found for deletion.")
                return

            self._timers.cancel(key)
            failure = None
            try:
                await self._files.remove(entry.path)
                self._log(f"Deleted cache: {key}")
            except OSError as e:
                failure = IOFailureError(f"Error deleting cache at {entry.path}: {e}", key=key)

            self._forget(key)
            await self._metadata.flush()
            if failure is not None:
                self._report(failure)

    def exist(self, key: str) -> bool:
        return key in self._metadata

    def search(self, keywords: Iterable[str] | str, logic: str = "OR") -> list[str]:
        """Keys tagged with ``keywords``; ``logic`` is "AND" or "OR"."""
        if isinstance(keywords, str):
            keywords = [keywords]
        return self._keywords.search(list(keywords), logic)

    async def publish(self, channel: str, message: Any):
        await self._bus.publish(channel, message)

    async def subscribe(self, channel: str, listener: Callable):
        """Register ``listener(channel, envelope)`` for messages on ``channel``."""
        await self._bus.subscribe(channel, listener)

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def _on_expire(self, key: str):
        entry = self._metadata.read(key)
        if entry is None:
            return
        self._forget(key)
        self._metadata.schedule_persist()
        self._log(f"Expired key: {key}")

        task = asyncio.create_task(self._remove_expired_file(key, entry))
        self._expiring.add(task)
        task.add_done_callback(self._expiring.discard)

    async def _remove_expired_file(self, key: str, entry: CacheEntry):
        async with self._locks.hold(key):
            # the key was set again before we got here; the file is the new value's
            if key in self._metadata:
                return
            try:
                await self._worker.delete(entry.path)
            except OSError as e:
                try:
                    self._report(IOFailureError(
                        f"Error deleting expired cache at {entry.path}: {e}", key=key,
                    ))
                except CacheError as err:
                    self.logger.error(str(err))
                return
            self._log(f"Deleted expired key: {key}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _forget(self, key: str):
        self._metadata.remove(key)
        self._keywords.remove_key(key)
        if self._buffer is not None:
            self._buffer.evict(key)

    def _require_ready(self):
        if self._closed:
            raise RuntimeError("FileCache is closed")
        if not self._ready:
            raise RuntimeError("FileCache.setup() must be awaited before use")

    def _log(self, message: str):
        if self._config.log:
            self._config.log_handle(message)

    def _report(self, error: CacheError):
        self._config.error_handle(error)
