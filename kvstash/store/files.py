"""Value-file storage under the cache root.

Each key is stored in one file named ``md5(key).hex + ".cache"``, holding
either the raw serialized value or its compressed bytes with no framing.
Blocking filesystem calls run in a worker thread.
"""

import asyncio
import hashlib
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

FILE_EXTENSION = ".cache"


def storage_name(key: str) -> str:
    """Deterministic file name for ``key``. Collisions are not detected."""
    return hashlib.md5(key.encode("utf-8")).hexdigest() + FILE_EXTENSION


def _unlink(path: Path):
    path.unlink(missing_ok=True)


class FileStore:
    """Async file I/O rooted at one cache directory."""

    def __init__(self, root: str | Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, name: str) -> Path:
        return self._root / name

    async def ensure_root(self):
        await asyncio.to_thread(self._root.mkdir, parents=True, exist_ok=True)

    async def write(self, name: str, data: bytes):
        """Write ``data`` to ``name``, replacing any existing file."""
        await asyncio.to_thread(self.path_for(name).write_bytes, data)

    async def read(self, name: str) -> bytes:
        return await asyncio.to_thread(self.path_for(name).read_bytes)

    async def remove(self, name: str):
        """Delete ``name``. A missing file is not an error."""
        await asyncio.to_thread(_unlink, self.path_for(name))


class DeletionWorker:
    """Single background thread that unlinks expired value files.

    Keeps expiry churn off the event loop's default executor so timer
    callbacks never wait on filesystem latency.
    """

    def __init__(self, files: FileStore):
        self._files = files
        self._executor: ThreadPoolExecutor | None = None

    async def delete(self, name: str):
        """Unlink ``name`` on the worker thread. Raises OSError on failure."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="kvstash-delete")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, _unlink, self._files.path_for(name))

    async def shutdown(self):
        executor, self._executor = self._executor, None
        if executor is not None:
            await asyncio.to_thread(executor.shutdown, True)
