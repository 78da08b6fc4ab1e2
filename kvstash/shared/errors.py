"""Error kinds reported by the cache.

Every error is funneled through ``CacheConfig.error_handle``. The default
handler raises, so callers that want fail-soft behaviour pass a collecting
handler instead (e.g. ``errors.append``).
"""


class CacheError(Exception):
    """Base class for everything the cache reports."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class NotFoundError(CacheError):
    """get/delete on a key that has no metadata entry."""


class ContentInvalidError(CacheError):
    """Content is missing or cannot be serialized."""


class SizeExceededError(CacheError):
    """Serialized content is larger than ``max_size``."""


class IOFailureError(CacheError):
    """A value file could not be written, read or removed."""


class CodecError(CacheError):
    """Compression or decompression failed."""


class PersistError(CacheError):
    """The metadata side-car could not be written."""


class MetadataCorruptError(PersistError):
    """The metadata side-car exists but cannot be parsed."""
