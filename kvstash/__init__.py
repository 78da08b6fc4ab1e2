"""kvstash: a file-backed key/value cache with expiry, compression and keyword search."""

from kvstash.cache import FileCache
from kvstash.shared.config import CacheConfig, load_cache_config
from kvstash.shared.errors import (
    CacheError,
    CodecError,
    ContentInvalidError,
    IOFailureError,
    MetadataCorruptError,
    NotFoundError,
    PersistError,
    SizeExceededError,
)

__all__ = [
    "FileCache",
    "CacheConfig",
    "load_cache_config",
    "CacheError",
    "CodecError",
    "ContentInvalidError",
    "IOFailureError",
    "MetadataCorruptError",
    "NotFoundError",
    "PersistError",
    "SizeExceededError",
]
