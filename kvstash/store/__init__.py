"""Storage components coordinated by FileCache."""

from kvstash.store.buffer import HotReadBuffer
from kvstash.store.files import DeletionWorker, FileStore, storage_name
from kvstash.store.keywords import KeywordIndex
from kvstash.store.locks import KeyedLock
from kvstash.store.metadata import CacheEntry, MetadataStore
from kvstash.store.timers import ExpiryTimerRegistry
from kvstash.store.values import ValueType, decode_value, encode_value

__all__ = [
    "HotReadBuffer",
    "DeletionWorker",
    "FileStore",
    "storage_name",
    "KeywordIndex",
    "KeyedLock",
    "CacheEntry",
    "MetadataStore",
    "ExpiryTimerRegistry",
    "ValueType",
    "decode_value",
    "encode_value",
]
