"""Shared utilities for kvstash components."""

from kvstash.shared.bus import LocalBus, RedisBus, create_bus
from kvstash.shared.codec import get_codec
from kvstash.shared.config import CacheConfig, load_cache_config
from kvstash.shared.logger import get_cache_logger

__all__ = [
    "LocalBus",
    "RedisBus",
    "create_bus",
    "get_codec",
    "CacheConfig",
    "load_cache_config",
    "get_cache_logger",
]
