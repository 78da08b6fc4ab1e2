"""Configuration for a FileCache instance.

Values can be passed directly to ``CacheConfig`` or loaded from a JSON file
with ``load_cache_config``. Durations are in seconds; ``0`` means "never"
for ``expire`` and "disabled" for ``buffer_window`` and ``max_size``.
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable

from kvstash.shared.errors import CacheError
from kvstash.shared.logger import get_cache_logger


def default_log_handle(message: str):
    get_cache_logger("cache").info(message)


def default_error_handle(error: CacheError):
    raise error


@dataclass
class CacheConfig:
    folder: str = field(default_factory=lambda: str(Path.cwd() / "cache"))
    expire: float = 0
    auto_compress: bool = False
    log: bool = False
    buffer_window: float = 3.0
    max_size: int = 0
    strict_max_size: bool = False
    compression: str = "zlib"
    persist_delay: float = 0.5
    redis_url: str | None = None
    log_handle: Callable[[str], None] = default_log_handle
    error_handle: Callable[[CacheError], None] = default_error_handle

    def __post_init__(self):
        for name in ("expire", "buffer_window", "max_size", "persist_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        self.folder = str(self.folder)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheConfig":
        """Build a config from a plain dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def load_cache_config(config_path: str, defaults: dict[str, Any] | None = None) -> CacheConfig:
    """Load cache configuration from a JSON file, merging with optional defaults.

    Args:
        config_path: Path to the JSON configuration file.
        defaults: Optional dictionary of default values. File values override defaults.

    Returns:
        A ``CacheConfig`` built from the merged values.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If a numeric option is negative.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        config = json.load(f)

    if defaults:
        config = {**defaults, **config}

    return CacheConfig.from_dict(config)
