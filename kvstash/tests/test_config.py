import json

import pytest

from kvstash.shared.config import CacheConfig, default_error_handle, load_cache_config
from kvstash.shared.errors import NotFoundError


def test_load_config_from_file(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({
        "folder": "/var/cache/app",
        "expire": 60,
        "auto_compress": True,
    }))
    config = load_cache_config(str(config_file))
    assert config.folder == "/var/cache/app"
    assert config.expire == 60
    assert config.auto_compress is True


def test_load_config_with_defaults(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"expire": 10}))
    defaults = {"max_size": 1024, "expire": 1}
    config = load_cache_config(str(config_file), defaults=defaults)
    assert config.expire == 10
    assert config.max_size == 1024


def test_load_config_ignores_unknown_keys(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"expire": 1, "colour": "blue"}))
    assert load_cache_config(str(config_file)).expire == 1


def test_load_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_cache_config("/nonexistent/config.json")


def test_negative_values_rejected():
    with pytest.raises(ValueError):
        CacheConfig(expire=-1)


def test_defaults():
    config = CacheConfig()
    assert config.folder.endswith("cache")
    assert config.expire == 0
    assert config.buffer_window == 3.0
    assert config.max_size == 0
    assert config.compression == "zlib"


def test_default_error_handle_raises():
    with pytest.raises(NotFoundError):
        default_error_handle(NotFoundError("missing"))
