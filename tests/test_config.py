from datetime import timedelta
from pathlib import Path

import pytest

from gwsadmin.config import (Settings, DEFAULT_CACHE_TTL, format_duration, load_settings, parse_duration,
                             qualify_group, read_config_file)
from gwsadmin.errors import ConfigurationError

CONFIG = """
domain: example.com
client-secret: ~/secrets/client.json
cache-file: ~/secrets/token.json
format: json
cache:
  enabled: false
  ttl: 1h
  directory: /tmp/gwsadmin-cache
"""


def test_parse_duration():
    assert(parse_duration("15m") == timedelta(minutes=15))
    assert(parse_duration("1h30m") == timedelta(hours=1, minutes=30))
    assert(parse_duration("100ms") == timedelta(milliseconds=100))
    assert(parse_duration("1.5s") == timedelta(seconds=1.5))
    assert(parse_duration("90") == timedelta(seconds=90))
    assert(parse_duration(30) == timedelta(seconds=30))
    for bad in ["", "abc", "15x", "m15"]:
        with pytest.raises(ValueError):
            parse_duration(bad)


def test_format_duration():
    assert(format_duration(timedelta(minutes=15)) == "15m0s")
    assert(format_duration(timedelta(hours=1, seconds=5)) == "1h0m5s")
    assert(format_duration(timedelta(seconds=42)) == "42s")


def test_qualify_group():
    assert(qualify_group("sales", "example.com") == "sales@example.com")
    assert(qualify_group("sales@other.com", "example.com") == "sales@other.com")
    assert(qualify_group("sales", "") == "sales")


def test_read_config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG)
    values = read_config_file(path)
    assert(values["domain"] == "example.com")
    assert(values["token_file"] == "~/secrets/token.json")
    assert(values["cache_enabled"] is False)
    assert(values["cache_ttl"] == "1h")
    assert(values["cache_dir"] == "/tmp/gwsadmin-cache")
    assert(read_config_file(tmp_path / "missing.yaml") == {})


def test_read_config_file_errors(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("domain: [unclosed")
    with pytest.raises(ConfigurationError):
        read_config_file(path)
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError):
        read_config_file(path)


def test_precedence(clean_env, monkeypatch):
    path = clean_env / "config.yaml"
    path.write_text(CONFIG)
    monkeypatch.delenv("GWSADMIN_CACHE_DIR")
    monkeypatch.setenv("GWSADMIN_DOMAIN", "env.example.com")
    monkeypatch.setenv("GWSADMIN_CACHE_TTL", "5m")
    settings = load_settings(path, output_format="csv")
    assert(settings.domain == "env.example.com")
    assert(settings.cache_ttl == timedelta(minutes=5))
    assert(settings.cache_enabled is False)
    assert(settings.cache_dir == "/tmp/gwsadmin-cache")
    assert(settings.output_format == "csv")
    assert(settings.client_secret == Path.home() / "secrets" / "client.json")
    assert(settings.token_file == Path.home() / "secrets" / "token.json")
    assert(settings.config_file == path)

    settings = load_settings(path, domain="flag.example.com", cache_enabled=None)
    assert(settings.domain == "flag.example.com")
    assert(settings.cache_enabled is False)
    assert(settings.output_format == "json")


def test_env_beats_file(clean_env):
    path = clean_env / "config.yaml"
    path.write_text(CONFIG)
    settings = load_settings(path)
    assert(settings.cache_dir == str(clean_env / "cache"))
    assert(settings.domain == "example.com")


def test_defaults_without_config_file(clean_env):
    settings = load_settings()
    assert(settings.config_file is None)
    assert(settings.domain == "")
    assert(settings.cache_enabled)
    assert(settings.cache_ttl == DEFAULT_CACHE_TTL)
    assert(settings.output_format == "plain")


def test_config_file_only_named_explicitly(clean_env, monkeypatch):
    path = clean_env / "config.yaml"
    path.write_text(CONFIG)
    monkeypatch.setenv("GWSADMIN_CONFIG_FILE", str(path))
    settings = load_settings()
    assert(settings.config_file is None)
    assert(settings.domain == "")


def test_missing_explicit_config(clean_env):
    with pytest.raises(ConfigurationError):
        load_settings(clean_env / "nope.yaml")


def test_invalid_ttl_falls_back(clean_env):
    assert(Settings(cache_ttl="soon").cache_ttl == DEFAULT_CACHE_TTL)
    assert(Settings(cache_ttl="0s").cache_ttl == DEFAULT_CACHE_TTL)
    assert(Settings(cache_ttl="2h").cache_ttl == timedelta(hours=2))
    assert(Settings(cache_ttl=90).cache_ttl == timedelta(seconds=90))


def test_env_cache_enabled(clean_env, monkeypatch):
    monkeypatch.setenv("GWSADMIN_CACHE_ENABLED", "false")
    assert(load_settings().cache_enabled is False)
    monkeypatch.setenv("GWSADMIN_CACHE_ENABLED", "")
    assert(load_settings().cache_enabled is True)


def test_invalid_value_is_configuration_error(clean_env, monkeypatch):
    monkeypatch.setenv("GWSADMIN_CACHE_ENABLED", "maybe")
    with pytest.raises(ConfigurationError) as e:
        load_settings()
    assert("cache_enabled" in e.value.message)
