from unittest.mock import MagicMock

import pytest

from gwsadmin import config, directory
from gwsadmin.access import gws

ENV_VARS = ["DOMAIN", "CLIENT_SECRET", "TOKEN_FILE", "CACHE_ENABLED", "CACHE_TTL", "CACHE_DIR", "OUTPUT_FORMAT",
            "QUIET", "YES", "CONFIG_FILE"]


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    """
    No user config file or GWSADMIN_ variables leak into a test, and the
    cache lives under tmp_path.
    """
    monkeypatch.setattr(config, "DEFAULT_CONFIG_FILE", tmp_path / "no-such-config.yaml")
    for name in ENV_VARS:
        monkeypatch.delenv(config.ENV_PREFIX + name, raising=False)
    monkeypatch.setenv(config.ENV_PREFIX + "CACHE_DIR", str(tmp_path / "cache"))
    yield tmp_path
    gws.reset()


@pytest.fixture
def directory_service(monkeypatch):
    """A mock Admin SDK directory service handed out instead of a real one."""
    svc = MagicMock()
    monkeypatch.setattr(directory, "_get_service", lambda: svc)
    return svc
