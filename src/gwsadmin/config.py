"""
Settings for a gwsadmin run.

Values are layered: built-in defaults, then the YAML config file, then
GWSADMIN_* environment variables, then whatever the command line overrides.
"""
from datetime import timedelta
from pathlib import Path
from typing import Any
import logging
import os
import re

import yaml
from pydantic import ValidationError as PydanticValidationError, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".gwsadmin.yaml"
DEFAULT_CLIENT_SECRET = Path.home() / ".credentials" / "client_secret.json"
DEFAULT_TOKEN_FILE = Path.home() / ".credentials" / "gwsadmin.json"
DEFAULT_CACHE_DIR = "~/.cache/gwsadmin"
DEFAULT_CACHE_TTL = timedelta(minutes=15)

ENV_PREFIX = "GWSADMIN_"

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": timedelta(microseconds=0.001),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}


def parse_duration(value: str|int|float|timedelta) -> timedelta:
    """
    Parse a duration written like '15m', '1h30m', '90s' or '100ms'.
    A bare number is taken as seconds.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    s = str(value).strip()
    if not s:
        raise ValueError("empty duration")
    try:
        return timedelta(seconds=float(s))
    except ValueError:
        pass
    pos = 0
    total = timedelta()
    for m in _DURATION_RE.finditer(s):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if pos != len(s) or pos == 0:
        raise ValueError(f"invalid duration: {s}")
    return total


def format_duration(value: timedelta) -> str:
    """Inverse of parse_duration for whole seconds: 15m0s style output."""
    secs = int(value.total_seconds())
    h, rem = divmod(secs, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h}h{m}m{s}s"
    if m:
        return f"{m}m{s}s"
    return f"{s}s"



def qualify_group(name: str, domain: str) -> str:
    """Append @domain to a bare group name."""
    n = str(name).strip()
    if "@" in n or not domain:
        return n
    return f"{n}@{domain}"


def read_config_file(path: Path) -> dict:
    """
    Load the YAML config file into settings keyword arguments.
    A missing file yields an empty dict.
    """
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"failed to parse config file {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"failed to read config file {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")
    values = {
        "domain": raw.get("domain"),
        "client_secret": raw.get("client-secret"),
        "token_file": raw.get("token-file", raw.get("cache-file")),
        "output_format": raw.get("format"),
    }
    cache = raw.get("cache")
    if cache is not None:
        if not isinstance(cache, dict):
            raise ConfigurationError(f"config file {path}: 'cache' must be a mapping")
        values["cache_enabled"] = cache.get("enabled")
        values["cache_ttl"] = cache.get("ttl")
        values["cache_dir"] = cache.get("directory")
    return values


class ConfigFileSource(PydanticBaseSettingsSource):
    """The YAML config file as a settings source, ranked below the environment."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path|None) -> None:
        super().__init__(settings_cls)
        values = read_config_file(path) if path else {}
        self.values = {k: v for k, v in values.items() if v is not None}

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self.values.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self.values)


class Settings(BaseSettings):
    """
    Everything a command needs to know about the environment it runs in.
    Each field can be set from GWSADMIN_<FIELD>, e.g. GWSADMIN_CACHE_TTL=1h.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        extra="ignore",
    )

    domain: str = ""
    client_secret: Path = DEFAULT_CLIENT_SECRET
    token_file: Path = DEFAULT_TOKEN_FILE
    cache_enabled: bool = True
    cache_ttl: timedelta = DEFAULT_CACHE_TTL
    cache_dir: str = DEFAULT_CACHE_DIR
    output_format: str = "plain"
    quiet: bool = False
    yes: bool = False
    # always passed in by load_settings, so GWSADMIN_CONFIG_FILE has no effect
    config_file: Path|None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        path = init_settings.init_kwargs.get("config_file")
        return (init_settings, env_settings, ConfigFileSource(settings_cls, path))

    @field_validator("client_secret", "token_file")
    @classmethod
    def expand_home(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("cache_ttl", mode="before")
    @classmethod
    def valid_ttl(cls, value: Any) -> timedelta:
        """Anything unparseable or not positive falls back to the default with a warning."""
        try:
            ttl = parse_duration(value)
        except ValueError:
            logger.warning("invalid cache TTL %r, using default %s", value, format_duration(DEFAULT_CACHE_TTL))
            return DEFAULT_CACHE_TTL
        if ttl <= timedelta():
            logger.warning("non-positive cache TTL %r, using default %s", value, format_duration(DEFAULT_CACHE_TTL))
            return DEFAULT_CACHE_TTL
        return ttl

    def to_dict(self) -> dict:
        """Flattened view for 'config show'."""
        return {
            "config_file": str(self.config_file) if self.config_file else "",
            "domain": self.domain,
            "client_secret": str(self.client_secret),
            "token_file": str(self.token_file),
            "cache_enabled": self.cache_enabled,
            "cache_ttl": format_duration(self.cache_ttl),
            "cache_directory": self.cache_dir,
            "format": self.output_format,
        }


def load_settings(config_file: Path|str|None = None, **overrides) -> Settings:
    """
    Build Settings from all sources.  An explicitly named config file must exist,
    the default one is optional.  Overrides left as None don't count.
    """
    path = Path(os.path.expanduser(str(config_file))) if config_file else DEFAULT_CONFIG_FILE
    if config_file and not path.exists():
        raise ConfigurationError(f"config file not found: {path}")
    if path.exists():
        logger.debug("using config file %s", path)
    else:
        path = None
    flags = {k: v for k, v in overrides.items() if v is not None}
    try:
        return Settings(config_file=path, **flags)
    except PydanticValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ConfigurationError(f"invalid configuration: {problems}") from e
