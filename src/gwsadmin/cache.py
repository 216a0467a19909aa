"""
File backed cache of API list responses.

Each entry is one JSON file in the cache directory named after the resource
type, domain and a digest of the query filters:

    users-example.com-default.json
    users-example.com-3f1c0a9b7d2e4f60.json

and holds {"timestamp": ..., "ttl": seconds, "data": ...}.  Entries are only
replaced whole and written via rename so a reader never sees a partial file.
There is no locking between processes; concurrent writers of the same key
simply race and the last rename wins.

Cache misses of any sort are signalled with CacheMiss subclasses which callers
treat as "go fetch it".  CacheError is reserved for the directory itself being
unusable.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable
import hashlib
import json
import logging
import os
import tempfile

from .config import DEFAULT_CACHE_DIR, DEFAULT_CACHE_TTL
from .errors import CacheError

logger = logging.getLogger(__name__)

CACHE_DIR_MODE = 0o700
CACHE_FILE_MODE = 0o600
CACHE_SUFFIX = ".json"
TMP_PREFIX = ".tmp-"
ALL = "all"


class CacheMiss(LookupError):
    """Nothing usable under the key; fetch from the API instead."""


class CacheDisabled(CacheMiss):
    pass


class CacheNotFound(CacheMiss):
    pass


class CacheCorrupt(CacheMiss):
    pass


class CacheExpired(CacheMiss):
    pass


def build_key(resource_type: str, domain: str, filters: dict[str, str]|None = None) -> str:
    """
    Deterministic file name for a cached query.  Filters are sorted before
    hashing so the same set in any order maps to the same key.
    """
    suffix = "default"
    if filters:
        raw = "".join(f"{k}={v}," for k, v in sorted(filters.items()))
        suffix = hashlib.sha256(raw.encode("utf-8")).digest()[:8].hex()
    return f"{resource_type}-{domain}-{suffix}{CACHE_SUFFIX}"


@dataclass
class CacheEntry:
    timestamp: datetime
    ttl: float
    data: Any = field(default=None)

    def age(self, now: datetime|None = None) -> timedelta:
        return (now or datetime.now(timezone.utc)) - self.timestamp

    def expired(self, ttl: timedelta|None = None, now: datetime|None = None) -> bool:
        """
        A caller supplied non-zero ttl overrides the one stored with the entry.
        """
        effective = ttl if ttl else timedelta(seconds=self.ttl)
        return self.age(now) > effective

    def to_json(self) -> str:
        return json.dumps({"timestamp": self.timestamp.isoformat(), "ttl": self.ttl, "data": self.data},
                          indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "CacheEntry":
        """Raises ValueError/KeyError/TypeError on anything malformed."""
        raw = json.loads(text)
        ts = datetime.fromisoformat(raw["timestamp"])
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return cls(timestamp=ts, ttl=float(raw["ttl"]), data=raw.get("data"))


@dataclass
class CacheStats:
    directory: str
    location: str
    entry_count: int = field(default=0)
    total_size: int = field(default=0)
    oldest: datetime|None = field(default=None)
    newest: datetime|None = field(default=None)
    ttl: timedelta = field(default=DEFAULT_CACHE_TTL)
    enabled: bool = field(default=True)


def format_bytes(size: int) -> str:
    """1536 -> '1.5 KB'"""
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"


class ResponseCache():
    """
    The cache for one run.  Construct with enabled=False to turn every read
    into a miss and every write into a no-op without touching the disk.
    """

    def __init__(self, directory: str|Path = DEFAULT_CACHE_DIR, enabled: bool = True,
                 ttl: timedelta = DEFAULT_CACHE_TTL) -> None:
        self.location = str(directory)
        self.directory = Path(os.path.expanduser(str(directory)))
        self.enabled = enabled
        self.ttl = ttl if ttl and ttl > timedelta() else DEFAULT_CACHE_TTL

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{self.directory}:{'enabled' if self.enabled else 'disabled'}"

    def ensure_directory(self) -> Path:
        try:
            self.directory.mkdir(mode=CACHE_DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"failed to create cache directory {self.directory}: {e}") from e
        return self.directory

    def path_for(self, key: str) -> Path:
        return self.directory / key

    def read(self, key: str, ttl: timedelta|None = None) -> Any:
        """
        Return the cached data under key or raise a CacheMiss subclass.
        """
        if not self.enabled:
            raise CacheDisabled(key)
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise CacheNotFound(key) from e
        except OSError as e:
            raise CacheError(f"failed to read cache file {path}: {e}") from e
        try:
            entry = CacheEntry.from_json(text)
        except (ValueError, KeyError, TypeError) as e:
            logger.debug("cache entry %s is corrupt: %s", key, e)
            raise CacheCorrupt(key) from e
        if entry.expired(ttl):
            logger.debug("cache expired: %s (age %s)", key, entry.age())
            raise CacheExpired(key)
        logger.debug("cache hit: %s (age %s)", key, entry.age())
        return entry.data

    def write(self, key: str, data: Any, ttl: timedelta|None = None) -> None:
        """
        Store data under key, replacing anything already there.
        """
        if not self.enabled:
            return
        effective = ttl if ttl else self.ttl
        secs = effective.total_seconds()
        entry = CacheEntry(timestamp=datetime.now(timezone.utc),
                           ttl=int(secs) if secs.is_integer() else secs, data=data)
        try:
            text = entry.to_json()
        except (TypeError, ValueError) as e:
            raise CacheError(f"failed to serialize cache entry {key}: {e}") from e
        directory = self.ensure_directory()
        fd, tmp = tempfile.mkstemp(prefix=TMP_PREFIX, dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.chmod(tmp, CACHE_FILE_MODE)
            os.replace(tmp, self.path_for(key))
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise CacheError(f"failed to write cache file {key}: {e}") from e
        logger.debug("cache written: %s (ttl %ss)", key, entry.ttl)

    def fetch(self, key: str, loader: Callable[[], Any], ttl: timedelta|None = None) -> Any:
        """
        The usual read-through: cached data if fresh, otherwise loader() which
        is then written back.
        """
        try:
            return self.read(key, ttl)
        except CacheMiss:
            pass
        data = loader()
        self.write(key, data, ttl)
        return data

    def _entries(self) -> list[os.DirEntry]:
        try:
            with os.scandir(self.directory) as it:
                return [e for e in it if e.is_file() and not e.name.startswith(TMP_PREFIX)]
        except FileNotFoundError:
            return []
        except OSError as e:
            raise CacheError(f"failed to read cache directory {self.directory}: {e}") from e

    def clear(self, resource_type: str = ALL) -> int:
        """
        Remove entries for one resource type, or everything with 'all'.
        Returns how many files went.
        """
        prefix = "" if not resource_type or resource_type == ALL else f"{resource_type}-"
        cleared = 0
        for e in self._entries():
            if prefix and not e.name.startswith(prefix):
                continue
            try:
                os.remove(e.path)
                cleared += 1
            except OSError as err:
                logger.warning("failed to remove cache file %s: %s", e.name, err)
        logger.info("cleared %d cache entries (%s)", cleared, resource_type or ALL)
        return cleared

    def stats(self) -> CacheStats:
        stats = CacheStats(directory=str(self.directory), location=self.location,
                           ttl=self.ttl, enabled=self.enabled)
        for e in self._entries():
            st = e.stat()
            mtime = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
            stats.entry_count += 1
            stats.total_size += st.st_size
            if stats.oldest is None or mtime < stats.oldest:
                stats.oldest = mtime
            if stats.newest is None or mtime > stats.newest:
                stats.newest = mtime
        return stats
