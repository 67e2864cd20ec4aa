"""
prefs_store.py
==============
Persistence for content ratio preferences.

Write-through, two layers:
  1) a local cache (JSON file or in-memory) answering immediately;
  2) the remote table ContentRatioPrefs, upserted per user.

Loading reads the cache first and then, for a known user, the remote row;
a remote hit refreshes the cache. Saving writes the cache, then upserts.
Last write wins, there is no merge.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol
import json
import threading

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .logging_setup import get_logger
from .models import ContentRatioPrefs, utc_now
from .ratios import DEFAULT_RATIOS, ContentRatios, RatioPair, rebalance
from .store import get_session

logger = get_logger("feedmix.prefs")

CACHE_KEY_PREFIX = "contentRatioPreferences"


class InvalidRatiosError(ValueError):
    """Raised when ratios to be saved do not add up to 100."""


def cache_key(user_id: Optional[str]) -> str:
    return f"{CACHE_KEY_PREFIX}:{user_id or 'anonymous'}"


# ---------- Cache port ----------

class PreferenceCache(Protocol):
    def read(self, key: str) -> Optional[Dict[str, Any]]: ...

    def write(self, key: str, data: Dict[str, Any]) -> None: ...


class InMemoryCache:
    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}

    def read(self, key: str) -> Optional[Dict[str, Any]]:
        data = self._data.get(key)
        return dict(data) if data is not None else None

    def write(self, key: str, data: Dict[str, Any]) -> None:
        self._data[key] = dict(data)


class JsonFileCache:
    """All keys live in a single JSON object on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            # keep the damaged file for inspection; the next write starts fresh
            backup = self.path.with_name(self.path.name + ".corrupt")
            self.path.replace(backup)
            logger.exception("PREFS_CACHE_CORRUPT", extra={"path": str(self.path), "moved_to": str(backup)})
            return {}
        except OSError:
            logger.exception("PREFS_CACHE_UNREADABLE", extra={"path": str(self.path)})
            return {}
        if not isinstance(data, dict):
            logger.warning("PREFS_CACHE_NOT_A_MAPPING", extra={"path": str(self.path)})
            return {}
        return data

    def read(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._load_all().get(key)
        return entry if isinstance(entry, dict) else None

    def write(self, key: str, data: Dict[str, Any]) -> None:
        with self._lock:
            everything = self._load_all()
            everything[key] = data
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(everything, indent=2), encoding="utf-8")


def ratios_from_mapping(data: Dict[str, Any]) -> ContentRatios:
    """Missing or malformed fields fall back to the defaults."""
    values = {}
    for name in ("general", "local", "sport"):
        raw = data.get(name, data.get(f"{name}_ratio"))
        try:
            values[name] = int(raw) if raw is not None else getattr(DEFAULT_RATIOS, name)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed cached ratio {name}={raw!r}")
            values[name] = getattr(DEFAULT_RATIOS, name)
    return ContentRatios(**values)


# ---------- Remote repository ----------

class RatioRepository:
    def __init__(self, session_factory: Callable[[], Session] = get_session) -> None:
        self._session_factory = session_factory

    def load(self, user_id: str) -> Optional[ContentRatios]:
        with self._session_factory() as s:
            row = s.exec(select(ContentRatioPrefs).where(ContentRatioPrefs.user_id == user_id)).first()
            if not row:
                return None
            return ContentRatios(general=row.general_ratio, local=row.local_ratio, sport=row.sport_ratio)

    def upsert(self, user_id: str, ratios: ContentRatios) -> None:
        with self._session_factory() as s:
            row = s.exec(select(ContentRatioPrefs).where(ContentRatioPrefs.user_id == user_id)).first()
            row = row or ContentRatioPrefs(user_id=user_id)
            row.general_ratio = ratios.general
            row.local_ratio = ratios.local
            row.sport_ratio = ratios.sport
            row.updated_at = utc_now()
            s.add(row)
            s.commit()


# ---------- Service ----------

class ContentRatioService:
    def __init__(self, cache: PreferenceCache, repository: Optional[RatioRepository] = None) -> None:
        self.cache = cache
        self.repository = repository

    def load(self, user_id: Optional[str] = None) -> ContentRatios:
        key = cache_key(user_id)
        ratios = DEFAULT_RATIOS
        cached = self.cache.read(key)
        if cached:
            ratios = ratios_from_mapping(cached)

        if user_id and self.repository is not None:
            try:
                remote = self.repository.load(user_id)
            except SQLAlchemyError:
                logger.exception("PREFS_REMOTE_LOAD_FAILED", extra={"user_id": user_id, "handled": True})
                remote = None
            if remote is not None:
                ratios = remote
                self.cache.write(key, remote.to_dict())

        logger.debug(f"Loaded ratios for {key}: {ratios.to_dict()}")
        return ratios

    def save(self, ratios: ContentRatios, user_id: Optional[str] = None) -> ContentRatios:
        if not ratios.is_balanced:
            raise InvalidRatiosError(f"Content ratios must sum to 100, got {ratios.total}")

        self.cache.write(cache_key(user_id), ratios.to_dict())

        if user_id and self.repository is not None:
            try:
                self.repository.upsert(user_id, ratios)
            except SQLAlchemyError:
                # cache already holds the new value; next successful save wins
                logger.exception("PREFS_REMOTE_SAVE_FAILED", extra={"user_id": user_id, "handled": True})

        logger.info(f"Saved ratios for user={user_id or 'anonymous'}: {ratios.to_dict()}")
        return ratios

    def set_ratios(self, general: float, local: float, sport: float, user_id: Optional[str] = None) -> ContentRatios:
        return self.save(ContentRatios.clamped(general, local, sport), user_id)

    def set_local_ratio(self, value: float, user_id: Optional[str] = None) -> ContentRatios:
        return self.save(ContentRatios.from_pair(RatioPair.from_local(value)), user_id)

    def rebalance(self, field: str, value: float, user_id: Optional[str] = None) -> ContentRatios:
        return self.save(rebalance(self.load(user_id), field, value), user_id)
