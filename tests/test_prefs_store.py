# tests/test_prefs_store.py
import uuid
from datetime import datetime

import pytest
from freezegun import freeze_time
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from feedmix.models import ContentRatioPrefs
from feedmix.prefs_store import (
    ContentRatioService,
    InMemoryCache,
    InvalidRatiosError,
    JsonFileCache,
    RatioRepository,
    cache_key,
    ratios_from_mapping,
)
from feedmix.ratios import DEFAULT_RATIOS, ContentRatios
from feedmix.store import get_session


@pytest.fixture()
def user_id():
    return f"user-{uuid.uuid4().hex[:8]}"


@pytest.fixture()
def service():
    return ContentRatioService(InMemoryCache(), RatioRepository())


def test_load_defaults_for_unknown_user(service, user_id):
    assert service.load(user_id) == DEFAULT_RATIOS


def test_set_local_ratio_persists_pair(service, user_id):
    out = service.set_local_ratio(70, user_id=user_id)
    assert (out.local, out.sport, out.general) == (70, 30, 0)

    fresh = ContentRatioService(InMemoryCache(), RatioRepository())
    assert fresh.load(user_id) == out


def test_save_rejects_unbalanced(service, user_id):
    with pytest.raises(InvalidRatiosError):
        service.save(ContentRatios(general=50, local=50, sport=50), user_id)
    assert service.cache.read(cache_key(user_id)) is None


def test_set_ratios_clamps_before_validating(service, user_id):
    out = service.set_ratios(-10, 130, 0, user_id=user_id)
    assert out.to_dict() == {"general": 0, "local": 100, "sport": 0}


def test_remote_hit_refreshes_cache(user_id):
    RatioRepository().upsert(user_id, ContentRatios(general=10, local=60, sport=30))
    cache = InMemoryCache()
    cache.write(cache_key(user_id), {"general": 40, "local": 35, "sport": 25})

    out = ContentRatioService(cache, RatioRepository()).load(user_id)
    assert out == ContentRatios(general=10, local=60, sport=30)
    assert cache.read(cache_key(user_id)) == {"general": 10, "local": 60, "sport": 30}


def test_remote_failure_falls_back_to_cache(mocker, user_id):
    repo = RatioRepository()
    mocker.patch.object(repo, "load", side_effect=OperationalError("select", {}, Exception("db down")))
    cache = InMemoryCache()
    cache.write(cache_key(user_id), {"general": 20, "local": 50, "sport": 30})

    assert ContentRatioService(cache, repo).load(user_id) == ContentRatios(20, 50, 30)


def test_remote_save_failure_keeps_cached_value(mocker, user_id):
    repo = RatioRepository()
    mocker.patch.object(repo, "upsert", side_effect=OperationalError("upsert", {}, Exception("db down")))
    svc = ContentRatioService(InMemoryCache(), repo)

    out = svc.set_local_ratio(40, user_id=user_id)
    assert svc.cache.read(cache_key(user_id)) == out.to_dict()


def test_anonymous_user_is_cache_only(mocker):
    repo = RatioRepository()
    upsert = mocker.spy(repo, "upsert")
    svc = ContentRatioService(InMemoryCache(), repo)
    svc.set_local_ratio(80)
    assert upsert.call_count == 0
    assert svc.load().local == 80


def test_rebalance_starts_from_stored_ratios(service, user_id):
    service.set_ratios(40, 35, 25, user_id=user_id)
    out = service.rebalance("general", 60, user_id=user_id)
    assert out.general == 60
    assert out.is_balanced
    assert service.load(user_id) == out


def test_last_write_wins_and_stamps_updated_at(user_id):
    repo = RatioRepository()
    with freeze_time("2025-03-01 10:00:00"):
        repo.upsert(user_id, ContentRatios(30, 40, 30))
    with freeze_time("2025-03-02 10:00:00"):
        repo.upsert(user_id, ContentRatios(0, 90, 10))

    with get_session() as s:
        rows = s.exec(select(ContentRatioPrefs).where(ContentRatioPrefs.user_id == user_id)).all()
    assert len(rows) == 1
    assert rows[0].local_ratio == 90
    # SQLite may hand the value back without tzinfo; the instant is what matters
    assert rows[0].updated_at.replace(tzinfo=None) == datetime(2025, 3, 2, 10, 0, 0)


def test_json_file_cache_roundtrip(tmp_path):
    cache = JsonFileCache(tmp_path / "prefs.json")
    assert cache.read("k") is None
    cache.write("k", {"general": 1, "local": 2, "sport": 97})
    cache.write("other", {"general": 0, "local": 50, "sport": 50})
    assert JsonFileCache(tmp_path / "prefs.json").read("k") == {"general": 1, "local": 2, "sport": 97}


def test_json_file_cache_ignores_corrupt_file(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonFileCache(path).read("k") is None


def test_corrupt_cache_file_is_moved_aside_before_rewrite(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text('{"contentRatioPreferences:alice": {"local": 7', encoding="utf-8")

    JsonFileCache(path).write("bob", {"general": 0, "local": 60, "sport": 40})

    backup = tmp_path / "prefs.json.corrupt"
    assert backup.read_text(encoding="utf-8").startswith('{"contentRatioPreferences:alice"')
    assert JsonFileCache(path).read("bob") == {"general": 0, "local": 60, "sport": 40}


def test_cached_mapping_falls_back_per_field():
    out = ratios_from_mapping({"local": "55", "sport": None, "general": "lots"})
    assert out == ContentRatios(general=40, local=55, sport=25)
    assert ratios_from_mapping({"local_ratio": 10}).local == 10


def test_new_prefs_row_has_aware_timestamp():
    assert ContentRatioPrefs(user_id="x").updated_at.tzinfo is not None


def test_save_reaches_remote_table(user_id):
    svc = ContentRatioService(InMemoryCache(), RatioRepository())
    svc.set_local_ratio(70, user_id=user_id)
    assert RatioRepository().load(user_id) == ContentRatios(general=0, local=70, sport=30)
