import json

from domain.models import Place
from storage.cache_storage import CacheStorage


def _place() -> Place:
    return Place(name="Delhi, India", lat=28.6139, lng=77.209, kind="city", description="Capital of India")


def test_save_and_load_round_trip(tmp_path):
    storage = CacheStorage(str(tmp_path))
    assert storage.save("delhi", [_place()], created_at=123.0)

    created_at, places = storage.load("delhi")
    assert created_at == 123.0
    assert places == [_place()]


def test_one_file_per_key(tmp_path):
    storage = CacheStorage(str(tmp_path))
    storage.save("delhi", [_place()])
    storage.save("mumbai", [])
    storage.save("delhi", [])
    assert len(list(tmp_path.glob("*.json"))) == 2


def test_load_missing_key_returns_none(tmp_path):
    assert CacheStorage(str(tmp_path)).load("nowhere") is None


def test_corrupt_file_is_a_miss(tmp_path):
    storage = CacheStorage(str(tmp_path))
    storage.path_for_key("delhi").write_text("{not json", encoding="utf-8")
    assert storage.load("delhi") is None


def test_file_for_other_key_is_a_miss(tmp_path):
    storage = CacheStorage(str(tmp_path))
    storage.path_for_key("delhi").write_text(
        json.dumps({"key": "mumbai", "created_at": 1.0, "places": []}), encoding="utf-8"
    )
    assert storage.load("delhi") is None


def test_clear_all_deletes_files(tmp_path):
    storage = CacheStorage(str(tmp_path))
    storage.save("delhi", [_place()])
    storage.save("goa", [_place()])

    removed, warnings = storage.clear_all()

    assert removed == 2
    assert warnings == []
    assert list(tmp_path.iterdir()) == []
