import json

import pytest

from core.errors import NotFoundError, StaleWriteError
from core.models import InventoryItem, UserProfile
from core.storage import (
    ITEMS_KEY,
    ItemStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
)


def _items():
    return [
        InventoryItem(
            id="a",
            title="Camera",
            price=120.0,
            msrp=200.0,
            images=["img-1", "img-2"],
            image="img-1",
            date_added="2026-09-30",
            marketplaces=["ebay", "facebook"],
            listing_ids={"ebay": "ebay-1"},
            specifications={"Mount": "EF"},
        ),
        InventoryItem(id="b", title="Boots", price=30.0, sold=True, date_added="2026-10-02"),
        InventoryItem(id="c", title="Mug", date_added="2026-10-03"),
    ]


def test_empty_store_loads_nothing(store):
    assert store.load_items() == []
    assert store.load_items_versioned() == ([], 0)


def test_save_then_load_round_trip(store):
    store.save_items(_items())
    loaded = store.load_items()
    assert loaded == _items()

    store.save_items(loaded)
    assert store.load_items() == loaded
    assert [it.status for it in loaded] == ["listed", "sold", "draft"]


def test_sqlite_round_trip(tmp_path):
    kv = SqliteKeyValueStore(str(tmp_path / "lister.sqlite3"))
    store = ItemStore(kv)
    store.save_items(_items())

    reopened = ItemStore(SqliteKeyValueStore(str(tmp_path / "lister.sqlite3")))
    assert reopened.load_items() == _items()
    assert reopened.load_items_versioned()[1] == 1


def test_sqlite_delete_key(tmp_path):
    kv = SqliteKeyValueStore(str(tmp_path / "kv.sqlite3"))
    kv.set("k", "v1")
    kv.set("k", "v2")
    assert kv.get("k") == "v2"
    kv.delete("k")
    assert kv.get("k") is None


def test_stale_write_is_rejected(store):
    items, version = store.load_items_versioned()
    store.save_items(_items(), expected_version=version)

    with pytest.raises(StaleWriteError):
        store.save_items([], expected_version=version)
    assert len(store.load_items()) == 3


def test_unversioned_write_always_wins(store):
    store.save_items(_items())
    store.save_items([])
    assert store.load_items() == []
    assert store.load_items_versioned()[1] == 2


def test_legacy_blob_with_duplicate_marketplaces(store):
    store.kv.set(
        ITEMS_KEY,
        json.dumps([
            {"id": "x", "title": "T", "price": "12.5", "status": "listed",
             "marketplaces": ["ebay", "ebay"], "image": "only"},
            {"id": "y", "status": "sold"},
            {"title": "no id"},
        ]),
    )
    x, y = store.load_items()
    assert x.marketplaces == ["ebay"]
    assert x.price == 12.5
    assert x.images == ["only"]
    assert y.status == "sold"


def test_get_update_delete_item(store):
    store.save_items(_items())

    updated = store.update_item("c", lambda it: setattr(it, "title", "Big Mug"))
    assert updated.title == "Big Mug"
    assert store.get_item("c").title == "Big Mug"

    store.delete_item("c")
    with pytest.raises(NotFoundError):
        store.get_item("c")
    with pytest.raises(NotFoundError):
        store.update_item("c", lambda it: None)
    with pytest.raises(NotFoundError):
        store.delete_item("c")


def test_add_item_rejects_duplicate_id(store):
    store.add_item(InventoryItem(id="a"))
    with pytest.raises(ValueError):
        store.add_item(InventoryItem(id="a"))


def test_profile_stats_are_recomputed(store):
    store.save_items(_items())
    profile = UserProfile(name="Sam", total_sales=9999, total_listings=1)
    store.save_profile(profile)

    loaded = store.load_profile()
    assert loaded.name == "Sam"
    assert loaded.total_sales == 30.0
    assert loaded.total_listings == 3


def test_default_profile_when_missing(store):
    profile = store.load_profile()
    assert profile.name == "Alex Johnson"
    assert profile.total_listings == 0


def test_logged_in_flag(store):
    assert not store.is_logged_in()
    store.set_logged_in(True)
    assert store.is_logged_in()
    store.set_logged_in(False)
    assert not store.is_logged_in()
    assert store.kv.get("powerListerLoggedIn") is None


def test_memory_store_initial_data():
    kv = MemoryKeyValueStore({"k": "v"})
    assert kv.get("k") == "v"
    assert kv.get("missing") is None


def test_concurrent_edit_from_second_sqlite_store_is_not_lost(tmp_path):
    path = str(tmp_path / "shared.sqlite3")
    store_a = ItemStore(SqliteKeyValueStore(path))
    store_b = ItemStore(SqliteKeyValueStore(path))
    store_a.add_item(InventoryItem(id="a", title="Camera", price=50.0))

    def reprice(it):
        # Another process edits the same item after A has read the collection.
        store_b.update_item("a", lambda other: setattr(other, "title", "edited by B"))
        it.price = 99.0

    with pytest.raises(StaleWriteError):
        store_a.update_item("a", reprice)

    stored = store_a.get_item("a")
    assert stored.title == "edited by B"
    assert stored.price == 50.0
    assert store_b.load_items_versioned()[1] == 2


def test_sqlite_compare_and_set(tmp_path):
    kv = SqliteKeyValueStore(str(tmp_path / "kv.sqlite3"))
    assert kv.compare_and_set("k", "v1", "k.version", 0) == 1
    assert kv.compare_and_set("k", "v2", "k.version", None) == 2

    with pytest.raises(StaleWriteError):
        kv.compare_and_set("k", "v3", "k.version", 1)
    assert kv.get("k") == "v2"
    assert kv.get("k.version") == "2"


def test_memory_stores_sharing_data_reject_stale_write():
    kv = MemoryKeyValueStore()
    store_a, store_b = ItemStore(kv), ItemStore(kv)
    store_a.add_item(InventoryItem(id="a", title="Camera"))

    def retitle(it):
        store_b.update_item("a", lambda other: setattr(other, "price", 5.0))
        it.title = "Lost"

    with pytest.raises(StaleWriteError):
        store_a.update_item("a", retitle)
    assert store_b.get_item("a").title == "Camera"
    assert store_b.get_item("a").price == 5.0


def test_corrupt_version_counter_reads_as_zero(store):
    store.kv.set("powerListerItemsVersion", "banana")
    assert store.load_items_versioned() == ([], 0)
    assert store.save_items(_items(), expected_version=0) == 1


def test_connected_marketplaces(store):
    assert store.load_connected() == ["ebay", "facebook"]
    assert store.set_connected("ebay", False) == ["facebook"]
    store.set_connected("facebook", False)
    assert store.load_connected() == []

    store.set_connected("ebay", True)
    store.set_connected("ebay", True)
    assert store.load_connected() == ["ebay"]

    store.kv.set("powerListerConnectedMarketplaces", "oops")
    assert store.load_connected() == []
