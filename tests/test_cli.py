import logging

import pytest

import lister


def _run(db, *argv):
    return lister.main(["--db", str(db), *argv])


def _only_id(capsys):
    return capsys.readouterr().out.strip().splitlines()[-1]


def test_add_post_unlist_flow(tmp_path, capsys):
    db = tmp_path / "lister.sqlite3"
    assert _run(db, "add", "title=Desk Lamp", "price=25", "--image", "lamp.jpg") == 0
    item_id = _only_id(capsys)

    assert _run(db, "post", item_id, "ebay") == 0
    assert "is now listed" in capsys.readouterr().out

    assert _run(db, "post", item_id, "mercari") == 1

    store = lister.build_store(str(db))
    assert store.get_item(item_id).marketplaces == ["ebay"]

    assert _run(db, "unlist", item_id, "ebay") == 0
    assert store.get_item(item_id).status == "draft"


def test_items_filter_and_stats(tmp_path, capsys):
    db = tmp_path / "lister.sqlite3"
    _run(db, "add", "title=Camera", "price=100", "category=Electronics")
    cam_id = _only_id(capsys)
    _run(db, "add", "title=Boots", "price=50")
    capsys.readouterr()

    assert _run(db, "sold", cam_id) == 0
    capsys.readouterr()

    _run(db, "items", "--status", "sold")
    out = capsys.readouterr().out
    assert "Camera" in out and "Boots" not in out

    _run(db, "stats")
    out = capsys.readouterr().out
    assert "Items: 2 (0 listed, 1 sold, 1 drafts)" in out
    assert "[x] First Sale" in out


def test_bad_price_exits_nonzero(tmp_path, capsys):
    db = tmp_path / "lister.sqlite3"
    _run(db, "add", "title=Mug")
    item_id = _only_id(capsys)
    assert _run(db, "edit", item_id, "price", "cheap") == 1
    assert _run(db, "show", "missing") == 1


def test_report_html(tmp_path, capsys):
    db = tmp_path / "lister.sqlite3"
    out_file = tmp_path / "report.html"
    _run(db, "add", "title=Mug", "price=4")
    assert _run(db, "report", "--html", str(out_file)) == 0
    assert "Mug" in out_file.read_text(encoding="utf-8")


def test_profile_and_login(tmp_path, capsys):
    db = tmp_path / "lister.sqlite3"
    assert _run(db, "profile", "--set", "name=Sam") == 0
    assert "name: Sam" in capsys.readouterr().out
    assert _run(db, "profile", "--set", "rating=5") == 1

    _run(db, "login")
    assert lister.build_store(str(db)).is_logged_in()
    _run(db, "logout")
    assert not lister.build_store(str(db)).is_logged_in()


def test_sync_rejects_unknown_field(tmp_path, capsys):
    db = tmp_path / "lister.sqlite3"
    _run(db, "add", "title=Lamp", "price=20")
    item_id = _only_id(capsys)
    assert _run(db, "post", item_id, "ebay") == 0

    assert _run(db, "sync", item_id, "ebay", "--field", "bogus") == 1
    assert _run(db, "sync", item_id, "ebay", "--field", "price") == 0


def test_marketplace_setup_flow(tmp_path, capsys):
    db = tmp_path / "lister.sqlite3"
    _run(db, "marketplaces")
    out = capsys.readouterr().out
    assert "ebay" in out and "connected" in out and "coming soon" in out

    assert _run(db, "disconnect", "ebay") == 0
    assert "eBay: needs setup" in capsys.readouterr().out

    _run(db, "add", "title=Lamp", "price=20")
    item_id = _only_id(capsys)
    assert _run(db, "post", item_id, "ebay") == 1
    assert lister.build_store(str(db)).get_item(item_id).marketplaces == []

    assert _run(db, "connect", "ebay") == 0
    assert _run(db, "post", item_id, "ebay") == 0

    assert _run(db, "connect", "depop") == 1
    assert _run(db, "connect", "etsy") == 1


def test_log_level_flag(tmp_path, capsys, restore_log_level):
    db = tmp_path / "lister.sqlite3"
    assert _run(db, "--log-level", "warning", "stats") == 0
    assert logging.getLogger().level == logging.WARNING

    assert _run(db, "-v", "stats") == 0
    assert logging.getLogger().level == logging.DEBUG

    with pytest.raises(SystemExit) as exc:
        _run(db, "--log-level", "chatty", "stats")
    assert exc.value.code == 2
