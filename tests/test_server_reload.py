import pytest

import server
from catalog_store import CatalogStore, write_store


def _cat(semester_id: str) -> dict:
    return {"semesterId": semester_id, "reportDate": "2025-04-02T00:00:00.000",
            "fieldsOfStudy": [], "courses": []}


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "catalog.json"
    write_store(CatalogStore([_cat("20252")]), str(path))
    return str(path)


def test_reload_skips_when_mtime_unchanged(monkeypatch, catalog_file):
    app = server.create_app(catalog_path=catalog_file)
    holder = app.extensions["catalog"]

    called = {"count": 0}

    def fake_load(_path):
        called["count"] += 1
        return CatalogStore()

    monkeypatch.setattr(server, "load_catalog", fake_load)
    monkeypatch.setattr(server, "_file_mtime", lambda _path: holder._mtime)

    assert holder.reload_if_changed() is False
    assert called["count"] == 0


def test_reload_swaps_snapshot_when_mtime_advances(monkeypatch, catalog_file):
    app = server.create_app(catalog_path=catalog_file)
    holder = app.extensions["catalog"]
    old_snapshot = holder.snapshot()
    new_store = CatalogStore([_cat("20252"), _cat("20259")])

    monkeypatch.setattr(server, "_file_mtime", lambda _path: holder._mtime + 10)
    monkeypatch.setattr(server, "load_catalog", lambda _path: new_store)

    assert holder.reload_if_changed() is True
    assert holder.store is new_store
    assert holder.snapshot()[1].store is new_store
    # Readers holding the old snapshot still see the old catalog.
    assert old_snapshot[0].semester_ids() == ["20252"]


def test_reload_failure_keeps_previous_snapshot(monkeypatch, catalog_file, capsys):
    app = server.create_app(catalog_path=catalog_file)
    holder = app.extensions["catalog"]
    old_store = holder.store
    old_mtime = holder._mtime

    def boom(_path):
        raise RuntimeError("reload failed")

    monkeypatch.setattr(server, "_file_mtime", lambda _path: old_mtime + 10)
    monkeypatch.setattr(server, "load_catalog", boom)

    assert holder.reload_if_changed() is False
    assert holder.store is old_store
    assert holder._mtime == old_mtime
    assert "keeping previous catalog" in capsys.readouterr().err


def test_request_sees_reloaded_catalog(monkeypatch, catalog_file):
    app = server.create_app(catalog_path=catalog_file)
    app.config["TESTING"] = True
    holder = app.extensions["catalog"]
    new_store = CatalogStore([_cat("20252"), _cat("20259")])

    with app.test_client() as client:
        assert client.get("/semesters").get_json() == ["20252"]
        monkeypatch.setattr(server, "_file_mtime", lambda _path: holder._mtime + 10)
        monkeypatch.setattr(server, "load_catalog", lambda _path: new_store)
        assert client.get("/semesters").get_json() == ["20252", "20259"]
