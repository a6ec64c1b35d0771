from pathlib import Path

import pytest

from carddav_records.store import SQLiteRowStore, StoreError


def test_insert_get_delete():
    store = SQLiteRowStore()
    store.insert("xsubtypes", ("typename", "subtype", "abook_id"),
                 [("email", "Private", "1"), ("phone", "Boat", "1"), ("email", "Other", "2")])

    rows = store.get({"abook_id": "1"}, ("typename", "subtype"), "xsubtypes")
    assert sorted((r["typename"], r["subtype"]) for r in rows) == [("email", "Private"), ("phone", "Boat")]

    assert store.delete({"abook_id": "1"}, "xsubtypes") == 2
    assert store.get({"abook_id": "1"}, ("subtype",), "xsubtypes") == []
    assert len(store.get({}, ("subtype",), "xsubtypes")) == 1


def test_unknown_table_or_column():
    store = SQLiteRowStore()
    with pytest.raises(StoreError):
        store.get({}, ("subtype",), "contacts")
    with pytest.raises(StoreError):
        store.insert("xsubtypes", ("typename", "evil; DROP TABLE"), [("a", "b")])


def test_row_length_mismatch():
    store = SQLiteRowStore()
    with pytest.raises(StoreError):
        store.insert("xsubtypes", ("typename", "subtype", "abook_id"), [("email", "x")])


def test_closed_store_raises_store_error():
    store = SQLiteRowStore()
    store.close()
    with pytest.raises(StoreError):
        store.get({}, ("subtype",), "xsubtypes")


def test_file_store_persists(tmp_path: Path):
    db = tmp_path / "var" / "labels.db"
    store = SQLiteRowStore(db)
    store.insert("xsubtypes", ("typename", "subtype", "abook_id"), [("email", "Private", "1")])
    store.close()

    again = SQLiteRowStore(db)
    assert again.get({"abook_id": "1"}, ("subtype",), "xsubtypes") == [{"subtype": "Private"}]
