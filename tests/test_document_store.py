from __future__ import annotations

from fleetsync.state.events import FieldFilter
from fleetsync.state.store import DocumentStore


def _store() -> DocumentStore:
    store = DocumentStore("drivers")
    store.replace_all([{"id": "a", "name": "Ana"}, {"id": "b", "name": "Bia"}])
    return store


def test_replace_all_with_current_list_emits_no_change_signal() -> None:
    store = _store()
    calls: list[int] = []
    store.add_listener(lambda: calls.append(1))

    assert store.replace_all(store.list()) is False
    assert calls == []
    assert store.version == 1


def test_replace_all_signals_on_content_change() -> None:
    store = _store()
    calls: list[int] = []
    store.add_listener(lambda: calls.append(1))

    assert store.replace_all([{"id": "a", "name": "Ana"}, {"id": "b", "name": "Beatriz"}]) is True
    assert calls == [1]
    assert store.get("b") == {"id": "b", "name": "Beatriz"}
    assert store.version == 2


def test_reordered_snapshot_counts_as_change() -> None:
    store = _store()
    assert store.replace_all([{"id": "b", "name": "Bia"}, {"id": "a", "name": "Ana"}]) is True
    assert [record["id"] for record in store.list()] == ["b", "a"]


def test_records_without_id_are_dropped() -> None:
    store = DocumentStore("drivers")
    store.replace_all([{"name": "ghost"}, {"id": "", "name": "blank"}, {"id": "a", "name": "Ana"}])
    assert store.ids() == ["a"]
    assert len(store) == 1
    assert "a" in store


def test_reads_return_copies() -> None:
    store = _store()
    record = store.get("a")
    assert record is not None
    record["name"] = "changed"
    store.list()[0]["name"] = "changed too"

    assert store.get("a") == {"id": "a", "name": "Ana"}
    assert store.list()[0]["name"] == "Ana"


def test_snapshot_input_is_not_aliased() -> None:
    payload = [{"id": "a", "tags": ["x"]}]
    store = DocumentStore("drivers")
    store.replace_all(payload)
    payload[0]["tags"].append("y")
    assert store.get("a") == {"id": "a", "tags": ["x"]}


def test_listener_remover() -> None:
    store = DocumentStore("drivers")
    calls: list[int] = []
    remove = store.add_listener(lambda: calls.append(1))
    remove()
    remove()
    store.replace_all([{"id": "a"}])
    assert calls == []


def test_key_includes_filter() -> None:
    day = FieldFilter.for_day("2024-05-02")
    assert DocumentStore("schedules", day).key == ("schedules", FieldFilter(field="date", value="2024-05-02"))
    assert DocumentStore("schedules", day).key != DocumentStore("schedules").key
