import json

import pytest

from conftest import make_plan
from preschool_planner.services.history_store import (
    HistoryStore,
    InMemoryStorage,
    JsonFileStorage,
    StorageError,
)


class FailingStorage(InMemoryStorage):
    def set(self, key, value):
        raise OSError("No space left on device")


def test_load_all_is_empty_without_saved_history(history):
    assert history.load_all() == []


def test_save_puts_most_recent_first(history):
    history.save(make_plan("a"))
    history.save(make_plan("b"))
    history.save(make_plan("c"))
    assert [p.id for p in history.load_all()] == ["c", "b", "a"]


def test_saving_existing_id_replaces_and_moves_to_front(history):
    history.save(make_plan("a"))
    history.save(make_plan("b"))
    history.save(make_plan("a", title="Colors, revised"))

    plans = history.load_all()
    assert [p.id for p in plans] == ["a", "b"]
    assert plans[0].title == "Colors, revised"


def test_saving_same_plan_twice_is_idempotent(history):
    plan = make_plan("a")
    history.save(make_plan("b"))
    history.save(plan)
    first = history.load_all()
    history.save(plan)
    assert history.load_all() == first


def test_history_is_capped_and_evicts_oldest(history):
    for i in range(25):
        history.save(make_plan(f"p{i}"))

    plans = history.load_all()
    assert len(plans) == 20
    assert plans[0].id == "p24"
    assert plans[-1].id == "p5"
    assert len({p.id for p in plans}) == 20


def test_custom_limit():
    store = HistoryStore(InMemoryStorage(), limit=2)
    for plan_id in ("a", "b", "c"):
        store.save(make_plan(plan_id))
    assert [p.id for p in store.load_all()] == ["c", "b"]


def test_delete_removes_entry(history):
    history.save(make_plan("a"))
    history.save(make_plan("b"))
    history.delete("a")
    assert [p.id for p in history.load_all()] == ["b"]


def test_delete_missing_id_is_noop(history, storage):
    history.save(make_plan("a"))
    before = storage.get(history.key)
    assert [p.id for p in history.delete("missing")] == ["a"]
    assert storage.get(history.key) == before


def test_get_finds_plan_by_id(history):
    history.save(make_plan("a"))
    assert history.get("a").id == "a"
    assert history.get("zzz") is None


def test_persisted_format_is_camel_case_json_array(history, storage):
    history.save(make_plan("a", created_at=123))
    stored = json.loads(storage.get("lesson_history"))
    assert isinstance(stored, list)
    assert stored[0]["id"] == "a"
    assert stored[0]["createdAt"] == 123
    assert stored[0]["procedure"][0]["teacherActivity"] == "Sing a color song"


def test_corrupt_history_reads_as_empty(storage):
    storage.set("lesson_history", "{not json")
    assert HistoryStore(storage).load_all() == []


def test_write_failure_raises_storage_error():
    store = HistoryStore(FailingStorage())
    with pytest.raises(StorageError):
        store.save(make_plan("a"))


def test_json_file_storage_round_trip(tmp_path):
    store = HistoryStore(JsonFileStorage(str(tmp_path / "history")))
    store.save(make_plan("a"))
    store.save(make_plan("b"))

    reopened = HistoryStore(JsonFileStorage(str(tmp_path / "history")))
    assert [p.id for p in reopened.load_all()] == ["b", "a"]
    assert (tmp_path / "history" / "lesson_history.json").exists()
    assert not list((tmp_path / "history").glob("*.tmp"))


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        HistoryStore(InMemoryStorage(), limit=0)


class FlakyReadStorage(InMemoryStorage):
    def __init__(self):
        super().__init__()
        self.fail_next_read = False

    def get(self, key):
        if self.fail_next_read:
            self.fail_next_read = False
            raise OSError("EIO")
        return super().get(key)


def test_undecodable_history_file_reads_as_empty(tmp_path):
    (tmp_path / "lesson_history.json").write_bytes(b"\xff\xfe[garbage")
    store = HistoryStore(JsonFileStorage(str(tmp_path)))

    assert store.load_all() == []
    store.save(make_plan("a"))
    assert [p.id for p in store.load_all()] == ["a"]


def test_read_failure_during_save_keeps_stored_plans():
    storage = FlakyReadStorage()
    store = HistoryStore(storage)
    for plan_id in ("p0", "p1", "p2"):
        store.save(make_plan(plan_id))

    storage.fail_next_read = True
    with pytest.raises(StorageError):
        store.save(make_plan("new"))
    assert [p.id for p in store.load_all()] == ["p2", "p1", "p0"]

    store.save(make_plan("new"))
    assert [p.id for p in store.load_all()] == ["new", "p2", "p1", "p0"]


def test_read_failure_during_delete_raises_storage_error():
    storage = FlakyReadStorage()
    store = HistoryStore(storage)
    store.save(make_plan("a"))

    storage.fail_next_read = True
    with pytest.raises(StorageError):
        store.delete("a")
    assert [p.id for p in store.load_all()] == ["a"]


def test_read_failure_in_load_all_reads_as_empty():
    storage = FlakyReadStorage()
    store = HistoryStore(storage)
    store.save(make_plan("a"))

    storage.fail_next_read = True
    assert store.load_all() == []


def test_null_metadata_in_stored_history_loads_as_empty(storage):
    record = make_plan("a").model_dump(by_alias=True)
    record.update(teacherName=None, location=None)
    storage.set("lesson_history", json.dumps([record]))

    (plan,) = HistoryStore(storage).load_all()
    assert plan.teacher_name == ""
    assert plan.location == ""
    assert plan.class_name == "Sunflower"
