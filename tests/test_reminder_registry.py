import json

from macla.storage.json_store import JsonStore
from macla.storage.reminder import ReminderRegistry
from macla.utils import now_ms, parse_when_to_ms


def test_create_persists_pending_reminder(store, registry):
    reminder = registry.create("u1", "call mom", 1_000)

    assert reminder.id.startswith("r_")
    assert reminder.done is False
    on_disk = json.loads(store.path.read_text(encoding="utf-8"))
    assert on_disk["reminders"] == [
        {"id": reminder.id, "identity": "u1", "text": "call mom", "dueAt": 1_000, "done": False}
    ]


def test_ids_are_unique(registry):
    ids = {registry.create("u1", f"r{i}", 0).id for i in range(20)}
    assert len(ids) == 20


def test_past_due_is_immediately_due(registry):
    now = now_ms()
    reminder = registry.create("u1", "late", now - 60_000)
    assert [r.id for r in registry.due_reminders(now)] == [reminder.id]


def test_due_reminders_skips_future_and_fired(registry):
    now = 10_000
    due = registry.create("u1", "due", 9_000)
    registry.create("u1", "future", 11_000)
    fired = registry.create("u1", "fired", 8_000)
    registry.mark_fired(fired)

    assert [r.id for r in registry.due_reminders(now)] == [due.id]


def test_equal_due_at_keeps_creation_order(registry):
    first = registry.create("u1", "first", 5_000)
    second = registry.create("u2", "second", 5_000)
    earlier_but_later_created = registry.create("u3", "third", 4_000)

    assert [r.id for r in registry.due_reminders(5_000)] == [
        first.id, second.id, earlier_but_later_created.id,
    ]


def test_mark_fired_is_idempotent(registry):
    reminder = registry.create("u1", "once", 0)

    assert registry.mark_fired(reminder) is True
    assert registry.mark_fired(reminder) is False
    assert registry.get(reminder.id).done is True


def test_list_for_filters_by_identity_and_keeps_fired(registry):
    a1 = registry.create("alice", "a1", 0)
    registry.create("bob", "b1", 0)
    a2 = registry.create("alice", "a2", 99_999_999_999_999)
    registry.mark_fired(a1)

    listed = registry.list_for("alice")
    assert [r.id for r in listed] == [a1.id, a2.id]
    assert [r.done for r in listed] == [True, False]


def test_iso_and_epoch_give_equal_due_at(registry):
    iso = "2026-10-18T15:30:00Z"
    epoch = 1792337400000

    by_iso = registry.create("u1", "iso", parse_when_to_ms(iso))
    by_epoch = registry.create("u1", "epoch", parse_when_to_ms(epoch))

    assert by_iso.due_at == by_epoch.due_at == epoch


def test_registry_reads_existing_snapshot(tmp_path):
    path = tmp_path / "memory.json"
    path.write_text(json.dumps({
        "users": {},
        "reminders": [{"id": "r_old", "identity": "u9", "text": "old", "dueAt": 5, "done": False}],
    }), encoding="utf-8")
    store = JsonStore(path)
    store.load()

    registry = ReminderRegistry(store)
    assert [r.id for r in registry.due_reminders(10)] == ["r_old"]
