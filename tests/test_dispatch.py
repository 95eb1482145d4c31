import asyncio
import json

import pytest

from macla.storage.json_store import JsonStore
from macla.storage.reminder import ReminderRegistry
from macla.world.reminder import ReminderDispatcher, FIRE_EVENT
from fakes import FakeTarget


async def test_due_reminder_fires_once_to_registered_session(registry, directory, dispatcher):
    now = 1_000_000
    target = FakeTarget("u1")
    directory.register("u1", target)
    reminder = registry.create("u1", "call mom", now - 1000)

    result = await dispatcher.sweep(now)

    assert [r.id for r in result.fired] == [reminder.id]
    assert len(target.sent) == 1
    event, data = target.sent[0]
    assert event == FIRE_EVENT
    assert data["id"] == reminder.id
    assert data["text"] == "call mom"
    assert registry.get(reminder.id).done is True

    again = await dispatcher.sweep(now + 5000)
    assert again.fired == []
    assert len(target.sent) == 1


async def test_future_reminder_waits_until_due(registry, directory, dispatcher):
    now = 1_000_000
    target = FakeTarget("u1")
    directory.register("u1", target)
    reminder = registry.create("u1", "later", now + 10_000)

    early = await dispatcher.sweep(now + 1_000)
    assert early.fired == []
    assert registry.get(reminder.id).done is False

    late = await dispatcher.sweep(now + 11_000)
    assert [r.id for r in late.fired] == [reminder.id]
    assert len(target.sent) == 1


async def test_unresolved_identity_is_marked_fired_without_delivery(registry, directory, dispatcher):
    bystander = FakeTarget("someone-else")
    directory.register("u1", bystander)
    reminder = registry.create("u2", "nobody home", 0)

    result = await dispatcher.sweep(1_000)

    assert [r.id for r in result.fired] == [reminder.id]
    assert result.delivered == []
    assert bystander.sent == []
    assert registry.get(reminder.id).done is True


async def test_requeue_policy_keeps_undelivered_pending(registry, directory):
    dispatcher = ReminderDispatcher(registry, directory, undelivered_policy="requeue")
    reminder = registry.create("u2", "wait for me", 0)

    first = await dispatcher.sweep(1_000)
    assert first.fired == []
    assert [r.id for r in first.requeued] == [reminder.id]
    assert registry.get(reminder.id).done is False

    target = FakeTarget("u2")
    directory.register("u2", target)
    second = await dispatcher.sweep(2_000)
    assert [r.id for r in second.delivered] == [reminder.id]
    assert len(target.sent) == 1


def test_unknown_policy_is_rejected(registry, directory):
    with pytest.raises(ValueError):
        ReminderDispatcher(registry, directory, undelivered_policy="retry-forever")


async def test_failed_delivery_still_marks_fired(registry, directory, dispatcher):
    directory.register("u1", FakeTarget("u1", fail=True))
    reminder = registry.create("u1", "stale", 0)

    result = await dispatcher.sweep(1_000)

    assert [r.id for r in result.fired] == [reminder.id]
    assert result.delivered == []
    assert registry.get(reminder.id).done is True


async def test_closed_session_gets_no_delivery(registry, directory, dispatcher):
    target = FakeTarget("u1")
    directory.register("u1", target)
    target.open = False
    registry.create("u1", "closed", 0)

    result = await dispatcher.sweep(1_000)

    assert len(result.fired) == 1
    assert target.sent == []


async def test_sweep_persists_only_when_something_fired(store, registry, directory, dispatcher):
    registry.create("u1", "future", 10_000)
    store.path.unlink()

    await dispatcher.sweep(1_000)
    assert not store.path.exists()

    registry.create("u1", "due", 0)
    await dispatcher.sweep(1_000)
    on_disk = json.loads(store.path.read_text(encoding="utf-8"))
    assert [r["done"] for r in on_disk["reminders"]] == [False, True]


async def test_overlapping_sweeps_do_not_double_fire(registry, directory, dispatcher):
    class SlowTarget(FakeTarget):
        async def send_event(self, event, data):
            await asyncio.sleep(0.01)
            await super().send_event(event, data)

    target = SlowTarget("u1")
    directory.register("u1", target)
    registry.create("u1", "only once", 0)

    results = await asyncio.gather(dispatcher.sweep(1_000), dispatcher.sweep(1_000))

    assert sum(len(r.fired) for r in results) == 1
    assert len(target.sent) == 1


async def test_main_loop_sweeps_until_shutdown(registry, directory, dispatcher):
    target = FakeTarget("u1")
    directory.register("u1", target)
    reminder = registry.create("u1", "loop", 0)
    shutdown = asyncio.Event()

    loop_task = asyncio.create_task(dispatcher.main_loop(shutdown))
    await asyncio.sleep(0.05)
    assert dispatcher.get_status()["running"] is True
    shutdown.set()
    await asyncio.wait_for(loop_task, timeout=1)

    assert registry.get(reminder.id).done is True
    assert len(target.sent) == 1
    assert dispatcher.get_status()["running"] is False


async def test_bad_snapshot_row_does_not_block_valid_reminders(tmp_path, directory):
    path = tmp_path / "memory.json"
    path.write_text(json.dumps({
        "users": {},
        "reminders": [
            {"id": "r_bad", "identity": "u1", "text": "broken", "dueAt": None, "done": False},
            {"id": "r_ok", "identity": "u1", "text": "still here", "dueAt": 5, "done": False},
        ],
    }), encoding="utf-8")
    store = JsonStore(path)
    store.load()
    dispatcher = ReminderDispatcher(ReminderRegistry(store), directory)
    target = FakeTarget("u1")
    directory.register("u1", target)

    result = await dispatcher.sweep(10)

    assert [r.id for r in result.delivered] == ["r_ok"]
    assert target.sent[0][1]["text"] == "still here"
