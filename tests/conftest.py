import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from macla.core.assistant import Assistant
from macla.core.runtime import RuntimeControl, Services
from macla.storage.json_store import JsonStore
from macla.storage.reminder import ReminderRegistry
from macla.storage.user import UserRegistry
from macla.world.directory import RecipientDirectory
from macla.world.event_reminder import EventReminderScheduler
from macla.world.reminder import ReminderDispatcher

from fakes import FakeLLM


@pytest.fixture
def store(tmp_path):
    s = JsonStore(tmp_path / "memory.json")
    s.load()
    return s


@pytest.fixture
def registry(store):
    return ReminderRegistry(store)


@pytest.fixture
def users(store):
    return UserRegistry(store)


@pytest.fixture
def directory():
    return RecipientDirectory()


@pytest.fixture
def dispatcher(registry, directory):
    return ReminderDispatcher(registry, directory, interval_seconds=0.01)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def services(store, registry, users, directory, dispatcher, fake_llm):
    event_reminders = EventReminderScheduler()
    calendar = AsyncMock()
    assistant = Assistant(
        llm=fake_llm,
        reminders=registry,
        users=users,
        calendar=calendar,
        event_reminders=event_reminders,
    )
    return Services(
        store=store,
        users=users,
        reminders=registry,
        directory=directory,
        dispatcher=dispatcher,
        event_reminders=event_reminders,
        llm=fake_llm,
        assistant=assistant,
        calendar=calendar,
    )


@pytest.fixture
def control():
    return RuntimeControl(shutdown_event=asyncio.Event(), started_at=time.time())


@pytest.fixture
def app(control, services, tmp_path):
    from macla.http.app import create_app

    return create_app(control, services, public_dir=tmp_path / "public", weather_api_key="test-key")
