from macla.logger import setup_logging, logger
from macla.config.settings import *
setup_logging(
    log_level=LOG_LEVEL,
    log_file=LOG_FILE,
    console_level=CONSOLE_LOG_LEVEL,
)

import asyncio
import signal
import time

from macla.calendar.google_calendar import GoogleCalendarClient
from macla.channels.twilio_whatsapp import WhatsAppSender
from macla.core.assistant import Assistant
from macla.core.runtime import RuntimeControl, Services
from macla.http.http_server import main_loop as http_main
from macla.llm.openai_client import OpenAIClient
from macla.storage.json_store import JsonStore
from macla.storage.reminder import ReminderRegistry
from macla.storage.user import UserRegistry
from macla.world.directory import RecipientDirectory
from macla.world.event_reminder import EventReminderScheduler
from macla.world.reminder import ReminderDispatcher

shutdown_event = asyncio.Event()

def signal_handler(sig, frame):
    """Handle SIGINT / SIGTERM"""
    logger.info("Interrupt received, shutting down components...")
    shutdown_event.set()


def build_services() -> Services:
    store = JsonStore(STORE_PATH)
    store.load()

    users = UserRegistry(store)
    reminders = ReminderRegistry(store)
    directory = RecipientDirectory()
    dispatcher = ReminderDispatcher(
        reminders,
        directory,
        interval_seconds=REMINDER_SWEEP_INTERVAL_SECONDS,
        undelivered_policy=UNDELIVERED_REMINDER_POLICY,
    )
    event_reminders = EventReminderScheduler(default_tz=USER_TIMEZONE)
    llm = OpenAIClient()
    calendar = GoogleCalendarClient() if GOOGLE_REFRESH_TOKEN else None

    whatsapp_sender = None
    if ENABLE_WHATSAPP_PUSH:
        whatsapp_sender = WhatsAppSender(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_WHATSAPP_FROM)
    else:
        logger.warning("WhatsApp push is disabled, reminders for WhatsApp users will not be delivered")

    assistant = Assistant(
        llm=llm,
        reminders=reminders,
        users=users,
        calendar=calendar,
        event_reminders=event_reminders,
        local_reminder_delay_minutes=LOCAL_REMINDER_DELAY_MINUTES,
        event_reminder_lead_minutes=EVENT_REMINDER_LEAD_MINUTES,
        user_timezone=USER_TIMEZONE,
        history_limit=CHAT_HISTORY_LIMIT,
    )

    return Services(
        store=store,
        users=users,
        reminders=reminders,
        directory=directory,
        dispatcher=dispatcher,
        event_reminders=event_reminders,
        llm=llm,
        assistant=assistant,
        calendar=calendar,
        whatsapp_sender=whatsapp_sender,
    )


async def main():
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    services = build_services()
    control = RuntimeControl(shutdown_event=shutdown_event, started_at=time.time())

    try:
        await asyncio.gather(
            services.dispatcher.main_loop(shutdown_event),
            http_main(control, services),
        )
    finally:
        logger.info("Shutting down MACLA...")
        await services.event_reminders.shutdown()
        services.store.save()
        logger.info("MACLA stopped")


def run() -> None:
    logger.info("Starting MACLA...")
    asyncio.run(main())


if __name__ == "__main__":
    run()
