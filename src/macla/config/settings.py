import os
from dotenv import load_dotenv
from macla.logger import logger
load_dotenv()

__all__ = [
    "HTTP_HOST", "PORT", "PUBLIC_DIR", "PUBLIC_BASE_URL", "WEB_WS_PATH",
    "STORE_PATH",
    "REMINDER_SWEEP_INTERVAL_SECONDS", "UNDELIVERED_REMINDER_POLICY",
    "LOCAL_REMINDER_DELAY_MINUTES", "EVENT_REMINDER_LEAD_MINUTES", "USER_TIMEZONE",
    "OPENAI_API_KEY", "OPENAI_BASE_URL", "LLM_CHAT_MODEL", "LLM_TTS_MODEL", "LLM_TTS_VOICE",
    "LLM_STT_MODEL", "LLM_STT_LANGUAGE", "CHAT_HISTORY_LIMIT",
    "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_WHATSAPP_FROM", "ENABLE_WHATSAPP_PUSH",
    "WHATSAPP_CHUNK_LEN", "WHATSAPP_SESSION_HOURS",
    "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REFRESH_TOKEN", "GOOGLE_CALENDAR_ID",
    "OPENWEATHER_API_KEY",
    "LOG_FILE", "LOG_LEVEL", "CONSOLE_LOG_LEVEL",
]

UNDELIVERED_POLICIES = ("drop", "requeue")


def _parse_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on", "y")


def _parse_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"{name} is not a valid integer, falling back to {default}")
        return default


def _parse_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"{name} is not a valid number, falling back to {default}")
        return default


# HTTP / web chat
HTTP_HOST = os.getenv("HTTP_HOST", "0.0.0.0")
PORT = _parse_int("PORT", 3000)
PUBLIC_DIR = os.getenv("PUBLIC_DIR", "public")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")  # empty: derived from the request
WEB_WS_PATH = os.getenv("WEB_WS_PATH", "/ws")


# Store
STORE_PATH = os.getenv("STORE_PATH", "data/memory.json")


# Reminders
REMINDER_SWEEP_INTERVAL_SECONDS = _parse_float("REMINDER_SWEEP_INTERVAL_SECONDS", 5.0)
if REMINDER_SWEEP_INTERVAL_SECONDS <= 0:
    logger.warning("REMINDER_SWEEP_INTERVAL_SECONDS must be positive, falling back to 5 seconds")
    REMINDER_SWEEP_INTERVAL_SECONDS = 5.0

UNDELIVERED_REMINDER_POLICY = os.getenv("UNDELIVERED_REMINDER_POLICY", "drop").strip().lower()
if UNDELIVERED_REMINDER_POLICY not in UNDELIVERED_POLICIES:
    logger.warning(f"Invalid UNDELIVERED_REMINDER_POLICY: {UNDELIVERED_REMINDER_POLICY}, falling back to drop")
    UNDELIVERED_REMINDER_POLICY = "drop"

LOCAL_REMINDER_DELAY_MINUTES = _parse_int("LOCAL_REMINDER_DELAY_MINUTES", 30)
EVENT_REMINDER_LEAD_MINUTES = _parse_int("EVENT_REMINDER_LEAD_MINUTES", 10)
USER_TIMEZONE = os.getenv("USER_TIMEZONE", "America/Argentina/Buenos_Aires")


# LLM (OpenAI)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
if OPENAI_API_KEY is None:
    logger.warning("OPENAI_API_KEY is not set, chat and speech features will fail")

LLM_CHAT_MODEL = os.getenv("LLM_CHAT_MODEL", "gpt-4o-mini")
LLM_TTS_MODEL = os.getenv("LLM_TTS_MODEL", "gpt-4o-mini-tts")
LLM_TTS_VOICE = os.getenv("LLM_TTS_VOICE", "alloy")
LLM_STT_MODEL = os.getenv("LLM_STT_MODEL", "whisper-1")
LLM_STT_LANGUAGE = os.getenv("LLM_STT_LANGUAGE", "es")
CHAT_HISTORY_LIMIT = _parse_int("CHAT_HISTORY_LIMIT", 40)


# Twilio
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_WHATSAPP_FROM = os.getenv("TWILIO_WHATSAPP_FROM", "")  # e.g. "whatsapp:+14155238886"
ENABLE_WHATSAPP_PUSH = _parse_bool("ENABLE_WHATSAPP_PUSH", False)
if ENABLE_WHATSAPP_PUSH and (TWILIO_ACCOUNT_SID == "" or TWILIO_AUTH_TOKEN == "" or TWILIO_WHATSAPP_FROM == ""):
    logger.warning("ENABLE_WHATSAPP_PUSH is on but Twilio credentials are incomplete, disabling it")
    ENABLE_WHATSAPP_PUSH = False
WHATSAPP_CHUNK_LEN = _parse_int("WHATSAPP_CHUNK_LEN", 1200)
WHATSAPP_SESSION_HOURS = _parse_float("WHATSAPP_SESSION_HOURS", 24.0)


# Google Calendar
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
GOOGLE_REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN", "")
GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
if GOOGLE_REFRESH_TOKEN == "":
    logger.warning("GOOGLE_REFRESH_TOKEN is not set, calendar events cannot be created")


# Weather
OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY", "")


# Logging
LOG_FILE = os.getenv("LOG_FILE", "logs/macla.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
CONSOLE_LOG_LEVEL = os.getenv("CONSOLE_LOG_LEVEL", "INFO")
