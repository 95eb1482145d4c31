from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import aiohttp
from fastapi import FastAPI
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles

from macla.config.settings import (
    OPENWEATHER_API_KEY,
    PUBLIC_BASE_URL,
    PUBLIC_DIR,
    TWILIO_ACCOUNT_SID,
    TWILIO_AUTH_TOKEN,
)
from macla.core.runtime import RuntimeControl, Services
from macla.logger import logger
from macla.metrics import runtime_metrics

import macla.channels.twilio_voice as twilio_voice
import macla.channels.twilio_whatsapp as twilio_whatsapp
import macla.channels.web_ws as web_ws

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"


async def fetch_weather(city: str, api_key: str) -> dict[str, Any]:
    params = {"q": city, "appid": api_key, "units": "metric", "lang": "es"}
    async with aiohttp.ClientSession() as session:
        async with session.get(OPENWEATHER_URL, params=params) as resp:
            return await resp.json()


def create_app(
    control: RuntimeControl,
    services: Services,
    public_dir: str | Path = PUBLIC_DIR,
    weather_api_key: str = OPENWEATHER_API_KEY,
) -> FastAPI:
    app = FastAPI(title="MACLA Assistant", version="1.0.0")
    public_dir = Path(public_dir)
    tts_dir = public_dir / "tts"
    tts_dir.mkdir(parents=True, exist_ok=True)

    web_ws.register_fastapi_routes(app, services)
    twilio_whatsapp.register_fastapi_routes(app, services, TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
    twilio_voice.register_fastapi_routes(app, services, tts_dir, PUBLIC_BASE_URL)
    app.mount("/tts", StaticFiles(directory=tts_dir), name="tts")

    def health_payload() -> dict[str, Any]:
        return {
            "status": "ok",
            "now_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "uptime_seconds": max(0.0, time.time() - control.started_at),
            "store_path": str(services.store.path),
            "store_last_save_ok": services.store.last_save_ok,
            "shutdown_requested": control.shutdown_event.is_set(),
        }

    @app.get("/", include_in_schema=False)
    async def home() -> Response:
        index = public_dir / "index.html"
        if index.exists():
            return FileResponse(index)
        return JSONResponse({"name": "MACLA Assistant", "status": "ok"})

    @app.get("/healthz", include_in_schema=False)
    async def healthz() -> PlainTextResponse:
        return PlainTextResponse("ok")

    @app.get("/api/v1/health")
    async def api_health() -> dict[str, Any]:
        return health_payload()

    @app.get("/api/v1/metrics")
    async def get_metrics() -> dict[str, Any]:
        return {
            "runtime": runtime_metrics.snapshot(),
            "components": {
                "store": {
                    "users": len(services.store.users),
                    "reminders": len(services.store.reminders),
                    "last_save_ok": services.store.last_save_ok,
                },
                "dispatcher": services.dispatcher.get_status(),
                "directory": services.directory.get_status(),
                "event_reminders": services.event_reminders.get_status(),
            },
            "active_tasks": len(asyncio.all_tasks()),
        }

    @app.get("/api/weather")
    async def weather(city: str | None = None, identity: str | None = None) -> JSONResponse:
        if not weather_api_key:
            return JSONResponse({"error": "Falta OPENWEATHER_API_KEY"}, status_code=500)
        if not city:
            return JSONResponse({"error": "Falta parámetro city"}, status_code=400)
        try:
            data = await fetch_weather(city, weather_api_key)
        except Exception as e:
            logger.error(f"Weather lookup failed: city={city}, error={e}")
            return JSONResponse({"error": "Error al consultar clima"}, status_code=500)

        if identity:
            services.users.merge_prefs(identity, {"last_city": city})
        return JSONResponse(data)

    @app.get("/dev/calendar/test")
    async def calendar_test() -> JSONResponse:
        if services.calendar is None:
            return JSONResponse({"ok": False, "error": "Calendar client not configured"}, status_code=500)
        start = datetime.now(timezone.utc) + timedelta(minutes=15)
        end = start + timedelta(hours=1)
        try:
            event = await services.calendar.create_event(
                summary="Test MACLA-IA",
                description="Evento de prueba",
                start_iso=start.strftime("%Y-%m-%dT%H:%M:%SZ"),
                end_iso=end.strftime("%Y-%m-%dT%H:%M:%SZ"),
                attendees=[],
            )
        except Exception as e:
            logger.error(f"Calendar test failed: {e}")
            return JSONResponse({"ok": False, "error": str(e)}, status_code=500)
        return JSONResponse({"ok": True, "event": event.html_link or event.id})

    return app


__all__ = ["create_app", "fetch_weather"]
