"""Google Calendar event creation with a stored refresh token.

The discovery client is blocking, so calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from macla.config.settings import (
    GOOGLE_CALENDAR_ID,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REFRESH_TOKEN,
)
from macla.datamodel import CalendarEvent
from macla.errors import CollaboratorError
from macla.logger import logger

TOKEN_URI = "https://oauth2.googleapis.com/token"
SCOPES = ["https://www.googleapis.com/auth/calendar"]


def build_event_body(
    summary: str,
    description: str,
    start_iso: str,
    end_iso: str,
    attendees: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "summary": summary or "Evento",
        "description": description or "",
        "start": {"dateTime": start_iso},
        "end": {"dateTime": end_iso},
        "attendees": [{"email": email} for email in (attendees or [])],
        "reminders": {"useDefault": True},
    }


class GoogleCalendarClient:
    def __init__(
        self,
        client_id: str = GOOGLE_CLIENT_ID,
        client_secret: str = GOOGLE_CLIENT_SECRET,
        refresh_token: str = GOOGLE_REFRESH_TOKEN,
        calendar_id: str = GOOGLE_CALENDAR_ID,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.calendar_id = calendar_id
        self._service = None

    def _get_service(self):
        if self._service is None:
            if not self.refresh_token:
                raise CollaboratorError("google.calendar", "GOOGLE_REFRESH_TOKEN is not configured")
            creds = Credentials(
                token=None,
                refresh_token=self.refresh_token,
                client_id=self.client_id,
                client_secret=self.client_secret,
                token_uri=TOKEN_URI,
                scopes=SCOPES,
            )
            self._service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        return self._service

    def _insert(self, body: dict[str, Any]) -> dict[str, Any]:
        service = self._get_service()
        return service.events().insert(calendarId=self.calendar_id, body=body).execute()

    async def create_event(
        self,
        summary: str,
        description: str,
        start_iso: str,
        end_iso: str,
        attendees: list[str] | None = None,
    ) -> CalendarEvent:
        body = build_event_body(summary, description, start_iso, end_iso, attendees)
        try:
            created = await asyncio.to_thread(self._insert, body)
        except CollaboratorError:
            raise
        except Exception as e:
            logger.error(f"Failed to create calendar event: {e}")
            raise CollaboratorError("google.calendar", str(e)) from e

        logger.info(f"Calendar event created: id={created.get('id')}")
        return CalendarEvent(
            id=str(created.get("id", "")),
            summary=str(created.get("summary", body["summary"])),
            start_iso=str((created.get("start") or {}).get("dateTime", start_iso)),
            end_iso=str((created.get("end") or {}).get("dateTime", end_iso)),
            html_link=created.get("htmlLink"),
        )


__all__ = ["GoogleCalendarClient", "build_event_body"]
