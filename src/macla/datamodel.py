from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum

__all__ = [
    "Reminder", "UserRecord",
    "ChannelType", "IncomingMessage",
    "Intent", "CalendarEvent",
]

# ----------------- Reminder ----------------
@dataclass
class Reminder:
    id: str
    identity: str
    text: str
    due_at: int  # epoch milliseconds
    done: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "identity": self.identity,
            "text": self.text,
            "dueAt": self.due_at,
            "done": self.done,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reminder":
        return cls(
            id=str(data.get("id", "")),
            identity=str(data.get("identity", "")),
            text=str(data.get("text", "")),
            due_at=int(data.get("dueAt", 0)),
            done=bool(data.get("done", False)),
        )


# ----------------- User ----------------
@dataclass
class UserRecord:
    identity: str
    prefs: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"prefs": dict(self.prefs)}


# ----------------- Channel ----------------
class ChannelType(str, Enum):
    WEB = "web"
    WHATSAPP = "whatsapp"
    VOICE = "voice"

@dataclass
class IncomingMessage:
    channel_type: ChannelType
    identity: str
    content: str
    metadata: Optional[Dict[str, Any]] = None  # channel specific


# ----------------- Intent ----------------
@dataclass
class Intent:
    intent: str = "none"  # 'calendar_event', 'local_reminder', 'none'
    summary: str = ""
    description: str = ""
    start_iso: str = ""
    end_iso: str = ""
    attendees: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Intent":
        attendees = data.get("attendees") or []
        if not isinstance(attendees, list):
            attendees = []
        return cls(
            intent=str(data.get("intent") or "none"),
            summary=str(data.get("summary") or ""),
            description=str(data.get("description") or ""),
            start_iso=str(data.get("startISO") or ""),
            end_iso=str(data.get("endISO") or ""),
            attendees=[str(a) for a in attendees if a],
        )


# ----------------- Calendar ----------------
@dataclass
class CalendarEvent:
    id: str
    summary: str
    start_iso: str
    end_iso: str
    html_link: Optional[str] = None
