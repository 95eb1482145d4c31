"""
Process-wide counters, fed from the event bus and by the LLM client.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, fields

from macla.events import bus, E


def _utc(epoch: float | None) -> str | None:
    if epoch is None:
        return None
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(epoch))


@dataclass
class ReminderCounters:
    created: int = 0
    fired: int = 0
    delivered: int = 0
    undelivered: int = 0
    event_scheduled: int = 0
    event_fired: int = 0
    event_delivered: int = 0


@dataclass
class RuntimeMetrics:
    llm_calls: int = 0
    llm_errors: int = 0
    llm_latency_ms_total: float = 0.0
    last_llm_call_at: float | None = None
    messages_in: int = 0
    reminders: ReminderCounters = field(default_factory=ReminderCounters)

    def record_llm_call(self, latency_ms: float, error: bool = False) -> None:
        self.llm_calls += 1
        self.llm_latency_ms_total += max(0.0, latency_ms)
        self.last_llm_call_at = time.time()
        if error:
            self.llm_errors += 1

    def snapshot(self) -> dict:
        avg = self.llm_latency_ms_total / self.llm_calls if self.llm_calls else 0.0
        return {
            "llm": {
                "calls": self.llm_calls,
                "errors": self.llm_errors,
                "avg_latency_ms": round(avg, 2),
                "last_call_at_utc": _utc(self.last_llm_call_at),
            },
            "messages_in": self.messages_in,
            "reminders": {f.name: getattr(self.reminders, f.name) for f in fields(ReminderCounters)},
        }


runtime_metrics = RuntimeMetrics()


# bus handlers run inline on emit; keep them to plain counter updates
@bus.on(E.MESSAGE_RECEIVED)
def _on_message(msg) -> None:
    runtime_metrics.messages_in += 1


@bus.on(E.REMINDER_CREATED)
def _on_reminder_created(reminder) -> None:
    runtime_metrics.reminders.created += 1


@bus.on(E.REMINDER_FIRED)
def _on_reminder_fired(reminder, delivered: bool) -> None:
    counters = runtime_metrics.reminders
    counters.fired += 1
    if delivered:
        counters.delivered += 1
    else:
        counters.undelivered += 1


@bus.on(E.EVENT_REMINDER_SCHEDULED)
def _on_event_reminder_scheduled(event_id: str, fire_at: int) -> None:
    runtime_metrics.reminders.event_scheduled += 1


@bus.on(E.EVENT_REMINDER_FIRED)
def _on_event_reminder_fired(event_id: str, delivered: bool) -> None:
    runtime_metrics.reminders.event_fired += 1
    if delivered:
        runtime_metrics.reminders.event_delivered += 1


__all__ = ["RuntimeMetrics", "ReminderCounters", "runtime_metrics"]
