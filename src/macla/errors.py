from typing import Optional

__all__ = ["MaclaError", "CollaboratorError", "InvalidReminderTime"]

DEFAULT_USER_MESSAGE = "Perdón, tuve un problema procesando tu mensaje. Probá de nuevo en un rato."


class MaclaError(Exception):
    def __init__(self, message: str, user_message: Optional[str] = None):
        self.message = message
        self.user_message = user_message or DEFAULT_USER_MESSAGE
        super().__init__(self.message)


class CollaboratorError(MaclaError):
    """A remote call (model, calendar, speech, messaging) failed."""

    def __init__(self, service: str, message: str, user_message: Optional[str] = None):
        self.service = service
        super().__init__(f"{service}: {message}", user_message)


class InvalidReminderTime(MaclaError):
    def __init__(self, value: object):
        self.value = value
        super().__init__(
            f"Cannot parse reminder time: {value!r}",
            "No entendí la fecha del recordatorio.",
        )
