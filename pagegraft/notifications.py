"""
Notification sink for user-visible import messages.
"""

import logging
from typing import List, NamedTuple

SEVERITY_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "success": logging.INFO,
    "info": logging.INFO,
}


class Notification(NamedTuple):
    message: str
    severity: str


class Notifier:
    """
    Receives ``(message, severity)`` pairs. The default implementation writes
    them to the log; hosts with a UI override ``show``.
    """

    def show(self, message: str, severity: str = "info") -> None:
        logging.log(SEVERITY_LEVELS.get(severity, logging.INFO), message)


class RecordingNotifier(Notifier):
    """Notifier that also keeps every notification for later inspection."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def show(self, message: str, severity: str = "info") -> None:
        self.notifications.append(Notification(message, severity))
        super().show(message, severity)

    def errors(self) -> List[Notification]:
        return [n for n in self.notifications if n.severity == "error"]
