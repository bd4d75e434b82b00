"""User-facing notification sinks.

Notifications are short messages meant for the person editing the project
(cascade summaries, missing-component warnings). They are separate from
logging, which is meant for diagnostics.
"""

from typing import Literal, Protocol

import structlog

Level = Literal["info", "success", "warning", "error"]


class NotificationSink(Protocol):
    """Receives user-facing messages."""

    def notify(self, message: str, level: Level = "info") -> None: ...


class LoggingNotificationSink:
    """Forwards notifications to structlog."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger or structlog.get_logger("glyphcascade.notifications")

    def notify(self, message: str, level: Level = "info") -> None:
        if level == "error":
            self._logger.error(message)
        elif level == "warning":
            self._logger.warning(message)
        else:
            self._logger.info(message, level=level)


class CollectingNotificationSink:
    """Keeps notifications in memory (for batch tools and tests)."""

    def __init__(self) -> None:
        self.messages: list[tuple[Level, str]] = []

    def notify(self, message: str, level: Level = "info") -> None:
        self.messages.append((level, message))
