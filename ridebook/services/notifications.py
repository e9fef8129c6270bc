"""Non-blocking user notifications (toasts) raised by the rider services."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Level(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str


class Notifier:
    """Collects notifications and forwards each to an optional sink."""

    def __init__(self, sink: Optional[Callable[[Notification], None]] = None):
        self._sink = sink
        self.history: list[Notification] = []

    def notify(self, level: Level, message: str) -> None:
        note = Notification(level, message)
        self.history.append(note)
        logger.debug("notify[%s] %s", level.value, message)
        if self._sink is not None:
            self._sink(note)

    def info(self, message: str) -> None:
        self.notify(Level.INFO, message)

    def success(self, message: str) -> None:
        self.notify(Level.SUCCESS, message)

    def error(self, message: str) -> None:
        self.notify(Level.ERROR, message)

    @property
    def errors(self) -> list[str]:
        return [n.message for n in self.history if n.level == Level.ERROR]
