from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, List
from testtracker.core.logging import get_logger

logger = get_logger("notifications")


@dataclass
class Notification:
    level: str
    message: str
    created_at: datetime = field(default_factory=datetime.now)


class Notifier:
    """Non-blocking user notifications (what the UI shows as toasts)."""

    def __init__(self, max_items: int = 50):
        self._items: Deque[Notification] = deque(maxlen=max_items)

    def _push(self, level: str, message: str) -> None:
        self._items.append(Notification(level, message))
        logger.log(level.upper(), message)

    def success(self, message: str) -> None:
        self._push("success", message)

    def info(self, message: str) -> None:
        self._push("info", message)

    def warning(self, message: str) -> None:
        self._push("warning", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    @property
    def items(self) -> List[Notification]:
        return list(self._items)

    def errors(self) -> List[Notification]:
        return [n for n in self._items if n.level == "error"]

    def clear(self) -> None:
        self._items.clear()
