"""
Transient user notifications (toasts) raised by editor operations.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    level: str
    title: str
    message: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)


class Notifier:
    """Keeps the most recent notifications and mirrors them to the log."""

    def __init__(self, max_items: int = 20):
        self.items: deque[Notification] = deque(maxlen=max_items)

    def _push(self, level: str, title: str, message: Optional[str]) -> Notification:
        notification = Notification(level=level, title=title, message=message)
        self.items.append(notification)
        return notification

    def success(self, title: str, message: Optional[str] = None) -> Notification:
        logger.info(f"{title}" + (f": {message}" if message else ""))
        return self._push("success", title, message)

    def error(self, title: str, message: Optional[str] = None) -> Notification:
        logger.warning(f"{title}" + (f": {message}" if message else ""))
        return self._push("error", title, message)

    @property
    def errors(self) -> list[Notification]:
        return [n for n in self.items if n.level == "error"]

    def clear(self) -> None:
        self.items.clear()
