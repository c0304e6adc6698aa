"""
Notification and navigation collaborators used by the session flows.
"""

from collections import deque
from typing import Deque, List, Optional, Protocol

from mindlock.logger import setup_logger
from mindlock.models import Notification
from mindlock.utils.helpers import utcnow

logger = setup_logger(__name__)


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class Navigator(Protocol):
    def go_to(self, path: str) -> None: ...


class NotificationCenter:
    """
    Logs toast messages and keeps the most recent ones for the UI to drain.
    """

    def __init__(self, max_items: int = 100) -> None:
        self._feed: Deque[Notification] = deque(maxlen=max_items)

    def success(self, message: str) -> None:
        logger.info(f"✅ {message}")
        self._feed.append(
            Notification(level="success", message=message, created_at=utcnow())
        )

    def error(self, message: str) -> None:
        logger.warning(f"❌ {message}")
        self._feed.append(
            Notification(level="error", message=message, created_at=utcnow())
        )

    def drain(self) -> List[Notification]:
        items = list(self._feed)
        self._feed.clear()
        return items

    def __len__(self) -> int:
        return len(self._feed)


class RecordingNavigator:
    """Remembers the last path a session asked to navigate to."""

    def __init__(self) -> None:
        self.path: Optional[str] = None

    def go_to(self, path: str) -> None:
        logger.debug(f"➡️  Navigate to {path}")
        self.path = path
