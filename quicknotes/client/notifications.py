import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Literal, Optional
from quicknotes.config import settings

HISTORY_LIMIT = 50


@dataclass(eq=False)
class Notification:
    """トースト通知"""

    message: str
    kind: Literal["success", "error"]
    url: Optional[str] = None


class Notifier:
    """トースト通知の管理（一定時間後に自動で消える）"""

    def __init__(self, dismiss_after: Optional[float] = None):
        self.dismiss_after = settings.NOTIFICATION_SECONDS if dismiss_after is None else dismiss_after
        self.active: List[Notification] = []
        self.history: Deque[Notification] = deque(maxlen=HISTORY_LIMIT)
        self._listeners: List[Callable[[Notification], None]] = []

    def subscribe(self, callback: Callable[[Notification], None]):
        self._listeners.append(callback)

    @property
    def latest(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None

    def notify(self, message: str, kind: str = "success", url: Optional[str] = None) -> Notification:
        notification = Notification(message=message, kind=kind, url=url)
        self.active.append(notification)
        self.history.append(notification)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None and self.dismiss_after > 0:
            loop.call_later(self.dismiss_after, self.dismiss, notification)

        for callback in self._listeners:
            callback(notification)
        return notification

    def success(self, message: str, url: Optional[str] = None) -> Notification:
        return self.notify(message, "success", url)

    def error(self, message: str) -> Notification:
        return self.notify(message, "error")

    def dismiss(self, notification: Notification):
        if notification in self.active:
            self.active.remove(notification)
