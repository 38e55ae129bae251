"""User-visible, non-blocking notices (toast messages).

The store and orchestrator report outcomes through a ``Notifier`` instead of
printing. The default notifier writes to the log; the CLI collects notices and
renders them after each command.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from smartchef.utils.logger import logger


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    title: str
    description: str
    level: NoticeLevel = NoticeLevel.INFO


Notifier = Callable[[Notice], None]


def log_notifier(notice: Notice) -> None:
    """Default notifier: route notices to the application log."""
    if notice.level == NoticeLevel.ERROR:
        logger.warning(f"{notice.title}: {notice.description}")
    else:
        logger.info(f"{notice.title}: {notice.description}")


class NoticeCollector:
    """Notifier that keeps notices in memory (CLI rendering, tests)."""

    def __init__(self) -> None:
        self.notices: list[Notice] = []

    def __call__(self, notice: Notice) -> None:
        log_notifier(notice)
        self.notices.append(notice)

    def drain(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices
