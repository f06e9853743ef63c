# jt/tracking/notify.py

"""
User-facing warning boundary for the tracking session.
"""

from typing import Protocol

from jt.utils.log import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    def warn(self, title: str, message: str) -> None:
        ...


class LogNotifier:
    """
    Default notifier: route warnings to the log.
    """
    def warn(self, title: str, message: str) -> None:
        logger.warning("%s: %s", title, message)
