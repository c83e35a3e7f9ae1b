"""
NoteSync - User Notification Interface
=======================================

What:  Abstract sink for the short success/error messages shown to the user.
How:   The UI provides a concrete Notifier (toast, status bar, ...); the
       services call `success()` / `error()` and never render anything.
Who:   AuthSession and ResourceStore.

Implementations:
    - LoggingNotifier: default, writes the messages to the log
    - (UI) a toast-backed notifier supplied by the presentation layer
"""

import logging
from abc import ABC, abstractmethod


class Notifier(ABC):
    """
    Contract:
        - Calls are fire-and-forget and must not raise
        - Messages are already user-facing; no formatting is expected
    """

    @abstractmethod
    def success(self, message: str) -> None:
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        ...


class LoggingNotifier(Notifier):
    """Sends notifications to the `notesync.notify` logger."""

    def __init__(self, name: str = "notesync.notify"):
        self._logger = logging.getLogger(name)

    def success(self, message: str) -> None:
        self._logger.info(message)

    def error(self, message: str) -> None:
        self._logger.warning(message)
