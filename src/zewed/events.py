import logging
from collections.abc import Callable
from typing import Union

from .types import NavigationHint, Severity

NotifyListener = Callable[[str, Severity], None]
NavigateListener = Callable[[NavigationHint, Union[str, None]], None]


class ClientEvents:
    """Outbound side channel for UI collaborators.

    The client never touches a display or a browser location; it emits
    ``notify(message, severity)`` and ``navigate(hint, return_path)`` here and
    whoever renders the app subscribes. ``current_path`` tells the client where
    the user is, for login return targets.
    """

    def __init__(self, current_path: Union[Callable[[], str], None] = None):
        self._notify: list[NotifyListener] = []
        self._navigate: list[NavigateListener] = []
        self._current_path = current_path or (lambda: "/")
        self._logger = logging.getLogger("zewed")

    def on_notify(self, listener: NotifyListener) -> NotifyListener:
        self._notify.append(listener)
        return listener

    def on_navigate(self, listener: NavigateListener) -> NavigateListener:
        self._navigate.append(listener)
        return listener

    def current_path(self) -> str:
        return self._current_path()

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        for listener in list(self._notify):
            try:
                listener(message, severity)
            except Exception:
                # advisory only; the request outcome must still reach the caller
                self._logger.exception("notify listener failed")

    def navigate(self, hint: NavigationHint, return_path: Union[str, None] = None) -> None:
        for listener in list(self._navigate):
            try:
                listener(hint, return_path)
            except Exception:
                self._logger.exception("navigate listener failed")
