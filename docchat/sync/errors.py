"""Single-slot notification channel for user-visible errors."""

import logging
from collections.abc import Callable

from docchat.models.schemas import ErrorSource, Notice

logger = logging.getLogger(__name__)

_FORMATS = {
    ErrorSource.CONNECTION: "Connection error: {detail}",
    ErrorSource.PROTOCOL: "{detail}",
    ErrorSource.REQUEST: "Request failed: {detail}",
    ErrorSource.VALIDATION: "{detail}",
}


class ErrorSurface:
    """Holds zero or one notice; a newer report replaces the older one."""

    def __init__(self, on_change: Callable[[], None] | None = None) -> None:
        self._current: Notice | None = None
        self._on_change = on_change

    @property
    def current(self) -> Notice | None:
        return self._current

    def report(self, source: ErrorSource, detail: str) -> Notice:
        """Format and publish a notice, overwriting any previous one."""
        notice = Notice(source=source, message=_FORMATS[source].format(detail=detail))
        logger.info(f"Showing {source.value} error: {notice.message}")
        self._current = notice
        self._changed()
        return notice

    def dismiss(self) -> None:
        """Explicit user dismissal."""
        self.clear()

    def clear(self) -> None:
        if self._current is None:
            return
        self._current = None
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
