"""
Scroll anchor for tensionchart.

A caller-owned record of a viewport offset, captured when a user operation
starts and consumed by the first re-render after the store changes. It expires
after a fixed window so a late re-render never jumps the viewport.
"""

import time
from typing import Callable, Optional

from tensionchart.constants import get_scroll_restore_seconds


class ScrollAnchor:
    """
    Holds at most one pending scroll offset.

    Usage:
        anchor = ScrollAnchor()
        anchor.capture(viewport.scroll_top)
        await core.handle_drag_end(event, scroll=anchor)
        offset = anchor.consume()  # in the re-render

    Also usable as a context manager; the anchor is cleared on exit.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = get_scroll_restore_seconds() if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._offset: Optional[float] = None
        self._captured_at: Optional[float] = None

    def capture(self, offset: float) -> None:
        """Record an offset, replacing any earlier one."""
        self._offset = offset
        self._captured_at = self._clock()

    @property
    def pending(self) -> bool:
        if self._offset is None or self._captured_at is None:
            return False
        if self._clock() - self._captured_at > self.ttl_seconds:
            self.clear()
            return False
        return True

    def peek(self) -> Optional[float]:
        return self._offset if self.pending else None

    def consume(self) -> Optional[float]:
        """
        Take the offset to restore.

        Returns:
            The captured offset, or None when nothing is pending, the window
            expired, or the offset is at the top (nothing to restore).
        """
        offset = self.peek()
        self.clear()
        if offset is None or offset <= 0:
            return None
        return offset

    def clear(self) -> None:
        self._offset = None
        self._captured_at = None

    def __enter__(self) -> "ScrollAnchor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clear()
