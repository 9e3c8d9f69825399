"""Creation-order sortable transaction ids."""

from datetime import datetime
from typing import Callable

from bookkeeper.models.user import utc_now


ID_WIDTH = 15


class IdGenerator:
    """
    Issues zero-padded millisecond ids that sort in creation order.

    Two ids in the same millisecond (or a clock that moved backwards)
    are kept strictly increasing by bumping past the last id issued.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._last = 0

    def observe(self, existing_id: str) -> None:
        """Account for an id issued earlier (e.g. loaded from storage)."""
        if existing_id.isdigit():
            self._last = max(self._last, int(existing_id))

    def next_id(self) -> str:
        now_ms = int(self._clock().timestamp() * 1000)
        value = max(self._last + 1, now_ms)
        self._last = value
        return f"{value:0{ID_WIDTH}d}"
