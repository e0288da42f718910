"""Source id registry.

Ids are allocated from a fixed 16-bit range with a rotating cursor so that
recently released ids are the last to be reissued. An allocated id stays
marked until the next rebuild, even if the caller never commits it.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from scenariokit.config.constants import SOURCE_ID_MAX, SOURCE_ID_MIN
from scenariokit.core.errors import IdentityError
from scenariokit.core.logging import get_logger

log = get_logger(__name__)


class IdentifierRegistry:
    """Allocates and recycles source ids within one study."""

    def __init__(self, live_ids: Iterable[int] = ()) -> None:
        self._lock = threading.Lock()
        self._in_use, self._count, self._cursor = self._scan(live_ids)

    @staticmethod
    def _scan(live_ids: Iterable[int]) -> tuple[bytearray, int, int]:
        """Build a fresh bitmap, count and cursor for the ids, touching no state."""
        in_use = bytearray(SOURCE_ID_MAX + 1)
        count = 0
        cursor = SOURCE_ID_MIN - 1
        for source_id in live_ids:
            if not (SOURCE_ID_MIN <= source_id <= SOURCE_ID_MAX):
                raise IdentityError.out_of_range(source_id)
            if not in_use[source_id]:
                in_use[source_id] = 1
                count += 1
            cursor = max(cursor, source_id)
        return in_use, count, cursor

    def allocate(self) -> int:
        """Return the next free id after the cursor, marking it in use.

        Raises:
            IdentityError: Every id in the range is in use.
        """
        with self._lock:
            source_id = self._cursor
            for _ in range(SOURCE_ID_MAX):
                source_id += 1
                if source_id > SOURCE_ID_MAX:
                    source_id = SOURCE_ID_MIN
                if not self._in_use[source_id]:
                    self._in_use[source_id] = 1
                    self._count += 1
                    self._cursor = source_id
                    return source_id
            raise IdentityError.exhausted(self._count)

    def rebuild(self, live_ids: Iterable[int]) -> None:
        """Reset to exactly the committed ids. Call only right after a save.

        Raises:
            IdentityError: An id is out of range. The registry is left unchanged.
        """
        with self._lock:
            self._in_use, self._count, self._cursor = self._scan(live_ids)
            log.debug("source_ids_rebuilt", in_use=self._count, cursor=self._cursor)

    def is_in_use(self, source_id: int) -> bool:
        if not (SOURCE_ID_MIN <= source_id <= SOURCE_ID_MAX):
            return False
        return bool(self._in_use[source_id])

    @property
    def in_use_count(self) -> int:
        return self._count

    @property
    def cursor(self) -> int:
        """Last issued (or highest rebuilt) id, 0 when nothing was issued."""
        return self._cursor
