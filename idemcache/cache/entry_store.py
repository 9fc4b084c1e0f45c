"""Owning arena of cache entries addressed by integer handles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable, Iterator


@dataclass(slots=True)
class Entry:
    """One cached key/value association."""

    key: Hashable
    value: Any
    expires_at: float | None  # time.monotonic(); None = never expires
    node: int = -1  # position in the RecencyList

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class EntryStore:
    """Single owner of :class:`Entry` objects.

    The hash index and recency list refer to entries only through the
    handles returned by :meth:`allocate`. Released handles are reused.
    """

    def __init__(self) -> None:
        self.clear()

    def clear(self) -> None:
        self._slots: list[Entry | None] = []
        self._free: list[int] = []
        self._len = 0

    def __len__(self) -> int:
        return self._len

    def allocate(self, entry: Entry) -> int:
        if self._free:
            handle = self._free.pop()
            self._slots[handle] = entry
        else:
            handle = len(self._slots)
            self._slots.append(entry)
        self._len += 1
        return handle

    def get(self, handle: int) -> Entry:
        entry = self._slots[handle]
        if entry is None:
            raise KeyError(f"Entry handle {handle} is not allocated")
        return entry

    def release(self, handle: int) -> Entry:
        entry = self.get(handle)
        self._slots[handle] = None
        self._free.append(handle)
        self._len -= 1
        return entry

    def handles(self) -> Iterator[int]:
        """Yield the handles of all allocated entries."""
        for handle, entry in enumerate(self._slots):
            if entry is not None:
                yield handle
